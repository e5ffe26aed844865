"""Tests for serialization strategy selection."""

from __future__ import annotations

import pytest

from bookstore.core.errors import ConfigurationError, UnknownStrategyError
from bookstore.media.codecs import JacksonCodec, JsonbCodec, JsonpCodec
from bookstore.media.strategy import (
    DEFAULT_STRATEGY,
    SerializationStrategy,
    codec_for,
    media_support,
    resolve_strategy,
)


def _config(make_config, value):
    return make_config({"app": {"json-library": value}})


class TestResolveStrategy:
    def test_absent_is_jsonp(self, make_config):
        assert resolve_strategy(make_config()) is SerializationStrategy.JSONP
        assert DEFAULT_STRATEGY is SerializationStrategy.JSONP

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("jsonp", SerializationStrategy.JSONP),
            ("JSONP", SerializationStrategy.JSONP),
            ("JsonB", SerializationStrategy.JSONB),
            ("jackson", SerializationStrategy.JACKSON),
            ("JACKSON", SerializationStrategy.JACKSON),
            (" Jackson ", SerializationStrategy.JACKSON),
        ],
    )
    def test_known_names_any_case(self, make_config, value, expected):
        assert resolve_strategy(_config(make_config, value)) is expected

    @pytest.mark.parametrize("value", ["xml", "gson", "", "json"])
    def test_unknown_is_fatal(self, make_config, value):
        with pytest.raises(UnknownStrategyError) as exc:
            resolve_strategy(_config(make_config, value))
        assert isinstance(exc.value, ConfigurationError)
        assert exc.value.key == "app.json-library"
        assert exc.value.value == value

    def test_non_scalar_value(self, make_config):
        with pytest.raises(ConfigurationError):
            resolve_strategy(make_config({"app": {"json-library": {"name": "jackson"}}}))


class TestCodecTable:
    @pytest.mark.parametrize(
        "strategy, codec_type",
        [
            (SerializationStrategy.JSONP, JsonpCodec),
            (SerializationStrategy.JSONB, JsonbCodec),
            (SerializationStrategy.JACKSON, JacksonCodec),
        ],
    )
    def test_codec_per_strategy(self, strategy, codec_type):
        assert isinstance(codec_for(strategy), codec_type)
        assert isinstance(media_support(strategy).codec, codec_type)

    def test_media_support_provides_media(self):
        assert media_support(SerializationStrategy.JSONP).provides == frozenset({"media"})
