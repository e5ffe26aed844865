"""
Serialization strategy selection.

The JSON library is chosen once, at startup, from ``app.json-library``::

    [app]
    json-library = "jackson"    # jsonp | jsonb | jackson, any case

When the key is absent the strategy is :attr:`SerializationStrategy.JSONP`.
Any other value is rejected with :class:`UnknownStrategyError`; there is no
silent fallback.

Tags:
    bookstore, media, serialization, strategy, configuration

Doc-Types:
    api-reference
"""

from __future__ import annotations

from enum import Enum

from bookstore.core.config import ConfigNode
from bookstore.core.errors import UnknownStrategyError
from bookstore.core.logging import get_logger
from bookstore.media.codecs import Codec, JacksonCodec, JsonbCodec, JsonpCodec
from bookstore.media.support import MediaSupport

logger = get_logger(__name__)

JSON_LIBRARY_KEY = "app.json-library"


class SerializationStrategy(str, Enum):
    """The closed set of JSON libraries the service can run with."""

    JSONP = "jsonp"
    JSONB = "jsonb"
    JACKSON = "jackson"


DEFAULT_STRATEGY = SerializationStrategy.JSONP

_BY_NAME: dict[str, SerializationStrategy] = {s.value: s for s in SerializationStrategy}

_CODECS: dict[SerializationStrategy, type[Codec]] = {
    SerializationStrategy.JSONP: JsonpCodec,
    SerializationStrategy.JSONB: JsonbCodec,
    SerializationStrategy.JACKSON: JacksonCodec,
}


def resolve_strategy(config: ConfigNode) -> SerializationStrategy:
    """Read ``app.json-library`` and map it to a strategy.

    Raises:
        UnknownStrategyError: the value is not a known library name.
    """
    node = config.get(JSON_LIBRARY_KEY)
    if not node.exists():
        return DEFAULT_STRATEGY

    value = node.as_str()
    strategy = _BY_NAME.get(value.strip().lower())
    if strategy is None:
        raise UnknownStrategyError(JSON_LIBRARY_KEY, value, known=sorted(_BY_NAME))

    logger.debug("serialization_strategy_resolved", strategy=strategy.value)
    return strategy


def codec_for(strategy: SerializationStrategy) -> Codec:
    return _CODECS[strategy]()


def media_support(strategy: SerializationStrategy) -> MediaSupport:
    """The media-support unit for *strategy*."""
    return MediaSupport(codec_for(strategy))


__all__ = [
    "DEFAULT_STRATEGY",
    "JSON_LIBRARY_KEY",
    "SerializationStrategy",
    "codec_for",
    "media_support",
    "resolve_strategy",
]
