"""Tests for server settings, transport resolution and listener config."""

from __future__ import annotations

import ssl

import pytest

from bookstore.core.errors import ConfigurationError, TlsMaterialError
from bookstore.server.transport import (
    ServerSettings,
    TransportOptions,
    build_listener_config,
    resolve_transport,
)


@pytest.fixture
def tls_config(make_config, keystore, keystore_passphrase):
    return make_config({"server": {"tls": {"keystore": str(keystore), "passphrase": keystore_passphrase}}})


class TestServerSettings:
    def test_defaults_from_packaged_config(self, make_config):
        settings = ServerSettings.from_config(make_config())
        assert settings.host == "0.0.0.0"
        assert settings.port == 8080
        assert settings.backlog == 100
        assert settings.graceful_timeout == 5.0
        assert settings.tls.keystore == "certificate.p12"

    def test_empty_config_uses_model_defaults(self, make_config):
        settings = ServerSettings.from_config(make_config(defaults=False))
        assert settings.port == 8080
        assert settings.tls.passphrase is None

    def test_string_values_from_environment(self, make_config):
        settings = ServerSettings.from_config(make_config({"server": {"port": "9090"}}))
        assert settings.port == 9090

    @pytest.mark.parametrize(
        "server, key",
        [
            ({"port": 70000}, "server.port"),
            ({"port": "http"}, "server.port"),
            ({"backlog": 0}, "server.backlog"),
            ({"graceful-timeout": -1}, "server.graceful-timeout"),
        ],
    )
    def test_invalid_values(self, make_config, server, key):
        with pytest.raises(ConfigurationError) as exc:
            ServerSettings.from_config(make_config({"server": server}))
        assert exc.value.key == key

    def test_ipv6_address(self):
        assert ServerSettings(host="::1", port=1).address == "[::1]:1"


class TestTransportOptions:
    def test_context_requires_tls_flag(self):
        with pytest.raises(ValueError):
            TransportOptions(tls_enabled=False, tls_context=ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER))

    def test_tls_flag_requires_context(self):
        with pytest.raises(ValueError):
            TransportOptions(tls_enabled=True)

    def test_scheme_and_alpn(self):
        options = TransportOptions(tls_enabled=False, http2_enabled=True)
        assert options.scheme == "http"
        assert options.alpn_protocols == ["h2", "http/1.1"]
        assert TransportOptions(tls_enabled=False).alpn_protocols == ["http/1.1"]


class TestResolveTransport:
    def test_plaintext_skips_keystore(self, make_config):
        config = make_config({"server": {"tls": {"keystore": "/does/not/exist.p12"}}})
        options = resolve_transport(False, True, config)
        assert options.tls_context is None
        assert options.http2_enabled

    def test_tls_loads_keystore(self, tls_config):
        options = resolve_transport(True, False, tls_config)
        assert isinstance(options.tls_context, ssl.SSLContext)

    def test_bad_keystore_is_fatal(self, make_config):
        config = make_config({"server": {"tls": {"keystore": "/does/not/exist.p12"}}})
        with pytest.raises(TlsMaterialError):
            resolve_transport(True, False, config)


@pytest.mark.parametrize("ssl_enabled", [False, True])
@pytest.mark.parametrize("http2_enabled", [False, True])
class TestListenerConfig:
    def test_flags_carried_through(self, tls_config, ssl_enabled, http2_enabled):
        settings = ServerSettings.from_config(tls_config)
        transport = resolve_transport(ssl_enabled, http2_enabled, tls_config)
        config = build_listener_config(settings, transport)

        assert config.ssl_enabled is ssl_enabled
        assert (config.create_ssl_context() is not None) is ssl_enabled
        assert config.http2_enabled is http2_enabled
        assert ("h2" in config.alpn_protocols) is http2_enabled
        assert config.bind == ["0.0.0.0:8080"]
        assert config.backlog == 100
        assert config.graceful_timeout == 5.0
