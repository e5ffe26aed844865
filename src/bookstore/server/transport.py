"""
Transport resolution: ``server.*`` settings, TLS and HTTP/2 flags, and the
hypercorn listener configuration built from them.

There is exactly one listener construction path.  TLS and HTTP/2 are
layered onto it independently, so all four flag combinations go through
:func:`build_listener_config`:

    ===========  =====  ===================  ===============================
    ssl_enabled  http2  alpn_protocols       negotiated
    ===========  =====  ===================  ===============================
    False        False  http/1.1             HTTP/1.1
    False        True   h2, http/1.1         HTTP/1.1, h2c upgrade
    True         False  http/1.1             HTTP/1.1 over TLS
    True         True   h2, http/1.1         HTTP/2 via ALPN, else HTTP/1.1
    ===========  =====  ===================  ===============================

Tags:
    bookstore, server, transport, tls, http2, hypercorn

Doc-Types:
    api-reference
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass

from hypercorn.config import Config
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bookstore.core.config import ConfigNode
from bookstore.core.errors import InvalidConfigError
from bookstore.core.logging import get_logger
from bookstore.server.tls import create_tls_context

logger = get_logger(__name__)

HTTP1_ALPN = ["http/1.1"]
HTTP2_ALPN = ["h2", "http/1.1"]


# ── Settings ─────────────────────────────────────────────────────────────


class TlsSettings(BaseModel):
    """``server.tls`` section."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    keystore: str = "certificate.p12"
    passphrase: str | None = None


class ServerSettings(BaseModel):
    """``server`` section of the service configuration."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=0, le=65535)
    backlog: int = Field(default=100, ge=1)
    graceful_timeout: float = Field(default=5.0, ge=0, alias="graceful-timeout")
    tls: TlsSettings = Field(default_factory=TlsSettings)

    @classmethod
    def from_config(cls, config: ConfigNode) -> ServerSettings:
        """Validate ``server.*``.

        Raises:
            InvalidConfigError: a value is missing its expected type or range.
        """
        data = config.get("server").as_dict({})
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            key = "server." + ".".join(str(p) for p in first["loc"])
            raise InvalidConfigError(key, first.get("input"), f"Invalid {key}: {first['msg']}", cause=e) from e

    @property
    def address(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


# ── Transport ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TransportOptions:
    """Resolved transport: TLS context present exactly when TLS is enabled."""

    tls_enabled: bool
    tls_context: ssl.SSLContext | None = None
    http2_enabled: bool = False

    def __post_init__(self) -> None:
        if self.tls_enabled != (self.tls_context is not None):
            raise ValueError("tls_context must be set if and only if tls_enabled is true")

    @property
    def scheme(self) -> str:
        return "https" if self.tls_enabled else "http"

    @property
    def alpn_protocols(self) -> list[str]:
        return list(HTTP2_ALPN if self.http2_enabled else HTTP1_ALPN)


def resolve_transport(ssl_enabled: bool, http2_enabled: bool, config: ConfigNode) -> TransportOptions:
    """Turn the startup flags into :class:`TransportOptions`.

    Raises:
        TlsMaterialError: TLS was requested and the keystore cannot be used.
    """
    context = None
    if ssl_enabled:
        tls = ServerSettings.from_config(config).tls
        context = create_tls_context(tls.keystore, tls.passphrase)
    options = TransportOptions(tls_enabled=ssl_enabled, tls_context=context, http2_enabled=http2_enabled)
    logger.debug("transport_resolved", tls=options.tls_enabled, http2=options.http2_enabled)
    return options


# ── Listener ─────────────────────────────────────────────────────────────


class ListenerConfig(Config):
    """hypercorn ``Config`` driven by an in-memory ``SSLContext``."""

    tls_context: ssl.SSLContext | None = None
    http2_enabled: bool = False

    @property
    def ssl_enabled(self) -> bool:
        return self.tls_context is not None

    def create_ssl_context(self) -> ssl.SSLContext | None:
        if self.tls_context is None:
            return None
        self.tls_context.set_alpn_protocols(self.alpn_protocols)
        return self.tls_context


def build_listener_config(settings: ServerSettings, transport: TransportOptions) -> ListenerConfig:
    """Single construction path for the listener, whatever the flags."""
    config = ListenerConfig()
    config.bind = [settings.address]
    config.backlog = settings.backlog
    config.graceful_timeout = settings.graceful_timeout
    config.tls_context = transport.tls_context
    config.http2_enabled = transport.http2_enabled
    config.alpn_protocols = transport.alpn_protocols
    return config


__all__ = [
    "ListenerConfig",
    "ServerSettings",
    "TlsSettings",
    "TransportOptions",
    "build_listener_config",
    "resolve_transport",
]
