"""
Service bootstrap: from flags and configuration to a listening server.

``start()`` runs the whole startup sequence on the calling thread and
returns once the sockets are bound::

    configuration  →  logging  →  server.* settings  →  transport (TLS, HTTP/2)
        →  serialization strategy  →  routing table  →  FastAPI app
        →  listener config  →  ServerHandle.start()

Every step that can fail raises a :class:`BookstoreError` before anything
is bound, so a bad ``app.json-library`` or an unreadable keystore never
leaves a half-started listener behind.

Example::

    from bookstore.server import start

    handle = start(ssl_enabled=True, http2_enabled=True)
    handle.started.result(timeout=10)
    ...
    handle.stop().result()

Tags:
    bookstore, server, bootstrap, startup, composition

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pathlib import Path

from bookstore.api.app import create_app
from bookstore.api.routing import Routable, compose
from bookstore.core.config import ConfigNode, load_config
from bookstore.core.errors import InvalidConfigError
from bookstore.core.health import HealthCheck
from bookstore.core.logging import configure_logging, get_logger
from bookstore.core.settings import BookstoreSettings, get_settings
from bookstore.media.strategy import resolve_strategy
from bookstore.observability.metrics import MetricsRegistry
from bookstore.server.handle import ServerHandle
from bookstore.server.lifecycle import LifecycleReporter
from bookstore.server.transport import ServerSettings, build_listener_config, resolve_transport

logger = get_logger(__name__)

_LOG_FORMATS: dict[str, bool | None] = {"auto": None, "json": True, "console": False}


def setup_logging(config: ConfigNode, settings: BookstoreSettings) -> None:
    """Configure logging from ``logging.*``, falling back to process settings."""
    level = config.get("logging.level").as_str(settings.log_level)
    fmt = config.get("logging.format").as_str(settings.log_format).lower()
    if fmt not in _LOG_FORMATS:
        raise InvalidConfigError("logging.format", fmt, f"logging.format must be one of: {', '.join(_LOG_FORMATS)}")
    configure_logging(level=level, json_format=_LOG_FORMATS[fmt], service=settings.service_name)


def start(
    ssl_enabled: bool = False,
    http2_enabled: bool = False,
    config: ConfigNode | str | Path | None = None,
    *,
    service: Routable | None = None,
    registry: MetricsRegistry | None = None,
    checks: list[HealthCheck] | None = None,
    reporter: LifecycleReporter | None = None,
) -> ServerHandle:
    """Build the service and bind its listener.

    Parameters
    ----------
    ssl_enabled:
        Serve HTTPS with the keystore named by ``server.tls.keystore``.
    http2_enabled:
        Offer HTTP/2 (ALPN ``h2`` on TLS listeners).
    config:
        A loaded :class:`ConfigNode`, a TOML file path, or ``None`` to load
        the standard cascade.
    service, registry, checks:
        Overrides passed through to :func:`~bookstore.api.routing.compose`.
    reporter:
        Lifecycle reporter observing the handle (logs by default).

    Raises
    ------
    ConfigurationError
        Invalid configuration, including an unknown ``app.json-library``.
    TlsMaterialError
        TLS requested but the keystore cannot be used.
    BindError
        The listen address is unavailable.
    """
    settings = get_settings()
    if not isinstance(config, ConfigNode):
        config = load_config(config, settings=settings)

    setup_logging(config, settings)

    server = ServerSettings.from_config(config)
    transport = resolve_transport(ssl_enabled, http2_enabled, config)
    strategy = resolve_strategy(config)

    table = compose(config, strategy, service, registry=registry, checks=checks)
    app = create_app(table)

    listener = build_listener_config(server, transport)
    handle = ServerHandle(app, listener, transport, service_path=table.find("books").prefix)
    (reporter or LifecycleReporter()).observe(handle)

    logger.info(
        "server_starting",
        address=server.address,
        strategy=strategy.value,
        tls=transport.tls_enabled,
        http2=transport.http2_enabled,
    )
    return handle.start()


__all__ = ["setup_logging", "start"]
