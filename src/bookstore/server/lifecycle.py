"""Operator-facing lifecycle messages for a :class:`ServerHandle`."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future

from bookstore.core.logging import get_logger
from bookstore.server.handle import ServerHandle

logger = get_logger(__name__)

Sink = Callable[[str], None]


def _log_sink(message: str) -> None:
    logger.info(message)


class LifecycleReporter:
    """Emit one line when the server comes up and one when it goes down.

    ``sink`` receives each message; the module logger is used by default.
    """

    def __init__(self, sink: Sink | None = None):
        self.sink = sink or _log_sink

    def observe(self, handle: ServerHandle) -> ServerHandle:
        handle.started.add_done_callback(lambda f: self._on_started(handle, f))
        handle.shutdown.add_done_callback(self._on_shutdown)
        return handle

    def _on_started(self, handle: ServerHandle, future: Future) -> None:
        error = future.exception()
        if error is not None:
            self.sink(f"WEB server failed to start: {error}")
            return
        transport = handle.transport
        self.sink(
            f"WEB server is up! {handle.url()} "
            f"[ssl={str(transport.tls_enabled).lower()}, http2={str(transport.http2_enabled).lower()}]"
        )

    def _on_shutdown(self, future: Future) -> None:
        error = future.exception()
        if error is not None:
            self.sink(f"WEB server stopped with error: {error}")
        else:
            self.sink("WEB server is DOWN. Good bye!")


__all__ = ["LifecycleReporter"]
