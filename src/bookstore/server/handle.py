"""Server handle: owns the listener, its thread and its lifecycle.

States:
    CREATED: Built, nothing bound yet
    STARTING: Sockets bound, accept loop coming up
    RUNNING: Accepting connections
    STOPPING: Draining in-flight requests
    STOPPED: Terminal, the handle cannot be restarted

Two one-shot futures mark the edges of the lifecycle.  ``started``
resolves (with the handle) once the sockets accept connections, or fails
with the error that prevented it.  ``shutdown`` resolves after the
graceful drain.

Example:
    >>> handle = ServerHandle(app, listener_config, transport)
    >>> handle.start()                      # BindError when the port is taken
    >>> handle.started.result(timeout=5)
    >>> handle.port
    8080
    >>> handle.stop().result(timeout=10)
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Any

from hypercorn.asyncio.run import worker_serve
from hypercorn.utils import wrap_app

from bookstore.core.errors import BindError, ErrorContext, LifecycleError
from bookstore.core.logging import get_logger
from bookstore.server.transport import ListenerConfig, TransportOptions

logger = get_logger(__name__)


class ServerState(str, Enum):
    """Listener lifecycle states."""

    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


_TRANSITIONS: dict[ServerState, frozenset[ServerState]] = {
    ServerState.CREATED: frozenset({ServerState.STARTING}),
    ServerState.STARTING: frozenset({ServerState.RUNNING, ServerState.STOPPING}),
    ServerState.RUNNING: frozenset({ServerState.STOPPING}),
    ServerState.STOPPING: frozenset({ServerState.STOPPED}),
    ServerState.STOPPED: frozenset(),
}


def _resolve(future: Future, result: Any = None, error: BaseException | None = None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


class ServerHandle:
    """A single listener serving one ASGI application."""

    def __init__(
        self,
        app: Any,
        config: ListenerConfig,
        transport: TransportOptions,
        *,
        service_path: str = "/books",
    ):
        self.app = app
        self.config = config
        self.transport = transport
        self.service_path = service_path

        self.started: Future[ServerHandle] = Future()
        self.shutdown: Future[ServerHandle] = Future()

        self._state = ServerState.CREATED
        self._lock = threading.RLock()
        self._sockets: Any = None
        self._port: int | None = None
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._stop_requested = False

    # ── Introspection ────────────────────────────────────────────────

    @property
    def state(self) -> ServerState:
        with self._lock:
            return self._state

    @property
    def port(self) -> int | None:
        """Bound port (the real one when ``server.port`` is 0)."""
        return self._port

    @property
    def scheme(self) -> str:
        return self.transport.scheme

    def url(self, path: str | None = None) -> str:
        return f"{self.scheme}://localhost:{self._port}{self.service_path if path is None else path}"

    def _transition(self, target: ServerState) -> None:
        with self._lock:
            if target not in _TRANSITIONS[self._state]:
                raise LifecycleError(
                    f"Illegal server transition {self._state.value} -> {target.value}",
                    context=ErrorContext(metadata={"from": self._state.value, "to": target.value}),
                )
            logger.debug("server_state_changed", old=self._state.value, new=target.value)
            self._state = target

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> ServerHandle:
        """Bind synchronously, then run the accept loop on its own thread.

        Raises:
            LifecycleError: the handle was already started.
            BindError: the address cannot be acquired.
        """
        self._transition(ServerState.STARTING)

        try:
            sockets = self.config.create_sockets()
        except OSError as e:
            error = BindError(f"Cannot bind {', '.join(self.config.bind)}: {e}", cause=e)
            error.with_context(address=", ".join(self.config.bind))
            self._abort(error)
            raise error from e

        bound = [*sockets.secure_sockets, *sockets.insecure_sockets]
        self._sockets = sockets
        self._port = bound[0].getsockname()[1] if bound else None

        self._thread = threading.Thread(target=self._run, name="bookstore-listener", daemon=False)
        self._thread.start()
        return self

    def stop(self) -> Future[ServerHandle]:
        """Request a graceful shutdown; returns the ``shutdown`` future.

        Safe to call from any thread and more than once.
        """
        with self._lock:
            if self._state is ServerState.CREATED:
                raise LifecycleError("Server was never started")
            if self._state in (ServerState.STOPPING, ServerState.STOPPED):
                return self.shutdown
            self._stop_requested = True
            loop, event = self._loop, self._stop_event

        if loop is not None and event is not None and not loop.is_closed():
            loop.call_soon_threadsafe(event.set)
        return self.shutdown

    def wait(self, timeout: float | None = None) -> ServerHandle:
        """Block until the server has shut down."""
        return self.shutdown.result(timeout)

    # ── Listener thread ──────────────────────────────────────────────

    def _run(self) -> None:
        error: BaseException | None = None
        try:
            asyncio.run(self._serve())
        except Exception as e:
            error = e
            logger.exception("listener_failed", address=", ".join(self.config.bind))
        finally:
            self._finish(error)

    async def _serve(self) -> None:
        with self._lock:
            self._loop = asyncio.get_running_loop()
            self._stop_event = asyncio.Event()
            if self._stop_requested:
                self._stop_event.set()

        await worker_serve(
            wrap_app(self.app, self.config.wsgi_max_body_size, "asgi"),
            self.config,
            sockets=self._sockets,
            shutdown_trigger=self._until_stopped,
        )

    async def _until_stopped(self) -> None:
        # hypercorn awaits the trigger only once every server is listening
        self._transition(ServerState.RUNNING)
        logger.info("listener_started", url=self.url(), tls=self.transport.tls_enabled, http2=self.transport.http2_enabled)
        _resolve(self.started, self)

        await self._stop_event.wait()
        self._transition(ServerState.STOPPING)

    def _finish(self, error: BaseException | None) -> None:
        with self._lock:
            if self._state in (ServerState.STARTING, ServerState.RUNNING):
                self._transition(ServerState.STOPPING)
            self._transition(ServerState.STOPPED)
            self._loop = None
            self._stop_event = None

        if not self.started.done():
            _resolve(self.started, error=error or LifecycleError("Listener exited before accepting connections"))
            _resolve(self.shutdown, self)
        else:
            _resolve(self.shutdown, self, error)
        logger.info("listener_stopped", port=self._port)

    def _abort(self, error: BaseException) -> None:
        with self._lock:
            self._transition(ServerState.STOPPING)
            self._transition(ServerState.STOPPED)
        _resolve(self.started, error=error)
        _resolve(self.shutdown, self)

    def __repr__(self) -> str:
        return f"ServerHandle(state={self.state.value}, port={self._port}, scheme={self.scheme})"


__all__ = ["ServerHandle", "ServerState"]
