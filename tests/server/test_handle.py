"""Tests for ServerHandle: state machine and a real listener on localhost."""

from __future__ import annotations

import socket
import ssl

import httpx
import pytest
from fastapi import FastAPI

from bookstore.core.errors import BindError, LifecycleError
from bookstore.server.handle import ServerHandle, ServerState
from bookstore.server.transport import ServerSettings, build_listener_config, resolve_transport

pytestmark = pytest.mark.network

TIMEOUT = 10


def _app() -> FastAPI:
    app = FastAPI()

    @app.get("/books")
    async def books():
        return []

    return app


def _handle(config, ssl_enabled=False, http2_enabled=False) -> ServerHandle:
    settings = ServerSettings.from_config(config)
    transport = resolve_transport(ssl_enabled, http2_enabled, config)
    return ServerHandle(_app(), build_listener_config(settings, transport), transport)


@pytest.fixture
def running():
    handles: list[ServerHandle] = []

    def _start(handle: ServerHandle) -> ServerHandle:
        handles.append(handle)
        handle.start()
        handle.started.result(timeout=TIMEOUT)
        return handle

    yield _start
    for handle in handles:
        if handle.state not in (ServerState.CREATED, ServerState.STOPPED):
            handle.stop().result(timeout=TIMEOUT)


class TestStateMachine:
    def test_created(self, local_config):
        handle = _handle(local_config())
        assert handle.state is ServerState.CREATED
        assert handle.port is None
        assert not handle.started.done()

    def test_stop_before_start(self, local_config):
        with pytest.raises(LifecycleError):
            _handle(local_config()).stop()

    def test_full_lifecycle(self, local_config, running):
        handle = running(_handle(local_config()))
        assert handle.state is ServerState.RUNNING
        assert handle.started.result() is handle
        assert handle.port > 0

        assert handle.stop().result(timeout=TIMEOUT) is handle
        assert handle.state is ServerState.STOPPED

    def test_stop_is_idempotent(self, local_config, running):
        handle = running(_handle(local_config()))
        first = handle.stop()
        assert handle.stop() is first
        first.result(timeout=TIMEOUT)
        assert handle.stop() is first

    def test_cannot_restart(self, local_config, running):
        handle = running(_handle(local_config()))
        handle.stop().result(timeout=TIMEOUT)
        with pytest.raises(LifecycleError):
            handle.start()

    def test_cannot_start_twice(self, local_config, running):
        handle = running(_handle(local_config()))
        with pytest.raises(LifecycleError):
            handle.start()


class TestBind:
    def test_port_in_use(self, local_config):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen()
            port = blocker.getsockname()[1]

            handle = _handle(local_config({"server": {"port": port}}))
            with pytest.raises(BindError) as exc:
                handle.start()

        assert str(port) in exc.value.context.address
        assert handle.state is ServerState.STOPPED
        assert isinstance(handle.started.exception(), BindError)
        assert handle.shutdown.done()


class TestServing:
    def test_http1_plaintext(self, local_config, running):
        handle = running(_handle(local_config()))
        resp = httpx.get(f"http://127.0.0.1:{handle.port}/books", timeout=TIMEOUT)
        assert resp.status_code == 200
        assert resp.json() == []
        assert handle.url() == f"http://localhost:{handle.port}/books"

    @pytest.mark.parametrize("http2_enabled, expected", [(True, "h2"), (False, "http/1.1")])
    def test_tls_alpn(self, local_config, keystore, keystore_passphrase, running, http2_enabled, expected):
        config = local_config({"server": {"tls": {"keystore": str(keystore), "passphrase": keystore_passphrase}}})
        handle = running(_handle(config, ssl_enabled=True, http2_enabled=http2_enabled))

        client_ctx = ssl.create_default_context()
        client_ctx.check_hostname = False
        client_ctx.verify_mode = ssl.CERT_NONE
        client_ctx.set_alpn_protocols(["h2", "http/1.1"])
        with socket.create_connection(("127.0.0.1", handle.port), timeout=TIMEOUT) as raw:
            with client_ctx.wrap_socket(raw, server_hostname="localhost") as tls:
                assert tls.selected_alpn_protocol() == expected

    def test_https_request(self, local_config, keystore, keystore_passphrase, running):
        config = local_config({"server": {"tls": {"keystore": str(keystore), "passphrase": keystore_passphrase}}})
        handle = running(_handle(config, ssl_enabled=True))
        assert handle.url().startswith("https://localhost:")
        resp = httpx.get(f"https://127.0.0.1:{handle.port}/books", verify=False, timeout=TIMEOUT)
        assert resp.status_code == 200
