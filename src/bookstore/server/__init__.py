"""Listener bootstrap: transport resolution, TLS, and the server handle.

Quick start::

    from bookstore.server import start

    handle = start()
    handle.wait()
"""

from .bootstrap import start
from .handle import ServerHandle, ServerState
from .lifecycle import LifecycleReporter
from .transport import ServerSettings, TransportOptions, build_listener_config, resolve_transport

__all__ = [
    "LifecycleReporter",
    "ServerHandle",
    "ServerSettings",
    "ServerState",
    "TransportOptions",
    "build_listener_config",
    "resolve_transport",
    "start",
]
