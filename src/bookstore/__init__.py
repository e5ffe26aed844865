"""
Bookstore - a configurable HTTP service bootstrap.

Serves a ``/books`` resource collection next to ``/health`` and ``/metrics``,
with the JSON codec, TLS and HTTP/2 chosen at startup.

Quick start::

    from bookstore.server import start

    handle = start(ssl_enabled=False, http2_enabled=False)
    handle.started.result(timeout=10)
"""

__version__ = "0.1.0"
