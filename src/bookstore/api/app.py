"""
FastAPI application factory.

``create_app()`` materializes a :class:`RoutingTable` into a single
``FastAPI`` instance: each binding installs itself in table order, then the
error handlers are registered.

Tags:
    bookstore, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bookstore import __version__
from bookstore.api.middleware.errors import bookstore_error_handler, unhandled_exception_handler
from bookstore.api.routing import RoutingTable
from bookstore.core.errors import BookstoreError
from bookstore.core.logging import get_logger


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup / shutdown hooks."""
    log = get_logger("bookstore.api")
    log.info("bookstore_api_starting", version=app.version, routes=app.state.routing.names())
    yield
    log.info("bookstore_api_stopping")


def create_app(table: RoutingTable, *, title: str = "Bookstore") -> FastAPI:
    """Build a FastAPI application from a composed routing table."""
    app = FastAPI(title=title, version=__version__, lifespan=lifespan)
    app.state.routing = table

    for binding in table:
        binding.handler.install(app, binding.prefix)

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(BookstoreError, bookstore_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    return app


__all__ = ["create_app"]
