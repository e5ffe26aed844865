"""
Media support: makes the selected codec available to every request.

:class:`MediaSupportMiddleware` is a plain ASGI middleware that stores the
codec on the request state.  Handlers obtain it through the
:func:`get_codec` dependency; a handler mounted without media support
fails loudly instead of guessing a wire format.

Usage::

    @router.get("/{isbn}")
    async def get_book(isbn: str, codec: CodecDep) -> Response:
        return encode(codec, store.get(isbn))
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from bookstore.core.errors import ErrorContext, RoutingCompositionError
from bookstore.media.codecs import Codec


class MediaSupportMiddleware:
    """Attach *codec* to ``scope["state"]`` for HTTP and WebSocket scopes."""

    def __init__(self, app: ASGIApp, codec: Codec):
        self.app = app
        self.codec = codec

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            scope.setdefault("state", {})["codec"] = self.codec
        await self.app(scope, receive, send)


class MediaSupport:
    """Routable unit installing the codec middleware application-wide."""

    kind = "middleware"
    provides: frozenset[str] = frozenset({"media"})
    requires: frozenset[str] = frozenset()

    def __init__(self, codec: Codec):
        self.codec = codec

    def install(self, app: FastAPI, prefix: str) -> None:
        app.add_middleware(MediaSupportMiddleware, codec=self.codec)

    def __repr__(self) -> str:
        return f"MediaSupport({self.codec!r})"


def get_codec(request: Request) -> Codec:
    """Return the request's codec, or fail if media support is not installed."""
    codec = getattr(request.state, "codec", None)
    if codec is None:
        raise RoutingCompositionError(
            "No media support registered for this route",
            context=ErrorContext(resource=request.url.path),
        )
    return codec


CodecDep = Annotated[Codec, Depends(get_codec)]


def encode(codec: Codec, value: Any, status_code: int = 200) -> Response:
    """Render *value* through *codec* as a response."""
    return Response(content=codec.write(value), status_code=status_code, media_type=codec.media_type)


__all__ = [
    "CodecDep",
    "MediaSupport",
    "MediaSupportMiddleware",
    "encode",
    "get_codec",
]
