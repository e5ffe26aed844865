"""
Error-handling middleware: maps bookstore errors to RFC 7807 responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bookstore.core.errors import BookstoreError, ErrorCategory
from bookstore.core.logging import get_logger

logger = get_logger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.PAYLOAD: 400,
    ErrorCategory.CONFIG: 500,
    ErrorCategory.ROUTING: 500,
    ErrorCategory.INTERNAL: 500,
}


def status_for_category(category: ErrorCategory) -> int:
    """Resolve an error category to HTTP status, defaulting to 500."""
    return CATEGORY_TO_STATUS.get(category, 500)


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs»."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str = ""
    instance: str = ""


def problem_response(*, status: int, title: str, detail: str = "", instance: str = "") -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance)
    return JSONResponse(status_code=status, content=body.model_dump(), media_type=PROBLEM_MEDIA_TYPE)


async def bookstore_error_handler(request: Request, exc: BookstoreError) -> JSONResponse:
    """Render a :class:`BookstoreError` raised while handling a request."""
    status = status_for_category(exc.category)
    if status >= 500:
        logger.error("request_failed", path=request.url.path, **exc.to_dict())
    return problem_response(
        status=status,
        title=exc.__class__.__name__,
        detail=exc.message,
        instance=request.url.path,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: returns 500 with ProblemDetail."""
    logger.exception("unhandled_exception", path=request.url.path)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred.",
        instance=request.url.path,
    )
