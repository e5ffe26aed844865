"""HTTP middleware and exception handlers."""

from .errors import bookstore_error_handler, problem_response, unhandled_exception_handler
from .metrics import MetricsMiddleware

__all__ = [
    "MetricsMiddleware",
    "bookstore_error_handler",
    "problem_response",
    "unhandled_exception_handler",
]
