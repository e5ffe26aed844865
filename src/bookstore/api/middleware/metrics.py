"""Request metrics middleware: counts and times every HTTP request.

Tags:
    bookstore, api, middleware, metrics, latency, observability

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from bookstore.observability.metrics import RequestMetrics


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record ``requests_total`` and ``request_duration_seconds`` per request."""

    def __init__(self, app: ASGIApp, metrics: RequestMetrics):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        method = request.method
        self.metrics.in_flight.inc()
        start = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            self.metrics.in_flight.dec()
            self.metrics.duration.labels(method=method).observe(time.perf_counter() - start)
            self.metrics.requests.labels(method=method, status=status).inc()
