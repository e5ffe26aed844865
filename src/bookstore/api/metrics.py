"""
``/metrics`` endpoint and the routable metrics collector.

Prometheus text is the default exposition; clients sending
``Accept: application/json`` get the same samples as a JSON document.
Process gauges (uptime, threads) are refreshed on every scrape.
"""

from __future__ import annotations

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from bookstore.api.middleware.metrics import MetricsMiddleware
from bookstore.observability.metrics import (
    MetricsRegistry,
    ProcessMetrics,
    RequestMetrics,
    get_metrics_registry,
)

PROMETHEUS_MEDIA_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def _wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/plain" not in accept


def create_metrics_router(registry: MetricsRegistry, prefix: str = "/metrics") -> APIRouter:
    router = APIRouter(tags=["observability"])
    process = ProcessMetrics(registry)

    @router.get(prefix, response_class=PlainTextResponse)
    async def metrics_endpoint(request: Request) -> Response:
        """Export the registry (Prometheus text, or JSON on request)."""
        process.refresh()
        if _wants_json(request):
            return JSONResponse(content={"metrics": registry.export_json()})
        return PlainTextResponse(content=registry.export_prometheus(), media_type=PROMETHEUS_MEDIA_TYPE)

    return router


class MetricsSupport:
    """Routable metrics collector: request middleware plus the scrape endpoint."""

    kind = "router"
    provides: frozenset[str] = frozenset({"metrics"})
    requires: frozenset[str] = frozenset()

    def __init__(self, registry: MetricsRegistry | None = None):
        self.registry = registry or get_metrics_registry()

    def install(self, app: FastAPI, prefix: str) -> None:
        app.add_middleware(MetricsMiddleware, metrics=RequestMetrics(self.registry))
        app.include_router(create_metrics_router(self.registry, prefix=prefix))


__all__ = ["MetricsSupport", "create_metrics_router"]
