"""Observability primitives: in-process metrics with Prometheus export."""

from .metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    ProcessMetrics,
    RequestMetrics,
    get_metrics_registry,
)

__all__ = [
    "Counter",
    "Gauge",
    "Histogram",
    "MetricsRegistry",
    "ProcessMetrics",
    "RequestMetrics",
    "get_metrics_registry",
]
