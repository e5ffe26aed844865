"""Prometheus-style metrics for the bookstore service.

Metric types:
- Counter: Monotonically increasing value
- Gauge: Value that can go up or down
- Histogram: Distribution of values

Metrics live in a :class:`MetricsRegistry`; the process-wide default is
returned by :func:`get_metrics_registry`.  The registry is exported as
Prometheus text or as a JSON-ready list by the ``/metrics`` endpoint.

Example:
    >>> from bookstore.observability.metrics import get_metrics_registry
    >>>
    >>> registry = get_metrics_registry()
    >>> registry.counter("requests_total", labels=["method"]).labels(method="GET").inc()
    >>> with registry.histogram("request_duration_seconds").labels().time():
    ...     pass
"""

import os
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

_PROCESS_START = time.time()


@dataclass(frozen=True)
class Labels:
    """Immutable label set for metrics."""

    _labels: tuple[tuple[str, str], ...]

    @classmethod
    def from_dict(cls, d: dict[str, str] | None) -> "Labels":
        """Create from dictionary."""
        if not d:
            return cls(())
        return cls(tuple(sorted((k, str(v)) for k, v in d.items())))

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return dict(self._labels)


class Metric(ABC):
    """Base class for metrics."""

    metric_type = "untyped"

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._lock = threading.Lock()

    @abstractmethod
    def collect(self) -> list[dict[str, Any]]:
        """Collect metric values for export."""
        ...


class Counter(Metric):
    """A monotonically increasing counter (request counts, error counts)."""

    metric_type = "counter"

    def __init__(self, name: str, description: str = "", labels: list[str] | None = None):
        super().__init__(name, description)
        self._label_names = labels or []
        self._values: dict[Labels, float] = {}

    def labels(self, **kwargs: str) -> "CounterChild":
        """Get counter with specific labels."""
        return CounterChild(self, Labels.from_dict(kwargs))

    def inc(self, value: float = 1.0) -> None:
        """Increment counter (no labels)."""
        self.labels().inc(value)

    def _inc(self, labels: Labels, value: float) -> None:
        with self._lock:
            self._values[labels] = self._values.get(labels, 0.0) + value

    def _get(self, labels: Labels) -> float:
        with self._lock:
            return self._values.get(labels, 0.0)

    def collect(self) -> list[dict[str, Any]]:
        with self._lock:
            return [
                {
                    "name": self.name,
                    "type": "counter",
                    "labels": labels.to_dict(),
                    "value": value,
                }
                for labels, value in self._values.items()
            ]


class CounterChild:
    """Counter with fixed labels."""

    def __init__(self, counter: Counter, labels: Labels):
        self._counter = counter
        self._labels = labels

    def inc(self, value: float = 1.0) -> None:
        """Increment the counter."""
        if value < 0:
            raise ValueError("Counter can only increase")
        self._counter._inc(self._labels, value)

    @property
    def value(self) -> float:
        return self._counter._get(self._labels)


class Gauge(Metric):
    """A value that can go up or down (in-flight requests, uptime)."""

    metric_type = "gauge"

    def __init__(self, name: str, description: str = "", labels: list[str] | None = None):
        super().__init__(name, description)
        self._label_names = labels or []
        self._values: dict[Labels, float] = {}

    def labels(self, **kwargs: str) -> "GaugeChild":
        """Get gauge with specific labels."""
        return GaugeChild(self, Labels.from_dict(kwargs))

    def set(self, value: float) -> None:
        self.labels().set(value)

    def inc(self, value: float = 1.0) -> None:
        self.labels().inc(value)

    def dec(self, value: float = 1.0) -> None:
        self.labels().dec(value)

    def _set(self, labels: Labels, value: float) -> None:
        with self._lock:
            self._values[labels] = value

    def _add(self, labels: Labels, value: float) -> None:
        with self._lock:
            self._values[labels] = self._values.get(labels, 0.0) + value

    def _get(self, labels: Labels) -> float:
        with self._lock:
            return self._values.get(labels, 0.0)

    def collect(self) -> list[dict[str, Any]]:
        with self._lock:
            return [
                {
                    "name": self.name,
                    "type": "gauge",
                    "labels": labels.to_dict(),
                    "value": value,
                }
                for labels, value in self._values.items()
            ]


class GaugeChild:
    """Gauge with fixed labels."""

    def __init__(self, gauge: Gauge, labels: Labels):
        self._gauge = gauge
        self._labels = labels

    def set(self, value: float) -> None:
        self._gauge._set(self._labels, value)

    def inc(self, value: float = 1.0) -> None:
        self._gauge._add(self._labels, value)

    def dec(self, value: float = 1.0) -> None:
        self._gauge._add(self._labels, -value)

    @property
    def value(self) -> float:
        return self._gauge._get(self._labels)


class Histogram(Metric):
    """A distribution of values (request latency, payload sizes)."""

    metric_type = "histogram"

    DEFAULT_BUCKETS = (
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        float("inf"),
    )

    def __init__(
        self,
        name: str,
        description: str = "",
        labels: list[str] | None = None,
        buckets: tuple[float, ...] | None = None,
    ):
        super().__init__(name, description)
        self._label_names = labels or []
        self._buckets = buckets or self.DEFAULT_BUCKETS
        self._data: dict[Labels, dict[str, Any]] = {}

    def labels(self, **kwargs: str) -> "HistogramChild":
        """Get histogram with specific labels."""
        return HistogramChild(self, Labels.from_dict(kwargs))

    def observe(self, value: float) -> None:
        """Record an observation (no labels)."""
        self.labels().observe(value)

    def _empty(self) -> dict[str, Any]:
        return {"buckets": dict.fromkeys(self._buckets, 0), "sum": 0.0, "count": 0}

    def _observe(self, labels: Labels, value: float) -> None:
        with self._lock:
            data = self._data.setdefault(labels, self._empty())
            data["sum"] += value
            data["count"] += 1
            for bucket in self._buckets:
                if value <= bucket:
                    data["buckets"][bucket] += 1

    def _get(self, labels: Labels) -> dict[str, Any]:
        with self._lock:
            return self._data.get(labels, self._empty())

    def collect(self) -> list[dict[str, Any]]:
        with self._lock:
            return [
                {
                    "name": self.name,
                    "type": "histogram",
                    "labels": labels.to_dict(),
                    "buckets": dict(data["buckets"]),
                    "sum": data["sum"],
                    "count": data["count"],
                }
                for labels, data in self._data.items()
            ]


class HistogramChild:
    """Histogram with fixed labels."""

    def __init__(self, histogram: Histogram, labels: Labels):
        self._histogram = histogram
        self._labels = labels

    def observe(self, value: float) -> None:
        self._histogram._observe(self._labels, value)

    def time(self) -> "Timer":
        """Context manager to time a block and record duration."""
        return Timer(self)

    @property
    def data(self) -> dict[str, Any]:
        return self._histogram._get(self._labels)


class Timer:
    """Context manager for timing operations."""

    def __init__(self, histogram_child: HistogramChild):
        self._histogram_child = histogram_child
        self._start: float | None = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        duration = time.perf_counter() - self._start
        self._histogram_child.observe(duration)


def _format_labels(labels: dict[str, str]) -> str:
    if not labels:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in labels.items()) + "}"


def _format_bucket(bucket: float) -> str:
    return "+Inf" if bucket == float("inf") else repr(bucket)


class MetricsRegistry:
    """Registry of all metrics for collection and export."""

    def __init__(self):
        self._metrics: dict[str, Metric] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, cls: type[Metric], name: str, *args: Any) -> Any:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = cls(name, *args)
            elif not isinstance(metric, cls):
                raise ValueError(f"Metric {name!r} already registered as {metric.metric_type}")
            return metric

    def counter(self, name: str, description: str = "", labels: list[str] | None = None) -> Counter:
        """Get or create a counter."""
        return self._get_or_create(Counter, name, description, labels)

    def gauge(self, name: str, description: str = "", labels: list[str] | None = None) -> Gauge:
        """Get or create a gauge."""
        return self._get_or_create(Gauge, name, description, labels)

    def histogram(
        self,
        name: str,
        description: str = "",
        labels: list[str] | None = None,
        buckets: tuple[float, ...] | None = None,
    ) -> Histogram:
        """Get or create a histogram."""
        return self._get_or_create(Histogram, name, description, labels, buckets)

    def metrics(self) -> list[Metric]:
        with self._lock:
            return list(self._metrics.values())

    def collect(self) -> list[dict[str, Any]]:
        """Collect all metrics."""
        results = []
        for metric in self.metrics():
            results.extend(metric.collect())
        return results

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        for metric in self.metrics():
            samples = metric.collect()
            if not samples:
                continue
            if metric.description:
                lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.metric_type}")

            for data in samples:
                labels = data.get("labels", {})
                label_str = _format_labels(labels)

                if data["type"] in ("counter", "gauge"):
                    lines.append(f"{metric.name}{label_str} {data['value']}")
                elif data["type"] == "histogram":
                    for bucket, count in data["buckets"].items():
                        bucket_labels = _format_labels({**labels, "le": _format_bucket(bucket)})
                        lines.append(f"{metric.name}_bucket{bucket_labels} {count}")
                    lines.append(f"{metric.name}_sum{label_str} {data['sum']}")
                    lines.append(f"{metric.name}_count{label_str} {data['count']}")

        return "\n".join(lines) + "\n" if lines else ""

    def export_json(self) -> list[dict[str, Any]]:
        """Export metrics as JSON-ready dicts (bucket bounds as strings)."""
        exported = []
        for data in self.collect():
            if data["type"] == "histogram":
                data = {**data, "buckets": {_format_bucket(b): c for b, c in data["buckets"].items()}}
            exported.append(data)
        return exported


# Global registry
_default_registry = MetricsRegistry()


def get_metrics_registry() -> MetricsRegistry:
    """Get the default metrics registry."""
    return _default_registry


class RequestMetrics:
    """Pre-defined metrics updated for every HTTP request."""

    def __init__(self, registry: MetricsRegistry | None = None):
        reg = registry or _default_registry

        self.requests = reg.counter(
            "requests_total",
            "Total HTTP requests handled",
            ["method", "status"],
        )
        self.duration = reg.histogram(
            "request_duration_seconds",
            "HTTP request duration in seconds",
            ["method"],
        )
        self.in_flight = reg.gauge(
            "requests_in_flight",
            "HTTP requests currently being handled",
        )


class ProcessMetrics:
    """Base process metrics, refreshed on every scrape."""

    def __init__(self, registry: MetricsRegistry | None = None):
        reg = registry or _default_registry

        self.uptime = reg.gauge("process_uptime_seconds", "Seconds since the process started")
        self.threads = reg.gauge("process_threads", "Live threads in the process")
        self.pid = reg.gauge("process_pid", "Process identifier")

    def refresh(self) -> None:
        self.uptime.set(round(time.time() - _PROCESS_START, 3))
        self.threads.set(threading.active_count())
        self.pid.set(os.getpid())
