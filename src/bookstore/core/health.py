"""Health check aggregation for the bookstore service.

Provides:

- **``HealthStatus``**: ``pass`` / ``warn`` / ``fail``, ordered by severity.
- **``HealthCheck``**: a declarative, named check unit wrapping an async
  probe with a timeout.
- **``aggregate()``**: overall status is the *worst* constituent status
  (``fail`` dominates ``warn`` dominates ``pass``; no checks means ``pass``).
  Monitoring consumers depend on this rule.
- **``create_health_router()``**: three endpoints: ``/health``,
  ``/health/ready``, ``/health/live``.
- **``HealthSupport``**: the routable unit the route composer registers.

Quick start::

    from bookstore.core.health import HealthCheck, HealthStatus, create_health_router

    async def check_catalog():
        return HealthStatus.PASS

    router = create_health_router(
        service_name="bookstore",
        version="0.1.0",
        checks=[HealthCheck("catalog", check_catalog)],
    )
    app.include_router(router)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Set when the service first imports this module
_START_TIME = time.monotonic()


class HealthStatus(str, Enum):
    """Outcome of a health check, ordered ``pass`` < ``warn`` < ``fail``."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {HealthStatus.PASS: 0, HealthStatus.WARN: 1, HealthStatus.FAIL: 2}


def aggregate(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Return the worst of *statuses* (``PASS`` when empty)."""
    return max(statuses, key=lambda s: s.severity, default=HealthStatus.PASS)


# ── Response Models ──────────────────────────────────────────────────────


class CheckResult(BaseModel):
    """Result of a single health check unit."""

    status: HealthStatus
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Body of ``GET /health``.

    Fields
    ──────
    status    : ``pass`` | ``warn`` | ``fail`` (worst of ``checks``)
    service   : Human-readable service name
    version   : Semver string
    uptime_s  : Seconds since startup
    timestamp : ISO-8601 UTC
    checks    : Per-check breakdown (name → CheckResult)
    """

    status: HealthStatus = HealthStatus.PASS
    service: str = ""
    version: str = ""
    uptime_s: float = Field(default_factory=lambda: round(time.monotonic() - _START_TIME, 1))
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    checks: dict[str, CheckResult] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    """Response for liveness probes: always ``{"status": "alive"}``."""

    status: str = "alive"


# ── Health Check Definition ──────────────────────────────────────────────

CheckOutcome = HealthStatus | CheckResult | bool


@dataclass(frozen=True)
class HealthCheck:
    """Declarative description of a single health check unit.

    Parameters
    ----------
    name : str
        Check name (e.g. ``"diskSpace"``).
    check_fn : () -> Awaitable[HealthStatus | CheckResult | bool]
        Async probe.  ``True`` means pass, ``False`` means fail; return a
        :class:`CheckResult` to attach details.  Raising counts as ``fail``.
    timeout_s : float
        Max seconds to wait before the check is considered failed.
    """

    name: str
    check_fn: Callable[[], Awaitable[CheckOutcome]] = field(compare=False, repr=False)
    timeout_s: float = 5.0


def _to_result(outcome: CheckOutcome, latency_ms: float) -> CheckResult:
    if isinstance(outcome, CheckResult):
        if outcome.latency_ms is None:
            return outcome.model_copy(update={"latency_ms": latency_ms})
        return outcome
    if isinstance(outcome, HealthStatus):
        return CheckResult(status=outcome, latency_ms=latency_ms)
    status = HealthStatus.PASS if outcome else HealthStatus.FAIL
    return CheckResult(status=status, latency_ms=latency_ms)


async def run_checks(checks: list[HealthCheck]) -> dict[str, CheckResult]:
    """Execute all checks concurrently and return a mapping of name → result."""

    async def _one(hc: HealthCheck) -> tuple[str, CheckResult]:
        start = time.monotonic()
        try:
            outcome = await asyncio.wait_for(hc.check_fn(), timeout=hc.timeout_s)
        except TimeoutError:
            return hc.name, CheckResult(status=HealthStatus.FAIL, error="timeout")
        except Exception as exc:  # noqa: BLE001
            elapsed = (time.monotonic() - start) * 1000
            return hc.name, CheckResult(
                status=HealthStatus.FAIL,
                latency_ms=round(elapsed, 2),
                error=str(exc)[:200],
            )
        elapsed = (time.monotonic() - start) * 1000
        return hc.name, _to_result(outcome, round(elapsed, 2))

    pairs = await asyncio.gather(*[_one(hc) for hc in checks])
    return dict(pairs)


# ── Router Factory ───────────────────────────────────────────────────────


def create_health_router(
    service_name: str,
    version: str,
    checks: list[HealthCheck] | None = None,
    prefix: str = "/health",
) -> APIRouter:
    """Create an ``APIRouter`` with the health endpoints.

    Endpoints created
    -----------------
    ``GET {prefix}``         Aggregate health: 503 only when ``fail``.
    ``GET {prefix}/ready``   Readiness probe: 503 unless ``pass``.
    ``GET {prefix}/live``    Liveness probe: always 200.
    """
    router = APIRouter(tags=["health"])
    _checks: list[HealthCheck] = list(checks or [])

    async def _evaluate() -> HealthResponse:
        check_results = await run_checks(_checks)
        return HealthResponse(
            status=aggregate(r.status for r in check_results.values()),
            service=service_name,
            version=version,
            checks=check_results,
        )

    @router.get(prefix, response_model=HealthResponse)
    async def health() -> JSONResponse:
        """Aggregate health: runs every check unit."""
        body = await _evaluate()
        code = 503 if body.status is HealthStatus.FAIL else 200
        return JSONResponse(content=body.model_dump(mode="json"), status_code=code)

    @router.get(f"{prefix}/ready", response_model=HealthResponse)
    async def readiness() -> JSONResponse:
        """Readiness probe: 503 on ``warn`` or ``fail``."""
        body = await _evaluate()
        code = 200 if body.status is HealthStatus.PASS else 503
        return JSONResponse(content=body.model_dump(mode="json"), status_code=code)

    @router.get(f"{prefix}/live", response_model=LivenessResponse)
    async def liveness() -> LivenessResponse:
        """Liveness probe: always 200 while the process is running."""
        return LivenessResponse()

    return router


class HealthSupport:
    """Routable health aggregator registered by the route composer."""

    kind = "router"
    provides: frozenset[str] = frozenset({"health"})
    requires: frozenset[str] = frozenset()

    def __init__(self, checks: list[HealthCheck], *, service_name: str = "bookstore", version: str = ""):
        self.checks = tuple(checks)
        self.service_name = service_name
        self.version = version

    def install(self, app: FastAPI, prefix: str) -> None:
        app.include_router(
            create_health_router(self.service_name, self.version, list(self.checks), prefix=prefix)
        )


__all__ = [
    "CheckResult",
    "HealthCheck",
    "HealthResponse",
    "HealthStatus",
    "HealthSupport",
    "LivenessResponse",
    "aggregate",
    "create_health_router",
    "run_checks",
]
