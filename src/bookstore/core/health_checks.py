"""Built-in health check units.

Each probe is an ``async`` callable returning a :class:`CheckResult`; bind
thresholds with ``functools.partial`` and wrap in a :class:`HealthCheck`.
:func:`default_health_checks` assembles the standard set from the
``health.*`` configuration section.

Features:
    - **check_disk_space():** used-space percentage of a filesystem
    - **check_threads():** live thread count of the process

Examples:
    >>> from functools import partial
    >>> from bookstore.core.health import HealthCheck
    >>> HealthCheck("diskSpace", partial(check_disk_space, "/var/lib/books"))
    HealthCheck(name='diskSpace', timeout_s=5.0)
"""

from __future__ import annotations

import asyncio
import shutil
import threading
from functools import partial

from bookstore.core.config import ConfigNode
from bookstore.core.errors import InvalidConfigError
from bookstore.core.health import CheckResult, HealthCheck, HealthStatus


def _grade(value: float, warn: float, fail: float) -> HealthStatus:
    if value >= fail:
        return HealthStatus.FAIL
    if value >= warn:
        return HealthStatus.WARN
    return HealthStatus.PASS


async def check_disk_space(path: str = ".", *, warn_percent: float = 90.0, fail_percent: float = 99.9) -> CheckResult:
    """Grade the used-space percentage of the filesystem holding *path*."""
    usage = await asyncio.to_thread(shutil.disk_usage, path)
    percent = round(usage.used * 100.0 / usage.total, 2) if usage.total else 0.0
    return CheckResult(
        status=_grade(percent, warn_percent, fail_percent),
        details={
            "path": path,
            "percent_used": percent,
            "free_bytes": usage.free,
            "total_bytes": usage.total,
        },
    )


async def check_threads(*, warn: int = 500, fail: int = 2000) -> CheckResult:
    """Grade the number of live threads in this process."""
    count = threading.active_count()
    return CheckResult(
        status=_grade(count, warn, fail),
        details={"thread_count": count},
    )


def default_health_checks(config: ConfigNode) -> list[HealthCheck]:
    """Standard check units, thresholds taken from ``health.*``."""
    disk = config.get("health.disk")
    threads = config.get("health.threads")

    warn_percent = disk.get("warn-percent").as_float(90.0)
    fail_percent = disk.get("fail-percent").as_float(99.9)
    if warn_percent > fail_percent:
        raise InvalidConfigError(
            "health.disk.warn-percent",
            warn_percent,
            "health.disk.warn-percent must not exceed health.disk.fail-percent",
        )

    return [
        HealthCheck(
            "diskSpace",
            partial(
                check_disk_space,
                disk.get("path").as_str("."),
                warn_percent=warn_percent,
                fail_percent=fail_percent,
            ),
        ),
        HealthCheck(
            "threads",
            partial(
                check_threads,
                warn=threads.get("warn").as_int(500),
                fail=threads.get("fail").as_int(2000),
            ),
        ),
    ]


__all__ = ["check_disk_space", "check_threads", "default_health_checks"]
