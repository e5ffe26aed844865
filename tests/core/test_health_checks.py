"""Tests for the built-in health check units."""

from __future__ import annotations

import threading
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from bookstore.core.errors import InvalidConfigError
from bookstore.core.health import HealthStatus
from bookstore.core.health_checks import check_disk_space, check_threads, default_health_checks


class TestDiskSpace:
    @pytest.mark.asyncio
    async def test_reports_usage(self, tmp_path):
        result = await check_disk_space(str(tmp_path), warn_percent=100.0, fail_percent=100.0)
        assert result.details["path"] == str(tmp_path)
        assert 0.0 <= result.details["percent_used"] <= 100.0

    @pytest.mark.asyncio
    async def test_zero_thresholds_fail(self, tmp_path):
        result = await check_disk_space(str(tmp_path), warn_percent=0.0, fail_percent=0.0)
        assert result.status is HealthStatus.FAIL

    @pytest.mark.asyncio
    async def test_missing_path_raises(self, tmp_path):
        with pytest.raises(OSError):
            await check_disk_space(str(tmp_path / "absent"))

    @pytest.mark.asyncio
    async def test_usage_read_off_the_event_loop_thread(self, tmp_path):
        loop_thread = threading.get_ident()
        seen: list[int] = []

        def fake_usage(path):
            seen.append(threading.get_ident())
            return SimpleNamespace(total=100, used=10, free=90)

        with patch("bookstore.core.health_checks.shutil.disk_usage", side_effect=fake_usage):
            result = await check_disk_space(str(tmp_path))
        assert seen and seen[0] != loop_thread
        assert result.details["percent_used"] == 10.0


class TestThreads:
    @pytest.mark.asyncio
    async def test_pass_under_threshold(self):
        result = await check_threads(warn=10_000, fail=20_000)
        assert result.status is HealthStatus.PASS
        assert result.details["thread_count"] >= 1

    @pytest.mark.asyncio
    async def test_warn(self):
        result = await check_threads(warn=1, fail=10_000)
        assert result.status is HealthStatus.WARN


class TestDefaultChecks:
    def test_names(self, make_config):
        checks = default_health_checks(make_config())
        assert [c.name for c in checks] == ["diskSpace", "threads"]

    def test_defaults_when_section_missing(self, make_config):
        checks = default_health_checks(make_config(defaults=False))
        assert len(checks) == 2

    def test_inverted_thresholds_rejected(self, make_config):
        config = make_config({"health": {"disk": {"warn-percent": 99.0, "fail-percent": 50.0}}})
        with pytest.raises(InvalidConfigError):
            default_health_checks(config)

    @pytest.mark.asyncio
    async def test_thresholds_from_config(self, make_config):
        config = make_config({"health": {"threads": {"warn": 1, "fail": 1}}})
        threads = default_health_checks(config)[1]
        result = await threads.check_fn()
        assert result.status is HealthStatus.FAIL
