from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from fleetrecon.domain.errors import SourceUnavailableError
from fleetrecon.domain.health import HealthMonitor, classify
from fleetrecon.domain.model import AZURE_SOURCE, LEGACY_SOURCE, HealthStatus
from tests.helpers.fakes import START, FakeSourceAdapter

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetrecon.domain.ports import InventoryUnitOfWork
    from tests.helpers.fakes import FakeClock, FakeTimer

type UowFactory = Callable[[], InventoryUnitOfWork]


@pytest.fixture
def azure(timer: FakeTimer) -> FakeSourceAdapter:
    return FakeSourceAdapter(AZURE_SOURCE, timer=timer, probe_seconds=0.25)


@pytest.fixture
def legacy(timer: FakeTimer) -> FakeSourceAdapter:
    return FakeSourceAdapter(LEGACY_SOURCE, timer=timer, probe_seconds=0.05)


@pytest.fixture
def monitor(
    unit_of_work_factory: UowFactory,
    azure: FakeSourceAdapter,
    legacy: FakeSourceAdapter,
    clock: FakeClock,
    timer: FakeTimer,
) -> HealthMonitor:
    return HealthMonitor(
        adapters={AZURE_SOURCE: azure, LEGACY_SOURCE: legacy},
        unit_of_work_factory=unit_of_work_factory,
        fast_response_ms=2000.0,
        probe_timeout_seconds=0.05,
        clock=clock,
        timer=timer,
    )


def test_classify_by_response_time() -> None:
    assert classify(2000.0, 2000.0) is HealthStatus.HEALTHY
    assert classify(2000.1, 2000.0) is HealthStatus.DEGRADED


def test_fast_probe_is_healthy(monitor: HealthMonitor) -> None:
    result = asyncio.run(monitor.check_health(AZURE_SOURCE))

    assert result.status is HealthStatus.HEALTHY
    assert result.response_time_ms == 250.0
    assert result.error is None
    summary = monitor.get_health(AZURE_SOURCE)
    assert summary.status is HealthStatus.HEALTHY
    assert summary.last_check_at == START
    assert summary.last_success_at == START
    assert summary.response_time_ms == 250.0
    assert summary.uptime == 100


def test_slow_probe_is_degraded(monitor: HealthMonitor, azure: FakeSourceAdapter) -> None:
    azure.probe_seconds = 3.0

    result = asyncio.run(monitor.check_health(AZURE_SOURCE))

    assert result.status is HealthStatus.DEGRADED
    assert result.response_time_ms == 3000.0


def test_failed_probe_marks_source_down(
    monitor: HealthMonitor, legacy: FakeSourceAdapter
) -> None:
    legacy.probe_error = SourceUnavailableError(LEGACY_SOURCE, "connection refused")

    result = asyncio.run(monitor.check_health(LEGACY_SOURCE))

    assert result.status is HealthStatus.DOWN
    assert result.error == "connection refused"
    summary = monitor.get_health(LEGACY_SOURCE)
    assert summary.status is HealthStatus.DOWN
    assert summary.fail_count == 1
    assert summary.last_success_at is None
    assert summary.uptime == 0


def test_probe_timeout_marks_source_down(
    monitor: HealthMonitor, azure: FakeSourceAdapter
) -> None:
    azure.probe_delay = 5.0

    result = asyncio.run(monitor.check_health(AZURE_SOURCE))

    assert result.status is HealthStatus.DOWN
    assert result.error == "Probe timed out after 0.05s"


def test_missing_adapter_is_down(unit_of_work_factory: UowFactory, clock: FakeClock) -> None:
    monitor = HealthMonitor(adapters={}, unit_of_work_factory=unit_of_work_factory, clock=clock)

    result = asyncio.run(monitor.check_health(LEGACY_SOURCE))

    assert result.status is HealthStatus.DOWN
    assert result.error == "No adapter configured for drmigrate"


def test_uptime_tracks_failed_checks(monitor: HealthMonitor, azure: FakeSourceAdapter) -> None:
    async def run() -> None:
        await monitor.check_health(AZURE_SOURCE)
        await monitor.check_health(AZURE_SOURCE)
        azure.probe_error = SourceUnavailableError(AZURE_SOURCE, "Azure API error: 503")
        await monitor.check_health(AZURE_SOURCE)

    asyncio.run(run())

    summary = monitor.get_health(AZURE_SOURCE)
    assert summary.check_count == 3
    assert summary.fail_count == 1
    assert summary.uptime == 67
    assert summary.last_success_at == START


def test_stale_healthy_reading_is_reported_degraded(
    monitor: HealthMonitor, clock: FakeClock
) -> None:
    asyncio.run(monitor.check_health(AZURE_SOURCE))

    clock.advance(minutes=16)

    assert monitor.get_health(AZURE_SOURCE).status is HealthStatus.DEGRADED


def test_unchecked_sources_are_unknown(monitor: HealthMonitor) -> None:
    summaries = monitor.get_all_health()

    assert [summary.source_type for summary in summaries] == [AZURE_SOURCE, LEGACY_SOURCE]
    assert all(summary.status is HealthStatus.UNKNOWN for summary in summaries)


def test_unexpected_adapter_error_marks_source_down(
    monitor: HealthMonitor, legacy: FakeSourceAdapter
) -> None:
    legacy.probe_error = RuntimeError("driver crashed")

    result = asyncio.run(monitor.check_health(LEGACY_SOURCE))

    assert result.status is HealthStatus.DOWN
    assert result.error == "driver crashed"
    summary = monitor.get_health(LEGACY_SOURCE)
    assert summary.status is HealthStatus.DOWN
    assert summary.error == "driver crashed"
    assert summary.fail_count == 1


def test_check_all_health_isolates_failing_probe(
    monitor: HealthMonitor, legacy: FakeSourceAdapter
) -> None:
    legacy.probe_error = RuntimeError("driver crashed")

    results = asyncio.run(monitor.check_all_health())

    assert [result.source for result in results] == [AZURE_SOURCE, LEGACY_SOURCE]
    assert [result.status for result in results] == [HealthStatus.HEALTHY, HealthStatus.DOWN]
    assert monitor.get_health(AZURE_SOURCE).status is HealthStatus.HEALTHY
    assert monitor.get_health(LEGACY_SOURCE).status is HealthStatus.DOWN


def test_machine_count_is_kept_with_health(monitor: HealthMonitor) -> None:
    monitor.update_machine_count(LEGACY_SOURCE, 42)
    asyncio.run(monitor.check_health(LEGACY_SOURCE))

    assert monitor.get_health(LEGACY_SOURCE).machine_count == 42
