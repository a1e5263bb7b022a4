from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from fleetrecon.adapters.azure_migrate import AzureMigrateAdapter
from fleetrecon.adapters.legacy_db import LegacyInventoryAdapter
from fleetrecon.app import build_service, build_source_adapters
from fleetrecon.config import SyncConfig
from fleetrecon.domain.model import AZURE_SOURCE, LEGACY_SOURCE, HealthStatus, MatchType
from tests.helpers.fakes import FakeSourceAdapter
from tests.helpers.records import make_azure_record, make_legacy_record
from tests.helpers.services import build_test_service

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetrecon.domain.ports import InventoryUnitOfWork
    from tests.helpers.fakes import FakeClock, FakeTimer

type UowFactory = Callable[[], InventoryUnitOfWork]

AZURE_ENV = (
    "AZURE_TENANT_ID",
    "AZURE_CLIENT_ID",
    "AZURE_CLIENT_SECRET",
    "AZURE_SUBSCRIPTION_ID",
    "AZURE_RESOURCE_GROUP",
    "AZURE_MIGRATE_PROJECT",
)


def test_full_cycle_through_the_service(
    unit_of_work_factory: UowFactory, clock: FakeClock, timer: FakeTimer
) -> None:
    azure = FakeSourceAdapter(
        AZURE_SOURCE,
        [
            make_azure_record("a1", "web01", ips=["10.0.0.1"], operating_system="Linux"),
            make_azure_record("a2", "db01", ips=["10.0.0.2"]),
            make_azure_record("a3", "orphan", ips=["10.9.9.9"]),
        ],
        timer=timer,
    )
    legacy = FakeSourceAdapter(
        LEGACY_SOURCE,
        [
            make_legacy_record("1", "web01", ips=["10.0.0.1"], wave="Wave 1"),
            make_legacy_record("2", "db01", ips=["10.0.0.2"]),
            make_legacy_record("3", "spare", ips=["10.0.0.3"]),
        ],
        timer=timer,
    )
    service = build_test_service(
        unit_of_work_factory, adapters=[azure, legacy], clock=clock, timer=timer
    )

    async def run() -> None:
        await service.start()
        assert (await service.trigger_sync(AZURE_SOURCE)).succeeded
        assert (await service.trigger_sync(LEGACY_SOURCE)).succeeded
        results = await service.check_all_health()
        assert {result.status for result in results} == {HealthStatus.HEALTHY}
        await service.stop()

    asyncio.run(run())

    overview = service.get_overview_stats()
    assert overview.azure_total == 3
    assert overview.matched_count == 2
    assert overview.match_percentage == 66.7
    assert overview.unmatched_legacy == 1

    mapping = service.set_manual_mapping("a3", "3")
    assert mapping.match_type is MatchType.MANUAL
    matching = service.get_matching_stats()
    assert matching.manual_matched == 1
    assert matching.match_percentage == 100.0

    reconciled = service.reconcile()
    assert reconciled.changed is False
    assert service.clear_manual_mapping("a3") is not None
    assert service.get_matching_stats().matched == 2

    breakdown = service.get_machine_breakdown()
    assert breakdown.by_operating_system == {"Unknown": 2, "Linux": 1}
    assert breakdown.by_wave == {"Unassigned": 2, "Wave 1": 1}

    health = {summary.source_type: summary for summary in service.get_all_health()}
    assert health[AZURE_SOURCE].machine_count == 3
    assert health[LEGACY_SOURCE].status is HealthStatus.HEALTHY


def test_stop_runs_closers_once(unit_of_work_factory: UowFactory) -> None:
    closed: list[str] = []
    service = build_service(
        adapters={},
        unit_of_work_factory=unit_of_work_factory,
        config=SyncConfig(),
    )
    service._closers.append(lambda: closed.append("legacy"))  # noqa: SLF001

    async def run() -> None:
        await service.stop()
        await service.stop()

    asyncio.run(run())

    assert closed == ["legacy"]


def test_build_source_adapters_skips_unconfigured_sources(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    for name in AZURE_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("DRMIGRATE_DATABASE_URI", raising=False)

    adapters, closers = build_source_adapters()

    assert adapters == {}
    assert closers == []


def test_build_source_adapters_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in AZURE_ENV:
        monkeypatch.setenv(name, name.lower())
    monkeypatch.setenv("DRMIGRATE_DATABASE_URI", "sqlite+pysqlite:///:memory:")

    adapters, closers = build_source_adapters()

    assert isinstance(adapters[AZURE_SOURCE], AzureMigrateAdapter)
    assert isinstance(adapters[LEGACY_SOURCE], LegacyInventoryAdapter)
    assert len(closers) == 1
    for close in closers:
        close()
