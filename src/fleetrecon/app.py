"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from fleetrecon.adapters.azure_migrate import AzureMigrateAdapter, should_cache_payload
from fleetrecon.adapters.legacy_db import LegacyInventoryAdapter
from fleetrecon.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    is_started,
    startup,
)
from fleetrecon.config import (
    MissingConfigurationError,
    SyncConfig,
    get_azure_migrate_config,
    get_legacy_inventory_config,
    get_sync_config,
)
from fleetrecon.domain.clock import utc_now
from fleetrecon.domain.health import HealthMonitor
from fleetrecon.domain.model import SourceType
from fleetrecon.domain.reconciliation import Reconciler
from fleetrecon.domain.scheduling import Scheduler, TimerRegistry
from fleetrecon.domain.statistics import StatisticsAggregator
from fleetrecon.domain.synchronization import SyncExecutor

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from fleetrecon.domain.clock import Clock
    from fleetrecon.domain.health import HealthCheckResult
    from fleetrecon.domain.model import HealthSummary, Mapping as MachineMapping, SyncSchedule
    from fleetrecon.domain.ports import InventoryUnitOfWork, SourceAdapter
    from fleetrecon.domain.reconciliation import ReconciliationResult
    from fleetrecon.domain.scheduling import Sleep
    from fleetrecon.domain.statistics import MachineBreakdown, MatchingStats, OverviewStats
    from fleetrecon.domain.synchronization import SyncResult

type UnitOfWorkFactory = Callable[[], InventoryUnitOfWork]

log = getLogger(__name__)


class InventorySyncService:
    """Wires the sync engine together and exposes its caller-facing operations."""

    def __init__(
        self,
        *,
        adapters: Mapping[SourceType, SourceAdapter],
        unit_of_work_factory: UnitOfWorkFactory,
        config: SyncConfig | None = None,
        clock: Clock = utc_now,
        sleep: Sleep = asyncio.sleep,
        timer: Callable[[], float] = time.monotonic,
        closers: Iterable[Callable[[], None]] = (),
    ) -> None:
        self.config = config or SyncConfig()
        self.adapters = dict(adapters)
        self._closers = list(closers)

        self.health_monitor = HealthMonitor(
            adapters=self.adapters,
            unit_of_work_factory=unit_of_work_factory,
            fast_response_ms=self.config.health_fast_ms,
            probe_timeout_seconds=self.config.probe_timeout_seconds,
            stale_after=timedelta(minutes=self.config.stale_health_minutes),
            clock=clock,
            timer=timer,
        )
        self.reconciler = Reconciler(
            unit_of_work_factory=unit_of_work_factory,
            auto_accept_threshold=self.config.auto_accept_threshold,
            clock=clock,
        )
        self.executor = SyncExecutor(
            adapters=self.adapters,
            unit_of_work_factory=unit_of_work_factory,
            reconciler=self.reconciler,
            health_monitor=self.health_monitor,
            clock=clock,
            timer=timer,
        )
        self.scheduler = Scheduler(
            executor=self.executor,
            unit_of_work_factory=unit_of_work_factory,
            config=self.config,
            registry=TimerRegistry(sleep=sleep),
            clock=clock,
        )
        self.statistics = StatisticsAggregator(unit_of_work_factory=unit_of_work_factory)

    async def start(self) -> int:
        return await self.scheduler.initialize_on_startup()

    async def stop(self, *, wait_for_inflight: bool = True) -> None:
        await self.scheduler.shutdown()
        if wait_for_inflight:
            await self.scheduler.wait_for_inflight()
        for close in self._closers:
            close()
        self._closers.clear()

    # schedules

    def get_schedule(self, source: SourceType) -> SyncSchedule:
        return self.scheduler.get_schedule(source)

    def get_all_schedules(self) -> list[SyncSchedule]:
        return self.scheduler.get_all_schedules()

    async def update_schedule(
        self,
        source: SourceType,
        *,
        enabled: bool,
        interval_minutes: int | None = None,
    ) -> SyncSchedule:
        return await self.scheduler.update_schedule(
            source, enabled=enabled, interval_minutes=interval_minutes
        )

    async def trigger_sync(self, source: SourceType) -> SyncResult:
        return await self.executor.trigger_sync(source)

    # health

    def get_all_health(self) -> list[HealthSummary]:
        return self.health_monitor.get_all_health()

    async def check_health(self, source: SourceType) -> HealthCheckResult:
        return await self.health_monitor.check_health(source)

    async def check_all_health(self) -> list[HealthCheckResult]:
        return await self.health_monitor.check_all_health()

    # statistics

    def get_overview_stats(self) -> OverviewStats:
        return self.statistics.get_overview_stats()

    def get_matching_stats(self) -> MatchingStats:
        return self.statistics.get_matching_stats()

    def get_machine_breakdown(self) -> MachineBreakdown:
        return self.statistics.get_machine_breakdown()

    # mappings

    def reconcile(self) -> ReconciliationResult:
        return self.reconciler.reconcile()

    def set_manual_mapping(self, azure_record_id: str, legacy_record_id: str) -> MachineMapping:
        return self.reconciler.set_manual_mapping(azure_record_id, legacy_record_id)

    def clear_manual_mapping(self, azure_record_id: str) -> MachineMapping | None:
        return self.reconciler.clear_manual_mapping(azure_record_id)


def build_source_adapters() -> tuple[dict[SourceType, SourceAdapter], list[Callable[[], None]]]:
    """Create an adapter for every source whose configuration is present."""

    adapters: dict[SourceType, SourceAdapter] = {}
    closers: list[Callable[[], None]] = []
    try:
        adapters[SourceType.AZURE_MIGRATE] = AzureMigrateAdapter(
            config=get_azure_migrate_config(cache_predicate=should_cache_payload)
        )
    except MissingConfigurationError as exc:
        log.warning("Azure Migrate source disabled: %s", exc)
    try:
        legacy = LegacyInventoryAdapter(config=get_legacy_inventory_config())
    except MissingConfigurationError as exc:
        log.warning("DrMigrate source disabled: %s", exc)
    else:
        adapters[SourceType.DRMIGRATE] = legacy
        closers.append(legacy.dispose)
    return adapters, closers


def build_service(
    *,
    adapters: Mapping[SourceType, SourceAdapter] | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    database_uri: str | None = None,
    config: SyncConfig | None = None,
) -> InventorySyncService:
    """Assemble the service from environment configuration."""

    if unit_of_work_factory is None:
        if not is_started():
            startup(database_uri=database_uri)
        unit_of_work_factory = SqlAlchemyInventoryUnitOfWork

    closers: list[Callable[[], None]] = []
    if adapters is None:
        adapters, closers = build_source_adapters()
    log.info("Configured sources: %s", ", ".join(adapters) or "none")

    return InventorySyncService(
        adapters=adapters,
        unit_of_work_factory=unit_of_work_factory,
        config=config or get_sync_config(),
        closers=closers,
    )
