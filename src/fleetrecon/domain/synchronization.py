"""One sync cycle: fetch a source snapshot, store it, reconcile, record the outcome."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fleetrecon.domain.clock import utc_now
from fleetrecon.domain.errors import (
    ConcurrentSyncError,
    PersistenceError,
    SourceUnavailableError,
)
from fleetrecon.domain.model import SyncStatus
from fleetrecon.domain.state import get_or_create_schedule

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from fleetrecon.domain.clock import Clock
    from fleetrecon.domain.health import HealthMonitor
    from fleetrecon.domain.model import SourceRecord, SourceType
    from fleetrecon.domain.ports import FetchResult, InventoryUnitOfWork, SourceAdapter
    from fleetrecon.domain.reconciliation import Reconciler

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Outcome of one ``trigger_sync`` call."""

    source: SourceType
    status: SyncStatus
    count: int = 0
    duration_ms: int = 0
    error: str | None = None

    @property
    def already_running(self) -> bool:
        return self.status is SyncStatus.RUNNING

    @property
    def succeeded(self) -> bool:
        return self.status is SyncStatus.SUCCESS


@dataclass(slots=True)
class SyncExecutor:
    adapters: Mapping[SourceType, SourceAdapter]
    unit_of_work_factory: Callable[[], InventoryUnitOfWork]
    reconciler: Reconciler
    health_monitor: HealthMonitor
    clock: Clock = field(default=utc_now)
    timer: Callable[[], float] = field(default=time.monotonic)

    async def trigger_sync(self, source: SourceType) -> SyncResult:
        """Run one cycle for ``source``. Failures are reported in the result, never raised."""

        started = self.timer()
        try:
            self._mark_running(source)
        except ConcurrentSyncError as exc:
            log.warning("%s", exc)
            return SyncResult(source=source, status=SyncStatus.RUNNING, error=str(exc))
        except PersistenceError as exc:
            log.error("Could not start sync for %s: %s", source, exc)
            return SyncResult(source=source, status=SyncStatus.FAILED, error=str(exc))

        log.info("Sync started for %s", source)
        try:
            fetched = await self._fetch(source)
        except asyncio.CancelledError:
            self._finalize_failed(source, "Sync cancelled", self._elapsed_ms(started))
            raise
        except Exception as exc:  # noqa: BLE001
            error = _describe(exc)
            log.error("Sync failed for %s: %s", source, error)
            duration_ms = self._elapsed_ms(started)
            self._finalize_failed(source, error, duration_ms)
            return SyncResult(
                source=source, status=SyncStatus.FAILED, duration_ms=duration_ms, error=error
            )

        duration_ms = self._elapsed_ms(started)
        try:
            count = self._store_snapshot(source, fetched, duration_ms)
        except PersistenceError as exc:
            error = str(exc)
            log.error("Storing %s snapshot failed: %s", source, error)
            self._finalize_failed(source, error, duration_ms)
            return SyncResult(
                source=source, status=SyncStatus.FAILED, duration_ms=duration_ms, error=error
            )

        log.info("Sync finished for %s: %s records in %sms", source, count, duration_ms)
        self._after_success(source, count)
        return SyncResult(
            source=source, status=SyncStatus.SUCCESS, count=count, duration_ms=duration_ms
        )

    def _mark_running(self, source: SourceType) -> None:
        # no await between the check and the write
        with self.unit_of_work_factory() as uow:
            schedule = get_or_create_schedule(uow.repositories, source)
            if schedule.is_running:
                raise ConcurrentSyncError(source)
            schedule.mark_running()
            uow.commit()

    async def _fetch(self, source: SourceType) -> FetchResult:
        adapter = self.adapters.get(source)
        if adapter is None:
            raise SourceUnavailableError(source, f"No adapter configured for {source}")
        return await adapter.fetch_all()

    def _store_snapshot(self, source: SourceType, fetched: FetchResult, duration_ms: int) -> int:
        finished_at = self.clock()
        snapshot: dict[str, SourceRecord] = {}
        for record in fetched.records:
            if record.source_type is not source:
                log.warning(
                    "Skipping %s record %s returned by the %s adapter",
                    record.source_type,
                    record.source_id,
                    source,
                )
                continue
            if record.source_id in snapshot:
                log.debug("Duplicate %s record %s in snapshot", source, record.source_id)
            record.synced_at = finished_at
            snapshot[record.source_id] = record

        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            for record in snapshot.values():
                repositories.records.upsert(record)
            removed = repositories.records.remove_missing(source, snapshot)
            if removed:
                log.info("Removed %s %s records missing from the latest snapshot", removed, source)

            # re-read: the schedule may have been changed while the fetch was in flight
            schedule = get_or_create_schedule(repositories, source)
            schedule.finalize(
                status=SyncStatus.SUCCESS,
                finished_at=finished_at,
                count=len(snapshot),
                duration_ms=duration_ms,
                error=None,
            )
            uow.commit()
        return len(snapshot)

    def _finalize_failed(self, source: SourceType, error: str, duration_ms: int) -> None:
        try:
            with self.unit_of_work_factory() as uow:
                schedule = get_or_create_schedule(uow.repositories, source)
                schedule.finalize(
                    status=SyncStatus.FAILED,
                    finished_at=self.clock(),
                    count=0,
                    duration_ms=duration_ms,
                    error=error,
                )
                uow.commit()
        except PersistenceError:
            log.exception("Could not record failed sync for %s", source)

    def _after_success(self, source: SourceType, count: int) -> None:
        try:
            self.reconciler.reconcile()
        except PersistenceError:
            log.exception("Reconciliation after %s sync failed", source)
        try:
            self.health_monitor.update_machine_count(source, count)
        except PersistenceError:
            log.exception("Could not update machine count for %s", source)

    def _elapsed_ms(self, started: float) -> int:
        return max(0, round((self.timer() - started) * 1000))


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__
