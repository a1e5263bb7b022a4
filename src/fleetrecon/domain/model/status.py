"""Per-source schedule and availability state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from fleetrecon.domain.model.enums import HealthStatus, SyncStatus

if TYPE_CHECKING:
    from datetime import datetime

    from fleetrecon.domain.model.enums import SourceType


@dataclass(eq=False, kw_only=True)
class SyncSchedule:
    """Periodic sync configuration plus the outcome of the most recent cycle."""

    source_type: SourceType
    enabled: bool = False
    interval_minutes: int = 60
    last_sync_at: datetime | None = None
    next_sync_at: datetime | None = None
    last_sync_status: SyncStatus | None = None
    last_sync_error: str | None = None
    last_sync_count: int | None = None
    last_sync_duration: int | None = None

    @property
    def is_running(self) -> bool:
        return self.last_sync_status is SyncStatus.RUNNING

    def next_run_after(self, moment: datetime) -> datetime | None:
        if not self.enabled:
            return None
        return moment + timedelta(minutes=self.interval_minutes)

    def configure(self, *, enabled: bool, interval_minutes: int | None, now: datetime) -> None:
        self.enabled = enabled
        if interval_minutes is not None:
            self.interval_minutes = interval_minutes
        self.next_sync_at = self.next_run_after(now)

    def mark_running(self) -> None:
        self.last_sync_status = SyncStatus.RUNNING

    def mark_interrupted(self, *, reason: str, now: datetime) -> None:
        """Close out a cycle that was left running by a dead process."""

        self.last_sync_status = SyncStatus.FAILED
        self.last_sync_error = reason
        self.next_sync_at = self.next_run_after(now)

    def finalize(
        self,
        *,
        status: SyncStatus,
        finished_at: datetime,
        count: int,
        duration_ms: int,
        error: str | None,
    ) -> None:
        if status is SyncStatus.RUNNING:
            raise ValueError("A finished cycle cannot be recorded as running")
        self.last_sync_status = status
        self.last_sync_at = finished_at
        self.last_sync_count = count
        self.last_sync_duration = duration_ms
        self.last_sync_error = error
        self.next_sync_at = self.next_run_after(finished_at)


@dataclass(eq=False, kw_only=True)
class ConnectionHealth:
    source_type: SourceType
    status: HealthStatus = HealthStatus.UNKNOWN
    last_check_at: datetime | None = None
    last_success_at: datetime | None = None
    machine_count: int = 0
    response_time_ms: float | None = None
    error: str | None = None
    check_count: int = 0
    fail_count: int = 0

    def record_check(
        self,
        *,
        status: HealthStatus,
        checked_at: datetime,
        response_time_ms: float,
        error: str | None,
    ) -> None:
        self.status = status
        self.last_check_at = checked_at
        self.response_time_ms = response_time_ms
        self.error = error
        self.check_count += 1
        if status is HealthStatus.DOWN:
            self.fail_count += 1
        else:
            self.last_success_at = checked_at

    def summarize(self, *, now: datetime, stale_after: timedelta) -> HealthSummary:
        status = self.status
        # a healthy reading that nobody refreshed lately is no longer trustworthy
        if (
            status is HealthStatus.HEALTHY
            and self.last_check_at is not None
            and now - self.last_check_at > stale_after
        ):
            status = HealthStatus.DEGRADED
        uptime = (
            round((self.check_count - self.fail_count) / self.check_count * 100)
            if self.check_count > 0
            else 0
        )
        return HealthSummary(
            source_type=self.source_type,
            status=status,
            last_check_at=self.last_check_at,
            last_success_at=self.last_success_at,
            machine_count=self.machine_count,
            response_time_ms=self.response_time_ms,
            error=self.error,
            check_count=self.check_count,
            fail_count=self.fail_count,
            uptime=uptime,
        )


@dataclass(frozen=True, slots=True)
class HealthSummary:
    """Read view of a source's health as presented to callers."""

    source_type: SourceType
    status: HealthStatus
    last_check_at: datetime | None
    last_success_at: datetime | None
    machine_count: int
    response_time_ms: float | None
    error: str | None
    check_count: int
    fail_count: int
    uptime: int
