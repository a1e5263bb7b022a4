"""Per-source periodic sync timers.

Each enabled source owns one timer task in a ``TimerRegistry``. A timer sleeps,
then runs the sync cycle in its own task and waits for it behind
``asyncio.shield``: cancelling the timer (disable, reschedule, shutdown) stops
future firings but lets a cycle that already started finish and write its
result.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fleetrecon.config.sync import SyncConfig
from fleetrecon.domain.clock import utc_now
from fleetrecon.domain.errors import ValidationError
from fleetrecon.domain.model import SourceType
from fleetrecon.domain.state import get_or_create_schedule

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fleetrecon.domain.clock import Clock
    from fleetrecon.domain.model import SyncSchedule
    from fleetrecon.domain.ports import InventoryUnitOfWork
    from fleetrecon.domain.synchronization import SyncExecutor

log = logging.getLogger(__name__)

INTERRUPTED_ERROR = "Interrupted by process restart"

type TickCallback = Callable[[SourceType], Awaitable[object]]
type Sleep = Callable[[float], Awaitable[None]]


class TimerRegistry:
    """Owns at most one running timer task per source."""

    def __init__(self, *, sleep: Sleep = asyncio.sleep) -> None:
        self._sleep = sleep
        self._timers: dict[SourceType, asyncio.Task[None]] = {}
        self._inflight: set[asyncio.Task[None]] = set()

    def start(
        self,
        source: SourceType,
        interval_seconds: float,
        callback: TickCallback,
        *,
        first_delay_seconds: float | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Timer interval must be positive")
        self.cancel(source)
        first_delay = interval_seconds if first_delay_seconds is None else first_delay_seconds
        self._timers[source] = asyncio.get_running_loop().create_task(
            self._run(source, interval_seconds, callback, max(0.0, first_delay)),
            name=f"sync-timer:{source}",
        )
        log.debug("Timer for %s started (every %ss)", source, interval_seconds)

    def cancel(self, source: SourceType) -> bool:
        task = self._timers.pop(source, None)
        if task is None:
            return False
        task.cancel()
        log.debug("Timer for %s cancelled", source)
        return True

    async def cancel_all(self) -> None:
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for every tick that already fired."""

        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def is_active(self, source: SourceType) -> bool:
        task = self._timers.get(source)
        return task is not None and not task.done()

    @property
    def active_sources(self) -> list[SourceType]:
        return [source for source in self._timers if self.is_active(source)]

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def _run(
        self,
        source: SourceType,
        interval_seconds: float,
        callback: TickCallback,
        first_delay: float,
    ) -> None:
        delay = first_delay
        while True:
            await self._sleep(delay)
            tick = asyncio.create_task(self._fire(source, callback), name=f"sync-tick:{source}")
            self._inflight.add(tick)
            tick.add_done_callback(self._inflight.discard)
            await asyncio.shield(tick)
            delay = interval_seconds

    async def _fire(self, source: SourceType, callback: TickCallback) -> None:
        try:
            await callback(source)
        except Exception:
            log.exception("Scheduled sync tick for %s failed", source)


@dataclass(slots=True)
class Scheduler:
    executor: SyncExecutor
    unit_of_work_factory: Callable[[], InventoryUnitOfWork]
    config: SyncConfig = field(default_factory=SyncConfig)
    registry: TimerRegistry = field(default_factory=TimerRegistry)
    clock: Clock = field(default=utc_now)

    def get_schedule(self, source: SourceType) -> SyncSchedule:
        with self.unit_of_work_factory() as uow:
            schedule = self._schedule(uow, source)
            uow.commit()
        return schedule

    def get_all_schedules(self) -> list[SyncSchedule]:
        with self.unit_of_work_factory() as uow:
            schedules = [self._schedule(uow, source) for source in SourceType]
            uow.commit()
        return schedules

    async def update_schedule(
        self,
        source: SourceType,
        *,
        enabled: bool,
        interval_minutes: int | None = None,
    ) -> SyncSchedule:
        """Persist a schedule change and start or stop the source's timer to match."""

        if interval_minutes is not None and interval_minutes not in self.config.valid_intervals:
            allowed = ", ".join(str(value) for value in self.config.valid_intervals)
            raise ValidationError(
                f"Invalid interval {interval_minutes}; allowed intervals are {allowed} minutes"
            )

        with self.unit_of_work_factory() as uow:
            schedule = self._schedule(uow, source)
            schedule.configure(
                enabled=enabled, interval_minutes=interval_minutes, now=self.clock()
            )
            uow.commit()

        if schedule.enabled:
            self._start_timer(schedule)
        else:
            self.registry.cancel(source)
        log.info(
            "Schedule for %s %s (every %s minutes)",
            source,
            "enabled" if schedule.enabled else "disabled",
            schedule.interval_minutes,
        )
        return schedule

    async def initialize_on_startup(self) -> int:
        """Start timers for every enabled schedule; returns how many were started."""

        now = self.clock()
        with self.unit_of_work_factory() as uow:
            for schedule in uow.repositories.schedules.list():
                if schedule.is_running:
                    log.warning(
                        "Sync for %s was left running; marking it failed", schedule.source_type
                    )
                    schedule.mark_interrupted(reason=INTERRUPTED_ERROR, now=now)
            enabled = list(uow.repositories.schedules.list(enabled=True))
            uow.commit()

        for schedule in enabled:
            self._start_timer(schedule)
        log.info("Scheduler started with %s active timer(s)", len(enabled))
        return len(enabled)

    async def shutdown(self) -> None:
        await self.registry.cancel_all()
        log.info("Scheduler stopped")

    async def wait_for_inflight(self) -> None:
        await self.registry.drain()

    def _schedule(self, uow: InventoryUnitOfWork, source: SourceType) -> SyncSchedule:
        return get_or_create_schedule(
            uow.repositories,
            source,
            default_interval_minutes=self.config.default_interval_minutes,
        )

    def _start_timer(self, schedule: SyncSchedule) -> None:
        interval_seconds = schedule.interval_minutes * 60
        first_delay: float | None = None
        if schedule.next_sync_at is not None:
            first_delay = max(0.0, (schedule.next_sync_at - self.clock()).total_seconds())
        self.registry.start(
            schedule.source_type,
            interval_seconds,
            self._tick,
            first_delay_seconds=first_delay,
        )

    async def _tick(self, source: SourceType) -> None:
        result = await self.executor.trigger_sync(source)
        if result.error is not None:
            log.warning("Scheduled sync for %s ended %s: %s", source, result.status, result.error)
