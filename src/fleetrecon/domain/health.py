"""Source liveness probing and the stored availability view."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from fleetrecon.config.sync import (
    DEFAULT_HEALTH_FAST_MS,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_STALE_HEALTH_MINUTES,
)
from fleetrecon.domain.clock import utc_now
from fleetrecon.domain.errors import SourceUnavailableError
from fleetrecon.domain.model import HealthStatus, SourceType
from fleetrecon.domain.state import get_or_create_health

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from fleetrecon.domain.clock import Clock
    from fleetrecon.domain.model import HealthSummary
    from fleetrecon.domain.ports import InventoryUnitOfWork, SourceAdapter

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    source: SourceType
    status: HealthStatus
    response_time_ms: float
    error: str | None = None


def classify(response_time_ms: float, fast_response_ms: float) -> HealthStatus:
    if response_time_ms <= fast_response_ms:
        return HealthStatus.HEALTHY
    return HealthStatus.DEGRADED


@dataclass(slots=True)
class HealthMonitor:
    adapters: Mapping[SourceType, SourceAdapter]
    unit_of_work_factory: Callable[[], InventoryUnitOfWork]
    fast_response_ms: float = DEFAULT_HEALTH_FAST_MS
    probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS
    stale_after: timedelta = field(
        default_factory=lambda: timedelta(minutes=DEFAULT_STALE_HEALTH_MINUTES)
    )
    clock: Clock = field(default=utc_now)
    timer: Callable[[], float] = field(default=time.monotonic)

    async def check_health(self, source: SourceType) -> HealthCheckResult:
        """Probe ``source``, persist the classification and return it."""

        started = self.timer()
        error: str | None = None
        try:
            await self._probe(source)
        except TimeoutError:
            error = f"Probe timed out after {self.probe_timeout_seconds:g}s"
        except SourceUnavailableError as exc:
            error = str(exc)
        except Exception as exc:  # noqa: BLE001
            log.exception("Probe for %s raised unexpectedly", source)
            error = str(exc) or type(exc).__name__
        elapsed_ms = round((self.timer() - started) * 1000, 1)

        if error is None:
            status = classify(elapsed_ms, self.fast_response_ms)
            log.info("%s is %s (%sms)", source, status, elapsed_ms)
        else:
            status = HealthStatus.DOWN
            log.warning("%s is down: %s", source, error)

        with self.unit_of_work_factory() as uow:
            health = get_or_create_health(uow.repositories, source)
            health.record_check(
                status=status,
                checked_at=self.clock(),
                response_time_ms=elapsed_ms,
                error=error,
            )
            uow.commit()
        return HealthCheckResult(
            source=source, status=status, response_time_ms=elapsed_ms, error=error
        )

    async def check_all_health(self) -> list[HealthCheckResult]:
        sources = list(SourceType)
        outcomes = await asyncio.gather(
            *(self.check_health(source) for source in sources), return_exceptions=True
        )
        results: list[HealthCheckResult] = []
        for source, outcome in zip(sources, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                log.error("Health check for %s failed: %s", source, outcome)
                continue
            results.append(outcome)
        return results

    def update_machine_count(self, source: SourceType, count: int) -> None:
        with self.unit_of_work_factory() as uow:
            health = get_or_create_health(uow.repositories, source)
            health.machine_count = count
            uow.commit()

    def get_health(self, source: SourceType) -> HealthSummary:
        with self.unit_of_work_factory() as uow:
            health = get_or_create_health(uow.repositories, source)
            uow.commit()
            return health.summarize(now=self.clock(), stale_after=self.stale_after)

    def get_all_health(self) -> list[HealthSummary]:
        return [self.get_health(source) for source in SourceType]

    async def _probe(self, source: SourceType) -> float:
        adapter = self.adapters.get(source)
        if adapter is None:
            raise SourceUnavailableError(source, f"No adapter configured for {source}")
        async with asyncio.timeout(self.probe_timeout_seconds):
            return await adapter.probe()
