"""Lazy creation of the per-source schedule and health rows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetrecon.config.sync import DEFAULT_INTERVAL_MINUTES
from fleetrecon.domain.model import ConnectionHealth, SyncSchedule

if TYPE_CHECKING:
    from fleetrecon.domain.model import SourceType
    from fleetrecon.domain.ports import InventoryRepositories

log = logging.getLogger(__name__)


def get_or_create_schedule(
    repositories: InventoryRepositories,
    source_type: SourceType,
    *,
    default_interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
) -> SyncSchedule:
    schedule = repositories.schedules.get(source_type)
    if schedule is None:
        schedule = SyncSchedule(
            source_type=source_type,
            enabled=False,
            interval_minutes=default_interval_minutes,
        )
        repositories.schedules.add(schedule)
        log.debug("Created default schedule for %s", source_type)
    return schedule


def get_or_create_health(
    repositories: InventoryRepositories, source_type: SourceType
) -> ConnectionHealth:
    health = repositories.health.get(source_type)
    if health is None:
        health = ConnectionHealth(source_type=source_type)
        repositories.health.add(health)
        log.debug("Created health row for %s", source_type)
    return health
