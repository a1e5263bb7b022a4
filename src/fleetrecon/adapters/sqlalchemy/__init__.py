"""SQLAlchemy adapter package for the inventory store."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyConnectionHealthRepository,
    SqlAlchemyMappingRepository,
    SqlAlchemySourceRecordRepository,
    SqlAlchemySyncScheduleRepository,
)
from .unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    StartupError,
    configured_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyConnectionHealthRepository",
    "SqlAlchemyInventoryUnitOfWork",
    "SqlAlchemyMappingRepository",
    "SqlAlchemySourceRecordRepository",
    "SqlAlchemySyncScheduleRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
