"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import FetchResult, SourceAdapter
from .persistence import (
    ConnectionHealthRepository,
    MappingRepository,
    Repository,
    SourceRecordRepository,
    SyncScheduleRepository,
)
from .unit_of_work import (
    InventoryRepositories,
    InventoryUnitOfWork,
)

__all__ = [
    "ConnectionHealthRepository",
    "FetchResult",
    "InventoryRepositories",
    "InventoryUnitOfWork",
    "MappingRepository",
    "Repository",
    "SourceAdapter",
    "SourceRecordRepository",
    "SyncScheduleRepository",
]
