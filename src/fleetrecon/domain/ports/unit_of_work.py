"""Transaction boundary around the inventory repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from fleetrecon.domain.ports.persistence import (
        ConnectionHealthRepository,
        MappingRepository,
        SourceRecordRepository,
        SyncScheduleRepository,
    )


@dataclass(slots=True)
class InventoryRepositories:
    """Everything the sync engine reads or writes."""

    records: SourceRecordRepository
    mappings: MappingRepository
    schedules: SyncScheduleRepository
    health: ConnectionHealthRepository


@runtime_checkable
class InventoryUnitOfWork(Protocol):
    """One transaction over the inventory store.

    Leaving the block without ``commit`` discards the changes. Store failures
    surface as ``PersistenceError``.
    """

    @property
    def repositories(self) -> InventoryRepositories: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
