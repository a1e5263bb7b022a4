"""Ports for persisting records, mappings, schedules and health snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from fleetrecon.domain.model import (
        ConnectionHealth,
        Mapping,
        MatchType,
        SourceRecord,
        SourceType,
        SyncSchedule,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class SourceRecordRepository(Repository["SourceRecord"], Protocol):
    """Records keyed by ``(source_type, source_id)``."""

    def get(self, source_type: SourceType, source_id: str) -> SourceRecord | None: ...

    def list(self, source_type: SourceType) -> Sequence[SourceRecord]: ...

    def count(self, source_type: SourceType) -> int: ...

    def upsert(self, record: SourceRecord) -> SourceRecord: ...

    def remove_missing(self, source_type: SourceType, keep: Iterable[str]) -> int: ...


@runtime_checkable
class MappingRepository(Repository["Mapping"], Protocol):
    """Mappings keyed by ``id`` with filtered listing."""

    def get(self, mapping_id: UUID) -> Mapping | None: ...

    def get_by_azure_record(self, azure_record_id: str) -> Mapping | None: ...

    def list(
        self,
        *,
        match_type: MatchType | None = None,
        min_confidence: float | None = None,
        max_confidence: float | None = None,
    ) -> Sequence[Mapping]: ...

    def remove(self, entity: Mapping) -> None: ...


@runtime_checkable
class SyncScheduleRepository(Repository["SyncSchedule"], Protocol):
    def get(self, source_type: SourceType) -> SyncSchedule | None: ...

    def list(self, *, enabled: bool | None = None) -> Sequence[SyncSchedule]: ...


@runtime_checkable
class ConnectionHealthRepository(Repository["ConnectionHealth"], Protocol):
    def get(self, source_type: SourceType) -> ConnectionHealth | None: ...
