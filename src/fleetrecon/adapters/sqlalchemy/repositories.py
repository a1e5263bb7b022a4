"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import func, select

from fleetrecon.adapters.sqlalchemy.mappings import (
    mapping_table,
    source_record_table,
    sync_schedule_table,
)
from fleetrecon.domain.model import ConnectionHealth, Mapping, SourceRecord, SyncSchedule

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from sqlalchemy.orm import Session

    from fleetrecon.domain.model import MatchType, SourceType


class SqlAlchemySourceRecordRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SourceRecord) -> None:
        self.session.add(entity)

    def get(self, source_type: SourceType, source_id: str) -> SourceRecord | None:
        return self.session.get(SourceRecord, (source_type, source_id))

    def list(self, source_type: SourceType) -> Sequence[SourceRecord]:
        stmt = (
            select(SourceRecord)
            .where(source_record_table.c.source_type == source_type)
            .order_by(source_record_table.c.source_id)
        )
        return self.session.execute(stmt).scalars().all()

    def count(self, source_type: SourceType) -> int:
        stmt = (
            select(func.count())
            .select_from(source_record_table)
            .where(source_record_table.c.source_type == source_type)
        )
        return self.session.execute(stmt).scalar_one()

    def upsert(self, record: SourceRecord) -> SourceRecord:
        existing = self.get(record.source_type, record.source_id)
        if existing is None:
            self.session.add(record)
            return record
        existing.overwrite(record)
        return existing

    def remove_missing(self, source_type: SourceType, keep: Iterable[str]) -> int:
        """Delete every record of ``source_type`` whose id is not in ``keep``."""

        kept = set(keep)
        removed = 0
        for record in self.list(source_type):
            if record.source_id in kept:
                continue
            self.session.delete(record)
            removed += 1
        return removed


class SqlAlchemyMappingRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Mapping) -> None:
        self.session.add(entity)

    def get(self, mapping_id: UUID) -> Mapping | None:
        return self.session.get(Mapping, mapping_id)

    def get_by_azure_record(self, azure_record_id: str) -> Mapping | None:
        stmt = select(Mapping).where(mapping_table.c.azure_record_id == azure_record_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list(
        self,
        *,
        match_type: MatchType | None = None,
        min_confidence: float | None = None,
        max_confidence: float | None = None,
    ) -> Sequence[Mapping]:
        stmt = select(Mapping).order_by(mapping_table.c.azure_record_id)
        if match_type is not None:
            stmt = stmt.where(mapping_table.c.match_type == match_type)
        if min_confidence is not None:
            stmt = stmt.where(mapping_table.c.confidence >= min_confidence)
        if max_confidence is not None:
            stmt = stmt.where(mapping_table.c.confidence <= max_confidence)
        return self.session.execute(stmt).scalars().all()

    def remove(self, entity: Mapping) -> None:
        self.session.delete(entity)


class SqlAlchemySyncScheduleRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SyncSchedule) -> None:
        self.session.add(entity)

    def get(self, source_type: SourceType) -> SyncSchedule | None:
        return self.session.get(SyncSchedule, source_type)

    def list(self, *, enabled: bool | None = None) -> Sequence[SyncSchedule]:
        stmt = select(SyncSchedule).order_by(sync_schedule_table.c.source_type)
        if enabled is not None:
            stmt = stmt.where(sync_schedule_table.c.enabled == enabled)
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyConnectionHealthRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ConnectionHealth) -> None:
        self.session.add(entity)

    def get(self, source_type: SourceType) -> ConnectionHealth | None:
        return self.session.get(ConnectionHealth, source_type)


if TYPE_CHECKING:
    from fleetrecon.domain.ports import (
        ConnectionHealthRepository,
        MappingRepository,
        SourceRecordRepository,
        SyncScheduleRepository,
    )

    _session_stub = cast("Session", object())
    _record_repo: SourceRecordRepository = SqlAlchemySourceRecordRepository(_session_stub)
    _mapping_repo: MappingRepository = SqlAlchemyMappingRepository(_session_stub)
    _schedule_repo: SyncScheduleRepository = SqlAlchemySyncScheduleRepository(_session_stub)
    _health_repo: ConnectionHealthRepository = SqlAlchemyConnectionHealthRepository(
        _session_stub
    )
