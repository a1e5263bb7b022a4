"""SQLAlchemy mapping metadata for the inventory domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from fleetrecon.domain.model import (
    ConnectionHealth,
    HealthStatus,
    Mapping,
    MatchType,
    SourceRecord,
    SourceType,
    SyncSchedule,
    SyncStatus,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _enum(enum_cls: type[StrEnum]) -> Enum:
    # store the wire value ("azure-migrate"), not the member name
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

source_record_table = Table(
    "source_record",
    mapper_registry.metadata,
    Column("source_type", _enum(SourceType), primary_key=True),
    Column("source_id", String, primary_key=True),
    Column("display_name", String, nullable=False),
    Column("attributes", JSON, nullable=False, default=dict),
    Column("synced_at", UTCDateTime(), nullable=True),
)

mapping_table = Table(
    "mapping",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("azure_record_id", String, nullable=False, unique=True),
    Column("legacy_record_id", String, nullable=True),
    Column("match_type", _enum(MatchType), nullable=False),
    Column("confidence", Float, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_mapping_legacy_record_id", "legacy_record_id"),
    Index("ix_mapping_match_type", "match_type"),
)

sync_schedule_table = Table(
    "sync_schedule",
    mapper_registry.metadata,
    Column("source_type", _enum(SourceType), primary_key=True),
    Column("enabled", Boolean, nullable=False, default=False),
    Column("interval_minutes", Integer, nullable=False),
    Column("last_sync_at", UTCDateTime(), nullable=True),
    Column("next_sync_at", UTCDateTime(), nullable=True),
    Column("last_sync_status", _enum(SyncStatus), nullable=True),
    Column("last_sync_error", String, nullable=True),
    Column("last_sync_count", Integer, nullable=True),
    Column("last_sync_duration", Integer, nullable=True),
)

connection_health_table = Table(
    "connection_health",
    mapper_registry.metadata,
    Column("source_type", _enum(SourceType), primary_key=True),
    Column("status", _enum(HealthStatus), nullable=False),
    Column("last_check_at", UTCDateTime(), nullable=True),
    Column("last_success_at", UTCDateTime(), nullable=True),
    Column("machine_count", Integer, nullable=False, default=0),
    Column("response_time_ms", Float, nullable=True),
    Column("error", String, nullable=True),
    Column("check_count", Integer, nullable=False, default=0),
    Column("fail_count", Integer, nullable=False, default=0),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(SourceRecord, source_record_table)
    mapper_registry.map_imperatively(Mapping, mapping_table)
    mapper_registry.map_imperatively(SyncSchedule, sync_schedule_table)
    mapper_registry.map_imperatively(ConnectionHealth, connection_health_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
