"""Domain model for machine inventory reconciliation."""

from __future__ import annotations

from .enums import HealthStatus, MatchType, SourceType, SyncStatus
from .inventory import Mapping, SourceRecord, mapping_id_for
from .status import ConnectionHealth, HealthSummary, SyncSchedule

AZURE_SOURCE = SourceType.AZURE_MIGRATE
LEGACY_SOURCE = SourceType.DRMIGRATE

__all__ = [
    "AZURE_SOURCE",
    "LEGACY_SOURCE",
    "ConnectionHealth",
    "HealthStatus",
    "HealthSummary",
    "Mapping",
    "MatchType",
    "SourceRecord",
    "SourceType",
    "SyncSchedule",
    "SyncStatus",
    "mapping_id_for",
]
