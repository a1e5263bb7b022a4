"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SourceType(StrEnum):
    """The two inventory systems being reconciled."""

    AZURE_MIGRATE = "azure-migrate"
    DRMIGRATE = "drmigrate"


class SyncStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    RUNNING = "running"


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"
    # never probed yet
    UNKNOWN = "unknown"


class MatchType(StrEnum):
    AUTO = "auto"
    MANUAL = "manual"
    UNMATCHED = "unmatched"
