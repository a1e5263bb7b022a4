"""Public interface for the Azure Migrate adapter."""

from __future__ import annotations

from .client import AzureMigrateAdapter, should_cache_payload
from .schema import MachineListResponse, MachinePayload, SiteListResponse
from .translator import parse_machine

__all__ = [
    "AzureMigrateAdapter",
    "MachineListResponse",
    "MachinePayload",
    "SiteListResponse",
    "parse_machine",
    "should_cache_payload",
]
