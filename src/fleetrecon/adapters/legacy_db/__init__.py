"""Public interface for the legacy DrMigrate inventory adapter."""

from __future__ import annotations

from .adapter import LegacyInventoryAdapter
from .schema import servers_table
from .translator import parse_server

__all__ = ["LegacyInventoryAdapter", "parse_server", "servers_table"]
