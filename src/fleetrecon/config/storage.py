"""Where fleetrecon keeps its inventory store and HTTP cache on disk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env

APP_DIR_NAME: Final[str] = "fleetrecon"
INVENTORY_DB_FILENAME: Final[str] = "inventory.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Files under one data directory, created on first use."""

    data_dir: Path

    @property
    def inventory_db_path(self) -> Path:
        return self._ensure() / INVENTORY_DB_FILENAME

    @property
    def http_cache_path(self) -> Path:
        return self._ensure() / HTTP_CACHE_FILENAME

    @property
    def inventory_db_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.inventory_db_path}"

    def _ensure(self) -> Path:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.data_dir


def _platform_data_home() -> Path:
    if os.name == "nt":
        base = optional_env("LOCALAPPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Local"
    base = optional_env("XDG_DATA_HOME")
    return Path(base) if base else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = optional_env("FLEETRECON_DATA_DIR")
    data_dir = Path(override) if override else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_uri() -> str:
    """``DATABASE_URI`` when set, otherwise the SQLite file in the data directory."""

    return optional_env("DATABASE_URI") or get_storage_config().inventory_db_uri


def get_http_cache_path() -> Path:
    return get_storage_config().http_cache_path
