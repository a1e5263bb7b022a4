"""DrMigrate inventory database settings."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, optional_env, require_env_var

DEFAULT_SERVERS_TABLE = "servers"
DEFAULT_QUERY_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class LegacyInventoryConfig:
    database_uri: str
    servers_table: str = DEFAULT_SERVERS_TABLE
    query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS


def get_legacy_inventory_config() -> LegacyInventoryConfig:
    return LegacyInventoryConfig(
        database_uri=require_env_var("DRMIGRATE_DATABASE_URI"),
        servers_table=optional_env("DRMIGRATE_SERVERS_TABLE") or DEFAULT_SERVERS_TABLE,
        query_timeout_seconds=env_float(
            "DRMIGRATE_QUERY_TIMEOUT_SECONDS", DEFAULT_QUERY_TIMEOUT_SECONDS
        ),
    )
