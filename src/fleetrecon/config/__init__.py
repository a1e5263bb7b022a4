"""Application configuration helpers."""

from __future__ import annotations

from .azure import AzureMigrateConfig, get_azure_migrate_config
from .env import env_float, env_int, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .legacy import LegacyInventoryConfig, get_legacy_inventory_config
from .logging import configure_logging
from .storage import (
    StorageConfig,
    get_database_uri,
    get_storage_config,
)
from .sync import VALID_INTERVALS, SyncConfig, get_sync_config

__all__ = [
    "VALID_INTERVALS",
    "AzureMigrateConfig",
    "CacheConfig",
    "ConfigurationError",
    "LegacyInventoryConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_azure_migrate_config",
    "get_database_uri",
    "get_legacy_inventory_config",
    "get_storage_config",
    "get_sync_config",
    "require_env_var",
    "require_env_vars",
]
