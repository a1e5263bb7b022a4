"""Azure Migrate configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, ShouldCacheHook

AZURE_MANAGEMENT_URL = "https://management.azure.com"
AZURE_LOGIN_URL = "https://login.microsoftonline.com"
AZURE_MANAGEMENT_SCOPE = "https://management.azure.com/.default"
AZURE_TIMEOUT_SECONDS = 30.0
SITE_CACHE_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class AzureMigrateConfig:
    """Holds the service principal and project coordinates for Azure Migrate."""

    tenant_id: str
    client_id: str
    client_secret: str
    subscription_id: str
    resource_group: str
    project_name: str
    resilience: ResilienceConfig

    @property
    def resource_group_path(self) -> str:
        return f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group}"


def get_azure_migrate_config(
    *,
    resilience: ResilienceConfig | None = None,
    cache_predicate: ShouldCacheHook | None = None,
) -> AzureMigrateConfig:
    values = require_env_vars(
        (
            "AZURE_TENANT_ID",
            "AZURE_CLIENT_ID",
            "AZURE_CLIENT_SECRET",
            "AZURE_SUBSCRIPTION_ID",
            "AZURE_RESOURCE_GROUP",
            "AZURE_MIGRATE_PROJECT",
        )
    )
    return AzureMigrateConfig(
        tenant_id=values["AZURE_TENANT_ID"],
        client_id=values["AZURE_CLIENT_ID"],
        client_secret=values["AZURE_CLIENT_SECRET"],
        subscription_id=values["AZURE_SUBSCRIPTION_ID"],
        resource_group=values["AZURE_RESOURCE_GROUP"],
        project_name=values["AZURE_MIGRATE_PROJECT"],
        resilience=resilience
        or ResilienceConfig(
            name="azure-migrate",
            base_url=AZURE_MANAGEMENT_URL,
            timeout_seconds=AZURE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10),
            headers={"Accept": "application/json"},
            cache=CacheConfig(
                backend="sqlite",
                ttl_seconds=SITE_CACHE_TTL_SECONDS,
                should_cache=cache_predicate,
            ),
        ),
    )
