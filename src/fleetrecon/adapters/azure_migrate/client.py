"""Async Azure Migrate source adapter."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

import httpx
from pydantic import ValidationError as PayloadValidationError

from fleetrecon.adapters.http_resilience import ResilientClient
from fleetrecon.config.azure import AZURE_LOGIN_URL, AZURE_MANAGEMENT_SCOPE
from fleetrecon.domain.errors import SourceUnavailableError
from fleetrecon.domain.model import SourceType
from fleetrecon.domain.ports import FetchResult

from .schema import (
    ArmErrorResponse,
    MachineListResponse,
    MachinePayload,
    SiteListResponse,
    SitePayload,
    TokenErrorResponse,
    TokenResponse,
)
from .translator import parse_machine

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetrecon.config.azure import AzureMigrateConfig
    from fleetrecon.config.http_resilience import ResilienceConfig
    from fleetrecon.domain.model import SourceRecord

log = getLogger(__name__)

SITES_API_VERSION = "2023-06-06"
MACHINES_API_VERSION = "2023-06-06"
ASSESSMENT_API_VERSION = "2019-10-01"
RESOURCE_GROUP_API_VERSION = "2021-04-01"
VMWARE_SITE_TYPE = "microsoft.offazure/vmwaresites"
# refresh a little before the token actually expires
_TOKEN_EXPIRY_MARGIN_SECONDS = 60.0


def should_cache_payload(payload: object) -> bool:
    """Only VMware site listings are stable enough to serve from cache."""

    if not isinstance(payload, Mapping):
        return False
    items = cast("Mapping[str, object]", payload).get("value")
    if not isinstance(items, list) or not items:
        return False
    for item in cast("list[object]", items):
        if not isinstance(item, Mapping):
            return False
        item_type = cast("Mapping[str, object]", item).get("type")
        if not isinstance(item_type, str) or item_type.lower() != VMWARE_SITE_TYPE:
            return False
    return True


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class _CachedToken:
    value: str
    expires_at: float


@dataclass(slots=True)
class AzureMigrateAdapter:
    """Discovers machines through the Azure Resource Manager REST api.

    Machines are read per VMware site; when the project has no VMware site the
    assessment project's machine list is used instead.
    """

    config: AzureMigrateConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    timer: Callable[[], float] = field(default=time.monotonic)
    _token: _CachedToken | None = field(default=None, init=False, repr=False)

    @property
    def source_type(self) -> SourceType:
        return SourceType.AZURE_MIGRATE

    async def fetch_all(self) -> FetchResult:
        records: list[SourceRecord] = []
        try:
            async with self.client_factory(self.config.resilience) as client:
                headers = await self._auth_headers(client)
                sites = await self._list_sites(client, headers)
                if sites:
                    for site in sites:
                        machines = await self._list_machines(client, headers, self._site_url(site))
                        records.extend(
                            parse_machine(machine, site_name=site.name) for machine in machines
                        )
                        log.info("Fetched %s machines from site %s", len(machines), site.name)
                else:
                    log.info("No VMware sites found; reading assessment project machines")
                    machines = await self._list_machines(client, headers, self._assessment_url())
                    records.extend(
                        parse_machine(machine, site_name=self.config.project_name)
                        for machine in machines
                    )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(self.source_type, _describe_http_error(exc)) from exc
        except ValueError as exc:
            raise SourceUnavailableError(self.source_type, _describe_payload_error(exc)) from exc
        return FetchResult(records=records)

    async def probe(self) -> float:
        started = self.timer()
        try:
            async with self.client_factory(self.config.resilience.for_probe()) as client:
                headers = await self._auth_headers(client)
                response = await client.get(
                    self.config.resource_group_path,
                    params={"api-version": RESOURCE_GROUP_API_VERSION},
                    headers=headers,
                )
                _raise_for_status(response)
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(self.source_type, _describe_http_error(exc)) from exc
        except ValueError as exc:
            raise SourceUnavailableError(self.source_type, _describe_payload_error(exc)) from exc
        return round((self.timer() - started) * 1000, 1)

    async def _auth_headers(self, client: ResilientClient) -> dict[str, str]:
        token = await self._access_token(client)
        return {"Authorization": f"Bearer {token}"}

    async def _access_token(self, client: ResilientClient) -> str:
        now = self.timer()
        if self._token is not None and self._token.expires_at > now:
            return self._token.value

        response = await client.post(
            f"{AZURE_LOGIN_URL}/{self.config.tenant_id}/oauth2/v2.0/token",
            data={
                "grant_type": "client_credentials",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "scope": AZURE_MANAGEMENT_SCOPE,
            },
        )
        if response.status_code in {400, 401}:
            detail = _token_error(response)
            log.error("Azure authentication failed: %s", detail)
            raise SourceUnavailableError(self.source_type, f"Authentication failed: {detail}")
        response.raise_for_status()

        token = TokenResponse.model_validate(response.json())
        self._token = _CachedToken(
            value=token.access_token,
            expires_at=now + max(0.0, token.expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS),
        )
        return token.access_token

    async def _list_sites(
        self, client: ResilientClient, headers: dict[str, str]
    ) -> list[SitePayload]:
        url: str | None = (
            f"{self.config.resource_group_path}/providers/Microsoft.OffAzure/VMwareSites"
            f"?api-version={SITES_API_VERSION}"
        )
        sites: list[SitePayload] = []
        while url is not None:
            response = await client.get(url, headers=headers)
            if response.status_code == httpx.codes.NOT_FOUND:
                log.info("VMware site listing is not available for this resource group")
                return []
            _raise_for_status(response)
            page = SiteListResponse.model_validate(response.json())
            sites.extend(page.value)
            url = page.next_link
        return sites

    async def _list_machines(
        self, client: ResilientClient, headers: dict[str, str], url: str
    ) -> list[MachinePayload]:
        machines: list[MachinePayload] = []
        next_url: str | None = url
        while next_url is not None:
            response = await client.get(next_url, headers=headers)
            _raise_for_status(response)
            page = MachineListResponse.model_validate(response.json())
            machines.extend(page.value)
            next_url = page.next_link
        return machines

    def _site_url(self, site: SitePayload) -> str:
        return (
            f"{self.config.resource_group_path}/providers/Microsoft.OffAzure/VMwareSites/"
            f"{site.name}/machines?api-version={MACHINES_API_VERSION}"
        )

    def _assessment_url(self) -> str:
        return (
            f"{self.config.resource_group_path}/providers/Microsoft.Migrate/assessmentProjects/"
            f"{self.config.project_name}/machines?api-version={ASSESSMENT_API_VERSION}"
        )


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        payload = ArmErrorResponse.model_validate(response.json())
    except (ValueError, PayloadValidationError):
        payload = None
    if payload is not None and payload.error.message:
        log.error(
            "Azure API error %s (%s): %s",
            response.status_code,
            payload.error.code,
            payload.error.message,
        )
    response.raise_for_status()


def _token_error(response: httpx.Response) -> str:
    try:
        payload = TokenErrorResponse.model_validate(response.json())
    except (ValueError, PayloadValidationError):
        return f"HTTP {response.status_code}"
    return payload.error_description or payload.error


def _describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"Azure API error: {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "Azure API request timed out"
    return f"Azure API request failed: {exc}"


def _describe_payload_error(exc: ValueError) -> str:
    # pydantic's ValidationError is a ValueError, as is a JSON decode failure
    if isinstance(exc, PayloadValidationError):
        return f"Unexpected Azure Migrate payload: {exc.error_count()} errors"
    return "Azure Migrate returned a body that is not valid JSON"
