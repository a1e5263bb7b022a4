"""Pydantic models describing the Azure Resource Manager payloads we consume."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _none_to_empty_list(value: object) -> object:
    return [] if value is None else value


class AzureBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TokenResponse(AzureBaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600

    @field_validator("expires_in", mode="before")
    @classmethod
    def _parse_expiry(cls, value: int | str) -> int:
        return int(value)


class TokenErrorResponse(AzureBaseModel):
    error: str
    error_description: str | None = None


class ArmError(AzureBaseModel):
    code: str | None = None
    message: str | None = None


class ArmErrorResponse(AzureBaseModel):
    error: ArmError


class SitePayload(AzureBaseModel):
    id: str
    name: str
    location: str | None = None
    type: str | None = None


class SiteListResponse(AzureBaseModel):
    value: list[SitePayload] = Field(default_factory=list[SitePayload])
    next_link: str | None = Field(default=None, alias="nextLink")


class OperatingSystemDetails(AzureBaseModel):
    os_name: str | None = Field(default=None, alias="osName")
    os_type: str | None = Field(default=None, alias="osType")
    os_version: str | None = Field(default=None, alias="osVersion")

    _normalize_name = field_validator("os_name", mode="before")(_blank_to_none)


class DiskPayload(AzureBaseModel):
    megabytes_of_size: float | None = Field(default=None, alias="megabytesOfSize")


class NetworkAdapterPayload(AzureBaseModel):
    mac_address: str | None = Field(default=None, alias="macAddress")
    ip_address_list: list[str] = Field(default_factory=list[str], alias="ipAddressList")

    _normalize_ips = field_validator("ip_address_list", mode="before")(_none_to_empty_list)


class MachineProperties(AzureBaseModel):
    display_name: str | None = Field(default=None, alias="displayName")
    host_name: str | None = Field(default=None, alias="hostName")
    fqdn: str | None = None
    ip_addresses: list[str] = Field(default_factory=list[str], alias="ipAddresses")
    operating_system_details: OperatingSystemDetails | None = Field(
        default=None, alias="operatingSystemDetails"
    )
    number_of_cores: int | None = Field(default=None, alias="numberOfCores")
    megabytes_of_memory: float | None = Field(default=None, alias="megabytesOfMemory")
    disks: dict[str, DiskPayload] = Field(default_factory=dict[str, DiskPayload])
    network_adapters: dict[str, NetworkAdapterPayload] = Field(
        default_factory=dict[str, NetworkAdapterPayload], alias="networkAdapters"
    )
    power_status: str | None = Field(default=None, alias="powerStatus")
    vcenter_fqdn: str | None = Field(default=None, alias="vCenterFQDN")
    bios_guid: str | None = Field(default=None, alias="biosGuid")
    bios_serial_number: str | None = Field(default=None, alias="biosSerialNumber")

    _normalize_text = field_validator(
        "display_name", "host_name", "fqdn", "bios_guid", "bios_serial_number", mode="before"
    )(_blank_to_none)
    _normalize_lists = field_validator("ip_addresses", mode="before")(_none_to_empty_list)

    @field_validator("disks", "network_adapters", mode="before")
    @classmethod
    def _keyed_collection(cls, value: object) -> object:
        # some api versions return these as arrays instead of keyed objects
        if value is None:
            return {}
        if isinstance(value, list):
            return {str(index): item for index, item in enumerate(value)}
        return value


class MachinePayload(AzureBaseModel):
    id: str
    name: str
    properties: MachineProperties = Field(default_factory=MachineProperties)


class MachineListResponse(AzureBaseModel):
    value: list[MachinePayload] = Field(default_factory=list[MachinePayload])
    next_link: str | None = Field(default=None, alias="nextLink")
