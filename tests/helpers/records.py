"""Builders for source records used across tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fleetrecon.domain.model import SourceRecord, SourceType

if TYPE_CHECKING:
    from collections.abc import Iterable


def make_record(
    source_type: SourceType,
    source_id: str,
    name: str,
    *,
    ips: Iterable[str] = (),
    macs: Iterable[str] = (),
    **attributes: object,
) -> SourceRecord:
    """Create a record whose host name and display name are ``name``."""

    values: dict[str, object] = {"host_name": name}
    if ips:
        values["ip_addresses"] = list(ips)
    if macs:
        values["mac_addresses"] = list(macs)
    values.update(attributes)
    return SourceRecord(
        source_type=source_type,
        source_id=source_id,
        display_name=name,
        attributes=values,
    )


def make_azure_record(
    source_id: str,
    name: str,
    *,
    ips: Iterable[str] = (),
    macs: Iterable[str] = (),
    **attributes: object,
) -> SourceRecord:
    return make_record(
        SourceType.AZURE_MIGRATE, source_id, name, ips=ips, macs=macs, **attributes
    )


def make_legacy_record(
    source_id: str,
    name: str,
    *,
    ips: Iterable[str] = (),
    macs: Iterable[str] = (),
    **attributes: object,
) -> SourceRecord:
    return make_record(SourceType.DRMIGRATE, source_id, name, ips=ips, macs=macs, **attributes)


def copy_record(record: SourceRecord) -> SourceRecord:
    return SourceRecord(
        source_type=record.source_type,
        source_id=record.source_id,
        display_name=record.display_name,
        attributes=dict(record.attributes),
        synced_at=record.synced_at,
    )
