"""Translate legacy server rows into source records."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from fleetrecon.domain.model import SourceRecord, SourceType

if TYPE_CHECKING:
    from collections.abc import Mapping

_LIST_SEPARATORS = re.compile(r"[,;\s]+")


def _split(value: object) -> list[str]:
    if value is None:
        return []
    return [part for part in _LIST_SEPARATORS.split(str(value)) if part]


def _text(value: object) -> str | None:
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def parse_server(row: Mapping[str, object]) -> SourceRecord:
    server_name = _text(row.get("server_name"))
    fqdn = _text(row.get("fqdn"))
    attributes: dict[str, object] = {
        "host_name": server_name,
        "fqdn": fqdn,
        "ip_addresses": _split(row.get("ip_addresses")),
        "mac_addresses": _split(row.get("mac_addresses")),
        "operating_system": _text(row.get("operating_system")),
        "environment": _text(row.get("environment")),
        "wave": _text(row.get("wave")),
        "serial_number": _text(row.get("serial_number")),
        "bios_uuid": _text(row.get("bios_uuid")),
        "cpu_cores": row.get("cpu_cores"),
        "memory_mb": row.get("memory_mb"),
    }
    source_id = str(row["server_id"])
    return SourceRecord(
        source_type=SourceType.DRMIGRATE,
        source_id=source_id,
        display_name=server_name or fqdn or source_id,
        attributes={key: value for key, value in attributes.items() if value not in (None, [])},
    )
