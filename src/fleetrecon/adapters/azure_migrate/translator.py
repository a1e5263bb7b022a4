"""Translate Azure Migrate machine payloads into source records."""

from __future__ import annotations

from logging import getLogger

from fleetrecon.domain.model import SourceRecord, SourceType

from .schema import MachinePayload

log = getLogger(__name__)


def parse_machine(payload: MachinePayload, *, site_name: str | None) -> SourceRecord:
    properties = payload.properties

    ip_addresses: list[str] = list(properties.ip_addresses)
    mac_addresses: list[str] = []
    for adapter in properties.network_adapters.values():
        if adapter.mac_address:
            mac_addresses.append(adapter.mac_address)
        for address in adapter.ip_address_list:
            if address not in ip_addresses:
                ip_addresses.append(address)

    disk_size_mb = sum(disk.megabytes_of_size or 0 for disk in properties.disks.values())
    os_details = properties.operating_system_details

    attributes: dict[str, object] = {
        "host_name": properties.host_name,
        "fqdn": properties.fqdn,
        "ip_addresses": ip_addresses,
        "mac_addresses": mac_addresses,
        "bios_uuid": properties.bios_guid,
        "serial_number": properties.bios_serial_number,
        "operating_system": os_details.os_name if os_details else None,
        "cpu_cores": properties.number_of_cores,
        "memory_mb": properties.megabytes_of_memory,
        "disk_count": len(properties.disks),
        "disk_size_gb": round(disk_size_mb / 1024),
        "power_state": properties.power_status,
        "vcenter_name": properties.vcenter_fqdn,
        "site_name": site_name,
    }
    display_name = properties.display_name or properties.host_name or payload.name
    if not properties.display_name:
        log.debug("Machine %s has no display name; using %s", payload.id, display_name)
    return SourceRecord(
        source_type=SourceType.AZURE_MIGRATE,
        source_id=payload.id,
        display_name=display_name,
        attributes={key: value for key, value in attributes.items() if value is not None},
    )
