"""Identity signal extraction for machine records.

Responsibilities of this stage:
- read the identity-bearing attributes of a ``SourceRecord``
- normalize them into comparable, deterministic values
- avoid persistence side effects

Attribute names follow the canonical record layout written by the source
adapters (``host_name``, ``fqdn``, ``ip_addresses``, ``mac_addresses``,
``bios_uuid``, ``serial_number``).
"""

from __future__ import annotations

import ipaddress
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fleetrecon.domain.model import SourceRecord

log = logging.getLogger(__name__)

type HardwareId = tuple[str, str]

_MAC_SEPARATORS = re.compile(r"[^0-9a-f]")
_NAME_JUNK = re.compile(r"[^0-9a-z-]")
_PLACEHOLDER_SERIALS = frozenset({"", "none", "n/a", "na", "unknown", "to be filled by o.e.m."})


@dataclass(frozen=True, slots=True)
class IdentitySignals:
    """Normalized identity evidence for one record."""

    names: frozenset[str]
    ip_addresses: frozenset[str]
    hardware_ids: frozenset[HardwareId]

    @property
    def is_empty(self) -> bool:
        return not (self.names or self.ip_addresses or self.hardware_ids)


def identity_signals(record: SourceRecord) -> IdentitySignals:
    attributes = record.attributes
    names = {
        name
        for name in (
            normalize_host_name(_as_text(attributes.get("host_name"))),
            normalize_host_name(_as_text(attributes.get("fqdn"))),
            normalize_host_name(record.display_name),
        )
        if name
    }
    ips = {
        ip
        for ip in (normalize_ip(value) for value in _as_list(attributes.get("ip_addresses")))
        if ip
    }
    hardware: set[HardwareId] = set()
    bios_uuid = normalize_bios_uuid(_as_text(attributes.get("bios_uuid")))
    if bios_uuid:
        hardware.add(("bios", bios_uuid))
    serial = normalize_serial(_as_text(attributes.get("serial_number")))
    if serial:
        hardware.add(("serial", serial))
    for value in _as_list(attributes.get("mac_addresses")):
        mac = normalize_mac(value)
        if mac:
            hardware.add(("mac", mac))

    signals = IdentitySignals(
        names=frozenset(names),
        ip_addresses=frozenset(ips),
        hardware_ids=frozenset(hardware),
    )
    if signals.is_empty:
        log.debug("No identity signals for %s record %s", record.source_type, record.source_id)
    return signals


def normalize_host_name(value: str | None) -> str | None:
    """Return the case-folded short host name (first DNS label)."""

    if value is None:
        return None
    text = unicodedata.normalize("NFKC", value).strip().casefold()
    if not text:
        return None
    if normalize_ip(text) is not None:
        return None
    short = text.split(".", 1)[0]
    short = _NAME_JUNK.sub("", short)
    return short or None


def normalize_ip(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    if address.is_loopback or address.is_link_local or address.is_unspecified:
        return None
    return address.compressed


def normalize_mac(value: str | None) -> str | None:
    if value is None:
        return None
    digits = _MAC_SEPARATORS.sub("", value.strip().lower())
    if len(digits) != 12 or digits == "0" * 12:
        return None
    return digits


def normalize_bios_uuid(value: str | None) -> str | None:
    if value is None:
        return None
    digits = value.strip().strip("{}").replace("-", "").lower()
    if len(digits) != 32 or set(digits) <= {"0"} or set(digits) <= {"f"}:
        return None
    return digits


def normalize_serial(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip().lower()
    if text in _PLACEHOLDER_SERIALS:
        return None
    return text


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _as_list(value: object) -> Iterable[str]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(part for part in re.split(r"[,;\s]+", value) if part)
    if isinstance(value, (list, tuple, set, frozenset)):
        items = cast("Iterable[object]", value)
        return tuple(str(item) for item in items if item is not None)
    return (str(value),)
