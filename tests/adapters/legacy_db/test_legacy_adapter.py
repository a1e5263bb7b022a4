from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import MetaData, insert

from fleetrecon.adapters.legacy_db import LegacyInventoryAdapter, parse_server, servers_table
from fleetrecon.config import LegacyInventoryConfig
from fleetrecon.domain.errors import SourceUnavailableError
from fleetrecon.domain.model import LEGACY_SOURCE
from tests.helpers.database import memory_engine

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine

SERVERS = [
    {
        "server_id": 2,
        "server_name": "DB01",
        "fqdn": "db01.corp.local",
        "ip_addresses": "10.0.0.2",
        "mac_addresses": None,
        "operating_system": "Ubuntu 22.04",
        "environment": "Production",
        "wave": "Wave 2",
        "serial_number": None,
        "bios_uuid": None,
        "cpu_cores": 8,
        "memory_mb": 32768,
    },
    {
        "server_id": 1,
        "server_name": "WEB01",
        "fqdn": None,
        "ip_addresses": "10.0.0.1, 10.0.0.11",
        "mac_addresses": "00:50:56:aa:bb:01",
        "operating_system": "Windows Server 2019",
        "environment": "Test",
        "wave": None,
        "serial_number": "VMware-42 1a",
        "bios_uuid": None,
        "cpu_cores": 4,
        "memory_mb": 8192,
    },
]


@pytest.fixture
def legacy_engine() -> Iterator[Engine]:
    engine = memory_engine()
    metadata = MetaData()
    table = servers_table("servers", metadata)
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(insert(table), SERVERS)
    try:
        yield engine
    finally:
        engine.dispose()


def _adapter(engine: Engine, *, table: str = "servers") -> LegacyInventoryAdapter:
    return LegacyInventoryAdapter(
        config=LegacyInventoryConfig(database_uri="sqlite://", servers_table=table),
        engine=engine,
    )


def test_fetch_all_reads_every_server(legacy_engine: Engine) -> None:
    result = asyncio.run(_adapter(legacy_engine).fetch_all())

    assert result.count == 2
    web, db = result.records
    assert web.source_type is LEGACY_SOURCE
    assert web.source_id == "1"
    assert web.display_name == "WEB01"
    assert web.attributes["ip_addresses"] == ["10.0.0.1", "10.0.0.11"]
    assert web.attributes["mac_addresses"] == ["00:50:56:aa:bb:01"]
    assert web.attributes["environment"] == "Test"
    assert "wave" not in web.attributes
    assert db.attributes["fqdn"] == "db01.corp.local"
    assert db.attributes["wave"] == "Wave 2"
    assert db.attributes["memory_mb"] == 32768


def test_probe_reports_elapsed_time(legacy_engine: Engine) -> None:
    assert asyncio.run(_adapter(legacy_engine).probe()) >= 0.0


def test_query_failure_raises_source_unavailable(legacy_engine: Engine) -> None:
    adapter = _adapter(legacy_engine, table="no_such_table")

    with pytest.raises(SourceUnavailableError, match="Legacy inventory query failed") as excinfo:
        asyncio.run(adapter.fetch_all())

    assert excinfo.value.source is LEGACY_SOURCE


def test_parse_server_falls_back_for_display_name() -> None:
    record = parse_server({"server_id": 7, "server_name": "  ", "fqdn": "app07.corp.local"})
    bare = parse_server({"server_id": 8, "server_name": None})

    assert record.display_name == "app07.corp.local"
    assert "host_name" not in record.attributes
    assert bare.display_name == "8"
    assert bare.attributes == {}


def test_parse_server_splits_address_lists() -> None:
    record = parse_server(
        {"server_id": 9, "server_name": "web09", "ip_addresses": "10.0.0.9;10.0.1.9 10.0.2.9"}
    )

    assert record.attributes["ip_addresses"] == ["10.0.0.9", "10.0.1.9", "10.0.2.9"]
    assert "mac_addresses" not in record.attributes
