"""Table layout of the legacy DrMigrate server inventory."""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table


def servers_table(name: str, metadata: MetaData | None = None) -> Table:
    """Describe the server table; only the columns the sync reads are declared."""

    return Table(
        name,
        metadata or MetaData(),
        Column("server_id", Integer, primary_key=True),
        Column("server_name", String, nullable=False),
        Column("fqdn", String, nullable=True),
        # comma separated
        Column("ip_addresses", String, nullable=True),
        Column("mac_addresses", String, nullable=True),
        Column("operating_system", String, nullable=True),
        Column("environment", String, nullable=True),
        Column("wave", String, nullable=True),
        Column("serial_number", String, nullable=True),
        Column("bios_uuid", String, nullable=True),
        Column("cpu_cores", Integer, nullable=True),
        Column("memory_mb", Integer, nullable=True),
    )
