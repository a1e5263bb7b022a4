"""Source adapter reading the legacy DrMigrate server inventory."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, select, text
from sqlalchemy.exc import SQLAlchemyError

from fleetrecon.domain.errors import SourceUnavailableError
from fleetrecon.domain.model import SourceType
from fleetrecon.domain.ports import FetchResult

from .schema import servers_table
from .translator import parse_server

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import Table
    from sqlalchemy.engine import Engine

    from fleetrecon.config.legacy import LegacyInventoryConfig

log = getLogger(__name__)


@dataclass(slots=True)
class LegacyInventoryAdapter:
    """Reads the server table through a blocking engine, off the event loop."""

    config: LegacyInventoryConfig
    engine: Engine | None = None
    timer: Callable[[], float] = field(default=time.monotonic)
    _table: Table = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.engine is None:
            self.engine = create_engine(self.config.database_uri, pool_pre_ping=True)
        self._table = servers_table(self.config.servers_table)

    @property
    def source_type(self) -> SourceType:
        return SourceType.DRMIGRATE

    async def fetch_all(self) -> FetchResult:
        rows = await self._run(self._select_servers)
        records = [parse_server(row) for row in rows]
        log.info("Fetched %s servers from %s", len(records), self.config.servers_table)
        return FetchResult(records=records)

    async def probe(self) -> float:
        started = self.timer()
        await self._run(self._ping)
        return round((self.timer() - started) * 1000, 1)

    def dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()

    async def _run[T](self, func: Callable[[], T]) -> T:
        try:
            async with asyncio.timeout(self.config.query_timeout_seconds):
                return await asyncio.to_thread(func)
        except TimeoutError as exc:
            raise SourceUnavailableError(
                self.source_type,
                f"Legacy inventory query timed out after {self.config.query_timeout_seconds:g}s",
            ) from exc
        except SQLAlchemyError as exc:
            log.error("Legacy inventory query failed: %s", exc)
            raise SourceUnavailableError(
                self.source_type, f"Legacy inventory query failed: {type(exc).__name__}"
            ) from exc

    def _select_servers(self) -> Sequence[Mapping[str, object]]:
        engine = self._engine()
        stmt = select(self._table).order_by(self._table.c.server_id)
        with engine.connect() as connection:
            return [dict(row) for row in connection.execute(stmt).mappings()]

    def _ping(self) -> None:
        with self._engine().connect() as connection:
            connection.execute(text("SELECT 1"))

    def _engine(self) -> Engine:
        if self.engine is None:
            raise SourceUnavailableError(self.source_type, "Legacy inventory engine not configured")
        return self.engine
