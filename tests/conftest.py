from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002

from fleetrecon.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.database import memory_engine
from tests.helpers.fakes import START, FakeClock, FakeTimer

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from fleetrecon.domain.ports import InventoryUnitOfWork


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = memory_engine()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def unit_of_work_factory(sqlite_engine: Engine) -> Iterator[Callable[[], InventoryUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> InventoryUnitOfWork:
        return SqlAlchemyInventoryUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()
