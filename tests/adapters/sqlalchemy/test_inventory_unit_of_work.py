from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
from sqlalchemy import text

from fleetrecon.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyInventoryUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from fleetrecon.domain.errors import PersistenceError
from fleetrecon.domain.model import AZURE_SOURCE, Mapping, MatchType
from tests.helpers.database import memory_engine
from tests.helpers.fakes import START
from tests.helpers.records import make_azure_record

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyInventoryUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = memory_engine()
    engine_b = memory_engine()

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_uncommitted_work_is_rolled_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyInventoryUnitOfWork() as uow:
        uow.repositories.records.add(make_azure_record("vm-1", "web01"))
        uow.rollback()

    with SqlAlchemyInventoryUnitOfWork() as uow:
        assert uow.repositories.records.count(AZURE_SOURCE) == 0


def test_exception_inside_block_discards_changes(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyInventoryUnitOfWork() as uow:
        uow.repositories.records.add(make_azure_record("vm-1", "web01"))
        raise RuntimeError("abort")

    with SqlAlchemyInventoryUnitOfWork() as uow:
        assert uow.repositories.records.count(AZURE_SOURCE) == 0


def test_driver_errors_surface_as_persistence_errors(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(PersistenceError), SqlAlchemyInventoryUnitOfWork() as uow:
        uow.session.execute(text("SELECT * FROM no_such_table"))


def test_constraint_violation_on_commit_is_persistence_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    def mapping(mapping_id: UUID) -> Mapping:
        return Mapping(
            id=mapping_id,
            azure_record_id="vm-1",
            legacy_record_id=None,
            match_type=MatchType.UNMATCHED,
            confidence=0.0,
            created_at=START,
            updated_at=START,
        )

    with SqlAlchemyInventoryUnitOfWork() as uow:
        uow.repositories.mappings.add(mapping(uuid4()))
        uow.commit()

    with SqlAlchemyInventoryUnitOfWork() as uow:
        uow.repositories.mappings.add(mapping(uuid4()))
        with pytest.raises(PersistenceError):
            uow.commit()
