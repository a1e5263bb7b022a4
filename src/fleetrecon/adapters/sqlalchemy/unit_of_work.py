"""SQLAlchemy-backed unit of work for the inventory store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fleetrecon.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from fleetrecon.adapters.sqlalchemy.repositories import (
    SqlAlchemyConnectionHealthRepository,
    SqlAlchemyMappingRepository,
    SqlAlchemySourceRecordRepository,
    SqlAlchemySyncScheduleRepository,
)
from fleetrecon.config.storage import get_database_uri
from fleetrecon.domain.errors import PersistenceError
from fleetrecon.domain.ports import InventoryRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)

_NOT_STARTED = (
    "Inventory store not initialised; call "
    "fleetrecon.adapters.sqlalchemy.unit_of_work.startup() first"
)


class StartupError(RuntimeError):
    """The inventory store was used before ``startup()`` or configured twice."""


@dataclass(slots=True)
class _StoreState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(_NOT_STARTED)
        return self.sessions()


_STATE = _StoreState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the store to an engine and make sure its tables exist."""

    if _STATE.engine is not None and not force:
        raise StartupError("Inventory store already initialised; pass force=True to rebind")

    resolved_engine = engine or create_engine(database_uri or get_database_uri())
    start_mappers()
    try:
        create_all_tables(resolved_engine)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not prepare the inventory database: {exc}") from exc

    _STATE.engine = resolved_engine
    _STATE.sessions = sessionmaker(bind=resolved_engine, expire_on_commit=False)
    log.info(
        "Inventory store ready at %s", resolved_engine.url.render_as_string(hide_password=True)
    )


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the engine and forget it; ``startup()`` may be called again."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.sessions = None


class SqlAlchemyInventoryUnitOfWork:
    """One session over records, mappings, schedules and health rows.

    Driver and ORM failures surface as ``PersistenceError`` so callers above the
    adapter layer never handle SQLAlchemy exceptions directly.
    """

    def __init__(self) -> None:
        if _STATE.sessions is None:
            raise StartupError(_NOT_STARTED)
        self._session: Session | None = None
        self._repositories: InventoryRepositories | None = None

    def __enter__(self) -> SqlAlchemyInventoryUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = _STATE.open_session()
        self._repositories = InventoryRepositories(
            records=SqlAlchemySourceRecordRepository(self._session),
            mappings=SqlAlchemyMappingRepository(self._session),
            schedules=SqlAlchemySyncScheduleRepository(self._session),
            health=SqlAlchemyConnectionHealthRepository(self._session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self.session.close()
            self._session = None
            self._repositories = None
        if isinstance(exc_value, SQLAlchemyError):
            raise PersistenceError(str(exc_value)) from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(str(exc)) from exc

    def rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> InventoryRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories


if TYPE_CHECKING:
    from fleetrecon.domain.ports import InventoryUnitOfWork

    _uow_check: InventoryUnitOfWork = SqlAlchemyInventoryUnitOfWork()
