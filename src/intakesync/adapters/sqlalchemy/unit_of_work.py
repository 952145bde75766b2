"""Engine lifecycle and the SQLAlchemy unit of work for extraction jobs.

``startup()`` must run once per process before a unit of work is opened; it
migrates the schema to head. Tests reconfigure with ``force=True`` and reset
with ``shutdown()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from intakesync.adapters.sqlalchemy.migrations import upgrade_head
from intakesync.adapters.sqlalchemy.repositories import SqlAlchemyJobRepository
from intakesync.config import DatabaseConfig, get_database_config
from intakesync.domain.errors import PersistenceError
from intakesync.domain.ports.unit_of_work import JobRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the adapter is used before ``startup()`` or started twice."""


@dataclass(slots=True)
class _EngineState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def install(self, engine: Engine) -> None:
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def clear(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None

    def require_sessions(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised; call "
                "intakesync.adapters.sqlalchemy.startup() first"
            )
        return self.sessions


_STATE = _EngineState()


def _create_engine(database: DatabaseConfig) -> Engine:
    return create_engine(database.uri, echo=database.echo)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new one) and migrate it to head."""

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already initialised; pass force=True")

    if engine is None:
        database = DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
        engine = _create_engine(database)
    upgrade_head(engine=engine)
    if _STATE.engine is not None and _STATE.engine is not engine:
        _STATE.clear()
    _STATE.install(engine)
    log.info("Job store ready at %s", engine.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the engine and forget it."""

    _STATE.clear()


class SqlAlchemyJobUnitOfWork:
    """One session per ``with`` block. Work not committed is rolled back on exit."""

    def __init__(self) -> None:
        self._sessions = _STATE.require_sessions()
        self._session: Session | None = None
        self._repositories: JobRepositories | None = None

    def __enter__(self) -> SqlAlchemyJobUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self._sessions()
        self._repositories = JobRepositories(jobs=SqlAlchemyJobRepository(self._session))
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> JobRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from intakesync.domain.ports.unit_of_work import JobUnitOfWork

    _uow_check: JobUnitOfWork = SqlAlchemyJobUnitOfWork()
