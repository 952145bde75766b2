from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from intakesync.adapters.memory import InMemoryJobStore, InMemoryJobUnitOfWork
from intakesync.adapters.sqlalchemy.migrations import upgrade_head
from intakesync.adapters.sqlalchemy.unit_of_work import SqlAlchemyJobUnitOfWork, shutdown, startup

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection so worker threads see the same in-memory database
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyJobUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyJobUnitOfWork:
        return SqlAlchemyJobUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def memory_unit_of_work(job_store: InMemoryJobStore) -> Callable[[], InMemoryJobUnitOfWork]:
    def factory() -> InMemoryJobUnitOfWork:
        return InMemoryJobUnitOfWork(job_store)

    return factory
