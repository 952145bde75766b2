"""SQLAlchemy adapter package for job persistence."""

from __future__ import annotations

from .mappings import create_all_tables, job_table, metadata
from .repositories import SqlAlchemyJobRepository
from .unit_of_work import SqlAlchemyJobUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyJobRepository",
    "SqlAlchemyJobUnitOfWork",
    "create_all_tables",
    "job_table",
    "metadata",
    "shutdown",
    "startup",
]
