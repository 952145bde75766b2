"""Alembic environment for the job store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from intakesync.adapters.sqlalchemy.mappings import metadata
from intakesync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config


def _run(*, connection: Connection | None = None, url: str | None = None) -> None:
    # batch mode so ALTERs work on SQLite
    context.configure(
        connection=connection,
        url=url,
        target_metadata=metadata,
        render_as_batch=True,
        compare_type=True,
        literal_binds=connection is None,
    )
    with context.begin_transaction():
        context.run_migrations()


def _url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


if context.is_offline_mode():
    _run(url=_url())
elif (shared := config.attributes.get("connection")) is not None:
    _run(connection=shared)
else:
    engine = create_engine(_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _run(connection=connection)
    finally:
        engine.dispose()
