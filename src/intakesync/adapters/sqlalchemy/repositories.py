"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from intakesync.adapters.sqlalchemy.mappings import job_from_row, job_table, job_to_row
from intakesync.domain.errors import PersistenceError, TerminalStateError
from intakesync.domain.model import JobState

if TYPE_CHECKING:
    from collections.abc import Collection
    from uuid import UUID

    from sqlalchemy.orm import Session

    from intakesync.domain.model import Job


class SqlAlchemyJobRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def load(self, job_id: UUID) -> Job | None:
        stmt = select(job_table).where(job_table.c.id == job_id)
        try:
            row = self.session.execute(stmt).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not load job {job_id}: {exc}") from exc
        return job_from_row(row) if row is not None else None

    def save(self, job: Job) -> None:
        """Insert or update ``job``.

        A write that leaves the job terminal only lands on a row that is still
        pending or processing (a failed row may be re-annotated), so a
        concurrent writer that already finished the job keeps its result.
        """

        values = job_to_row(job)
        stored = select(job_table.c.state).where(job_table.c.id == job.id)
        try:
            current = self.session.execute(stored).scalar_one_or_none()
            if current is None:
                self.session.execute(job_table.insert().values(**values))
                return
            stmt = job_table.update().where(job_table.c.id == job.id)
            if job.state.is_terminal:
                stmt = stmt.where(job_table.c.state.in_(_writable_before(job.state)))
            result = self.session.execute(stmt.values(**values))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not save job {job.id}: {exc}") from exc
        if result.rowcount == 0:
            raise TerminalStateError(job.id, JobState(current), "save")

    def find_by_subject(self, subject_id: str) -> list[Job]:
        stmt = (
            select(job_table)
            .where(job_table.c.subject_id == subject_id)
            .order_by(job_table.c.created_at)
        )
        try:
            rows = self.session.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not list jobs of {subject_id}: {exc}") from exc
        return [job_from_row(row) for row in rows]


def _writable_before(target: JobState) -> Collection[JobState]:
    if target is JobState.FAILED:
        return (JobState.PENDING, JobState.PROCESSING, JobState.FAILED)
    return (JobState.PENDING, JobState.PROCESSING)


if TYPE_CHECKING:
    from typing import cast

    from intakesync.domain.ports.persistence import JobRepository

    _session_stub = cast("Session", object())
    _repo_check: JobRepository = SqlAlchemyJobRepository(_session_stub)
