"""Ports for persisting jobs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from intakesync.domain.model import Job


@runtime_checkable
class JobRepository(Protocol):
    """Whole-snapshot storage for jobs.

    ``save`` inserts or replaces the full record, so readers never see a partial
    update. Backends raise ``PersistenceError`` on storage failures.
    """

    def load(self, job_id: UUID) -> Job | None: ...

    def save(self, job: Job) -> None: ...

    def find_by_subject(self, subject_id: str) -> list[Job]: ...
