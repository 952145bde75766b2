"""Process-local job storage for tests and one-shot runs without a database."""

from __future__ import annotations

import copy
import threading
from typing import TYPE_CHECKING, Literal

from intakesync.domain.ports.unit_of_work import JobRepositories

if TYPE_CHECKING:
    from types import TracebackType
    from uuid import UUID

    from intakesync.domain.model import Job


class InMemoryJobStore:
    """Committed job snapshots. Jobs are copied in and out, never shared."""

    def __init__(self) -> None:
        self._jobs: dict[UUID, Job] = {}
        self._lock = threading.Lock()

    def get(self, job_id: UUID) -> Job | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job is not None else None

    def by_subject(self, subject_id: str) -> list[Job]:
        with self._lock:
            return [
                copy.deepcopy(job) for job in self._jobs.values() if job.subject_id == subject_id
            ]

    def apply(self, jobs: dict[UUID, Job]) -> None:
        with self._lock:
            for job_id, job in jobs.items():
                self._jobs[job_id] = copy.deepcopy(job)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class InMemoryJobRepository:
    def __init__(self, store: InMemoryJobStore) -> None:
        self._store = store
        self.staged: dict[UUID, Job] = {}

    def load(self, job_id: UUID) -> Job | None:
        staged = self.staged.get(job_id)
        if staged is not None:
            return copy.deepcopy(staged)
        return self._store.get(job_id)

    def save(self, job: Job) -> None:
        self.staged[job.id] = copy.deepcopy(job)

    def find_by_subject(self, subject_id: str) -> list[Job]:
        jobs = {job.id: job for job in self._store.by_subject(subject_id)}
        for job_id, job in self.staged.items():
            if job.subject_id == subject_id:
                jobs[job_id] = copy.deepcopy(job)
        return sorted(jobs.values(), key=lambda job: job.created_at)


class InMemoryJobUnitOfWork:
    """Stages saves and publishes them to the store on commit."""

    def __init__(self, store: InMemoryJobStore) -> None:
        self._store = store
        self._repository = InMemoryJobRepository(store)
        self.repositories = JobRepositories(jobs=self._repository)

    def __enter__(self) -> InMemoryJobUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.rollback()
        return False

    def commit(self) -> None:
        self._store.apply(self._repository.staged)
        self._repository.staged.clear()

    def rollback(self) -> None:
        self._repository.staged.clear()


if TYPE_CHECKING:
    from intakesync.domain.ports.persistence import JobRepository
    from intakesync.domain.ports.unit_of_work import JobUnitOfWork

    _repo_check: JobRepository = InMemoryJobRepository(InMemoryJobStore())
    _uow_check: JobUnitOfWork = InMemoryJobUnitOfWork(InMemoryJobStore())
