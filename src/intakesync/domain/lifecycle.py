"""Job lifecycle manager.

Owns the ``pending -> processing -> completed | failed`` state machine on top of a
job repository. Each mutation loads the job, applies one transition and saves the
whole record inside a unit of work while holding that job's lock, so concurrent
terminal signals resolve to exactly one terminal write and readers only ever see
complete snapshots.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from intakesync.domain.errors import (
    InvalidTransitionError,
    JobAllocationError,
    JobNotFoundError,
    NotReady,
)
from intakesync.domain.model import (
    AuthoritativeRecord,
    InputKind,
    InputReference,
    Job,
    JobState,
    new_job_id,
    utcnow,
)
from intakesync.domain.reconciliation import (
    MANUAL_REVIEW_THRESHOLD,
    carry_locks,
    low_confidence_fields,
    overall_confidence,
    requires_manual_review,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from intakesync.domain.model import CandidateFieldSet
    from intakesync.domain.ports.unit_of_work import JobUnitOfWork

log = getLogger(__name__)

MAX_ALLOCATION_ATTEMPTS: Final[int] = 5

type UnitOfWorkFactory = Callable[[], JobUnitOfWork]


@dataclass(frozen=True, slots=True)
class JobStatusView:
    id: UUID
    state: JobState
    progress_hint: int
    created_at: datetime
    updated_at: datetime | None
    error: str | None = None

    @classmethod
    def of(cls, job: Job) -> JobStatusView:
        return cls(
            id=job.id,
            state=job.state,
            progress_hint=job.progress_hint,
            created_at=job.created_at,
            updated_at=job.updated_at,
            error=job.error,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "state": str(self.state),
            "progressHint": self.progress_hint,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class JobResultView:
    id: UUID
    state: JobState
    fields: dict[str, str]
    confidence: dict[str, float]
    field_sources: dict[str, str]
    overall_confidence: float
    requires_manual_review: bool
    low_confidence: list[str] = field(default_factory=list[str])
    processed_at: datetime | None = None
    processing_time_ms: int | None = None
    error: str | None = None

    @classmethod
    def of(cls, job: Job, *, low_confidence_threshold: float) -> JobResultView:
        flagged = low_confidence_fields(job.record, threshold=low_confidence_threshold)
        return cls(
            id=job.id,
            state=job.state,
            fields=job.record.values(),
            confidence=job.record.confidences(),
            field_sources=job.record.field_sources(),
            overall_confidence=job.overall_confidence,
            requires_manual_review=job.requires_manual_review,
            low_confidence=[str(name) for name, _ in flagged],
            processed_at=job.processed_at,
            processing_time_ms=job.processing_time_ms,
            error=job.error,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "state": str(self.state),
            "ready": True,
            "fields": self.fields,
            "confidence": self.confidence,
            "fieldSources": self.field_sources,
            "overallConfidence": self.overall_confidence,
            "requiresManualReview": self.requires_manual_review,
            "lowConfidenceFields": self.low_confidence,
            "processedAt": self.processed_at.isoformat() if self.processed_at else None,
            "processingTimeMs": self.processing_time_ms,
            "error": self.error,
        }


class _JobLocks:
    """Per-job mutexes; no lock is shared between jobs.

    A lock lives only while some caller holds a reference to it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[UUID, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    def __call__(self, job_id: UUID) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(job_id)
            if lock is None:
                lock = self._locks[job_id] = threading.Lock()
            return lock


class JobLifecycleManager:
    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        manual_review_threshold: float = MANUAL_REVIEW_THRESHOLD,
        low_confidence_threshold: float = 0.7,
        id_factory: Callable[[], UUID] = new_job_id,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._manual_review_threshold = manual_review_threshold
        self._low_confidence_threshold = low_confidence_threshold
        self._id_factory = id_factory
        self._clock = clock
        self._locks = _JobLocks()

    # mutations

    def create(
        self,
        subject_id: str,
        input_ref: InputReference,
        *,
        realtime: CandidateFieldSet | None = None,
    ) -> UUID:
        """Insert a ``pending`` job and return its id."""

        for _ in range(MAX_ALLOCATION_ATTEMPTS):
            job_id = self._id_factory()
            with self._locks(job_id), self._uow_factory() as uow:
                jobs = uow.repositories.jobs
                if jobs.load(job_id) is not None:
                    log.warning("Job id collision on %s; allocating another", job_id)
                    continue
                job = Job(
                    id=job_id,
                    subject_id=subject_id,
                    input=input_ref,
                    realtime=realtime,
                    created_at=self._clock(),
                )
                jobs.save(job)
                uow.commit()
            log.info("Created %s job %s for subject %s", input_ref.kind, job_id, subject_id)
            return job_id
        raise JobAllocationError(
            f"Could not allocate a unique job id after {MAX_ALLOCATION_ATTEMPTS} attempts"
        )

    def begin_processing(self, job_id: UUID) -> Job:
        return self._mutate(
            job_id, "begin processing", lambda job: job.begin_processing(now=self._clock())
        )

    def attach_candidate(self, job_id: UUID, candidate: CandidateFieldSet) -> Job:
        return self._mutate(
            job_id,
            "attach candidate",
            lambda job: job.attach_candidate(candidate, now=self._clock()),
        )

    def complete(self, job_id: UUID, record: AuthoritativeRecord) -> Job:
        overall = overall_confidence(record.states.values())
        review = requires_manual_review(overall, threshold=self._manual_review_threshold)

        def apply(job: Job) -> None:
            job.complete(
                record,
                overall_confidence=overall,
                requires_manual_review=review,
                now=self._clock(),
            )

        job = self._mutate(job_id, "complete", apply)
        log.info(
            "Completed job %s: overall confidence %.2f%s",
            job_id,
            overall,
            " (manual review required)" if review else "",
        )
        return job

    def fail(self, job_id: UUID, description: str) -> Job:
        job = self._mutate(job_id, "fail", lambda job: job.fail(description, now=self._clock()))
        log.info("Job %s failed: %s", job_id, description)
        return job

    def annotate_failure(self, job_id: UUID, note: str) -> Job:
        return self._mutate(
            job_id,
            "annotate",
            lambda job: job.annotate_failure(note, now=self._clock()),
        )

    def record_correction(self, subject_id: str, record: AuthoritativeRecord) -> UUID:
        """Store an operator-corrected record as a completed manual job."""

        job_id = self.create(subject_id, InputReference(kind=InputKind.MANUAL))
        self.begin_processing(job_id)
        self.complete(job_id, record)
        return job_id

    # queries

    def get(self, job_id: UUID, requester: str) -> Job:
        with self._uow_factory() as uow:
            job = uow.repositories.jobs.load(job_id)
        if job is None or not job.owned_by(requester):
            raise JobNotFoundError(job_id)
        return job

    def get_status(self, job_id: UUID, requester: str) -> JobStatusView:
        return JobStatusView.of(self.get(job_id, requester))

    def get_result(self, job_id: UUID, requester: str) -> JobResultView | NotReady:
        job = self.get(job_id, requester)
        if not job.is_terminal:
            return NotReady(job_id=job.id, state=job.state, progress_hint=job.progress_hint)
        return JobResultView.of(job, low_confidence_threshold=self._low_confidence_threshold)

    def list_for_subject(self, subject_id: str) -> list[JobStatusView]:
        with self._uow_factory() as uow:
            jobs = uow.repositories.jobs.find_by_subject(subject_id)
        return [JobStatusView.of(job) for job in sorted(jobs, key=lambda job: job.created_at)]

    def latest_record_for_subject(
        self,
        subject_id: str,
        *,
        not_after: datetime | None = None,
        exclude: UUID | None = None,
    ) -> AuthoritativeRecord | None:
        """Most recent completed record of ``subject_id`` observed no later than ``not_after``."""

        records = self._completed_records(subject_id, exclude)
        if not_after is not None:
            records = [item for item in records if _as_of(item) <= not_after]
        return records[-1] if records else None

    def prior_record_for_subject(
        self,
        subject_id: str,
        *,
        cutoff: datetime,
        exclude: UUID | None = None,
    ) -> AuthoritativeRecord | None:
        """Record that candidates observed from ``cutoff`` on are folded into.

        This is the latest completed record as of ``cutoff``, with the locked
        fields of every newer record carried over.
        """

        records = self._completed_records(subject_id, exclude)
        earlier = [item for item in records if _as_of(item) <= cutoff]
        later = [item for item in records if _as_of(item) > cutoff]
        base = earlier[-1] if earlier else None
        if not later:
            return base
        return carry_locks(base or AuthoritativeRecord.empty(), later)

    # internals

    def _completed_records(
        self, subject_id: str, exclude: UUID | None
    ) -> list[AuthoritativeRecord]:
        """Completed, dated records of ``subject_id``, oldest ``as_of`` first."""

        with self._uow_factory() as uow:
            jobs = uow.repositories.jobs.find_by_subject(subject_id)
        dated = [
            job.record
            for job in jobs
            if job.id != exclude
            and job.state is JobState.COMPLETED
            and job.record.as_of is not None
        ]
        return sorted(dated, key=_as_of)

    def _mutate(self, job_id: UUID, action: str, apply: Callable[[Job], None]) -> Job:
        with self._locks(job_id), self._uow_factory() as uow:
            jobs = uow.repositories.jobs
            job = jobs.load(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            try:
                apply(job)
                jobs.save(job)
            except InvalidTransitionError as exc:
                log.warning("Rejected %s on job %s in state %s", action, job_id, exc.current)
                raise
            uow.commit()
        return job



def _as_of(record: AuthoritativeRecord) -> datetime:
    return cast("datetime", record.as_of)
