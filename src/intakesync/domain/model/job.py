"""Extraction job entity and its state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from intakesync.domain.errors import InvalidTransitionError, TerminalStateError
from intakesync.domain.model.enums import InputKind, JobState
from intakesync.domain.model.fields import AuthoritativeRecord

if TYPE_CHECKING:
    from collections.abc import Mapping

    from intakesync.domain.model.fields import CandidateFieldSet


def new_job_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class InputReference:
    """Where the raw input of a job lives. Transport and storage are not our concern."""

    kind: InputKind
    text: str | None = None
    path: str | None = None
    filename: str | None = None
    mime_type: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "kind": str(self.kind),
            "text": self.text,
            "path": self.path,
            "filename": self.filename,
            "mimeType": self.mime_type,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, str | None]) -> InputReference:
        kind = payload.get("kind")
        if kind is None:
            raise ValueError("Input reference payload has no kind")
        return cls(
            kind=InputKind(kind),
            text=payload.get("text"),
            path=payload.get("path"),
            filename=payload.get("filename"),
            mime_type=payload.get("mimeType"),
        )


@dataclass(eq=False, kw_only=True)
class Job:
    """A unit of extraction work owned by one subject.

    ``pending`` is the only initial state; ``completed`` and ``failed`` are terminal.
    Terminal jobs accept no field-bearing mutation, though a failed job may still
    collect error notes.
    """

    id: UUID = field(default_factory=new_job_id)
    subject_id: str
    input: InputReference
    state: JobState = JobState.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    processed_at: datetime | None = None

    realtime: CandidateFieldSet | None = None
    candidate: CandidateFieldSet | None = None
    record: AuthoritativeRecord = field(default_factory=AuthoritativeRecord.empty)
    overall_confidence: float = 0.0
    requires_manual_review: bool = False
    error: str | None = None
    processing_time_ms: int | None = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def progress_hint(self) -> int:
        return self.state.progress_hint

    def owned_by(self, subject_id: str) -> bool:
        return self.subject_id == subject_id

    def _touch(self, now: datetime | None) -> datetime:
        stamp = now or utcnow()
        self.updated_at = stamp
        return stamp

    def _require(self, allowed: set[JobState], attempted: str) -> None:
        if self.state in allowed:
            return
        if self.state.is_terminal:
            raise TerminalStateError(self.id, self.state, attempted)
        raise InvalidTransitionError(self.id, self.state, attempted)

    def begin_processing(self, *, now: datetime | None = None) -> None:
        self._require({JobState.PENDING}, "begin processing")
        self.state = JobState.PROCESSING
        self._touch(now)

    def attach_candidate(
        self, candidate: CandidateFieldSet, *, now: datetime | None = None
    ) -> None:
        self._require({JobState.PROCESSING}, "attach a candidate to")
        self.candidate = candidate
        self._touch(now)

    def complete(
        self,
        record: AuthoritativeRecord,
        *,
        overall_confidence: float,
        requires_manual_review: bool,
        now: datetime | None = None,
    ) -> None:
        self._require({JobState.PROCESSING}, "complete")
        stamp = self._touch(now)
        self.record = record
        self.overall_confidence = overall_confidence
        self.requires_manual_review = requires_manual_review
        self.state = JobState.COMPLETED
        self.processed_at = stamp
        self.processing_time_ms = _elapsed_ms(self.created_at, stamp)

    def fail(self, description: str, *, now: datetime | None = None) -> None:
        self._require({JobState.PENDING, JobState.PROCESSING}, "fail")
        stamp = self._touch(now)
        self.state = JobState.FAILED
        self.error = description
        self.processed_at = stamp
        self.processing_time_ms = _elapsed_ms(self.created_at, stamp)

    def annotate_failure(self, note: str, *, now: datetime | None = None) -> None:
        self._require({JobState.FAILED}, "annotate")
        self.error = f"{self.error}; {note}" if self.error else note
        self._touch(now)


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() * 1000))
