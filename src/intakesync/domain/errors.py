"""Domain error taxonomy.

Recognition and storage failures are caught at the pipeline boundary and turned
into a failed job. Reconciliation errors signal programming mistakes and abort the
call without touching any job record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from intakesync.domain.model.enums import JobState


class IntakeError(RuntimeError):
    """Base class for errors raised by the intake core."""


class InputRejectedError(IntakeError, ValueError):
    """Raised when raw input is missing or malformed."""


class UpstreamRecognitionError(IntakeError):
    """Raised when an external recognition or transcription service fails."""

    def __init__(self, message: str, *, service: str | None = None) -> None:
        super().__init__(message)
        self.service = service


class RecognitionTimeoutError(UpstreamRecognitionError):
    """Raised when an external service does not answer in time."""


class JobNotFoundError(IntakeError, LookupError):
    """Raised for unknown job ids and for jobs owned by another subject."""

    def __init__(self, job_id: object) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class InvalidTransitionError(IntakeError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, job_id: object, current: JobState, attempted: str) -> None:
        super().__init__(f"Cannot {attempted} job {job_id} in state {current}")
        self.job_id = job_id
        self.current = current
        self.attempted = attempted


class TerminalStateError(InvalidTransitionError):
    """Raised when a job that already reached a terminal state is written again."""


class JobAllocationError(IntakeError):
    """Raised when no unique job id could be allocated."""


class PersistenceError(IntakeError):
    """Raised by repositories when the backing store fails."""


class SchemaViolationError(IntakeError, ValueError):
    """Raised when a field set does not match the closed field schema."""


class MergeOrderError(IntakeError, ValueError):
    """Raised when an incoming candidate predates the record it is merged into."""


@dataclass(frozen=True, slots=True)
class NotReady:
    """Result placeholder returned while a job is still pending or processing."""

    job_id: object
    state: JobState
    progress_hint: int

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.job_id),
            "state": str(self.state),
            "progressHint": self.progress_hint,
            "ready": False,
        }


class DuplicateDispatchError(IntakeError):
    """Raised when a job is handed to the dispatcher a second time."""

    def __init__(self, job_id: object) -> None:
        super().__init__(f"Job {job_id} is already dispatched")
        self.job_id = job_id
