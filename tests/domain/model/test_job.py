from __future__ import annotations

import pytest

from intakesync.domain.errors import InvalidTransitionError, TerminalStateError
from intakesync.domain.model import InputKind, InputReference, Job, JobState
from tests.helpers.jobs import at, candidate, record, transcript_input


def _job() -> Job:
    return Job(subject_id="subject-1", input=transcript_input(), created_at=at(0))


def test_new_job_is_pending() -> None:
    job = _job()

    assert job.state is JobState.PENDING
    assert job.updated_at == job.created_at
    assert job.progress_hint == 0
    assert job.record.is_empty()


def test_job_runs_to_completion() -> None:
    job = _job()
    job.begin_processing(now=at(1))
    assert job.progress_hint == 50

    job.attach_candidate(candidate({"firstName": "Jane"}), now=at(2))
    job.complete(
        record({"firstName": "Jane"}, {"firstName": 0.9}),
        overall_confidence=0.9,
        requires_manual_review=False,
        now=at(3.5),
    )

    assert job.state is JobState.COMPLETED
    assert job.is_terminal
    assert job.progress_hint == 100
    assert job.processed_at == at(3.5)
    assert job.processing_time_ms == 3500
    assert job.record.values() == {"firstName": "Jane"}


def test_pending_job_cannot_complete() -> None:
    job = _job()

    with pytest.raises(InvalidTransitionError) as excinfo:
        job.complete(record({}), overall_confidence=0.0, requires_manual_review=True)

    assert not isinstance(excinfo.value, TerminalStateError)
    assert job.state is JobState.PENDING


def test_pending_job_can_fail() -> None:
    job = _job()

    job.fail("Input rejected: empty", now=at(1))

    assert job.state is JobState.FAILED
    assert job.error == "Input rejected: empty"
    assert job.progress_hint == 0


def test_terminal_job_rejects_further_transitions() -> None:
    job = _job()
    job.begin_processing(now=at(1))
    job.complete(
        record({"sex": "F"}, {"sex": 0.8}),
        overall_confidence=0.8,
        requires_manual_review=False,
        now=at(2),
    )

    with pytest.raises(TerminalStateError):
        job.fail("late failure")
    with pytest.raises(TerminalStateError):
        job.complete(record({}), overall_confidence=0.0, requires_manual_review=True)
    with pytest.raises(TerminalStateError):
        job.attach_candidate(candidate({"sex": "M"}))

    assert job.state is JobState.COMPLETED
    assert job.record.values() == {"sex": "F"}
    assert job.error is None


def test_failed_job_collects_notes() -> None:
    job = _job()
    job.fail("Recognition failed: timeout", now=at(1))

    job.annotate_failure("operator notified", now=at(2))

    assert job.error == "Recognition failed: timeout; operator notified"
    assert job.updated_at == at(2)
    assert job.processed_at == at(1)


def test_annotate_requires_failed_job() -> None:
    with pytest.raises(InvalidTransitionError):
        _job().annotate_failure("note")


def test_input_reference_round_trip() -> None:
    reference = InputReference(
        kind=InputKind.ID_IMAGE,
        path="/tmp/licence.png",
        filename="licence.png",
        mime_type="image/png",
    )

    assert InputReference.from_dict(reference.to_dict()) == reference


def test_input_reference_requires_kind() -> None:
    with pytest.raises(ValueError, match="no kind"):
        InputReference.from_dict({"text": "hello"})
