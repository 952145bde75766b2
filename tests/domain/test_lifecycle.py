from __future__ import annotations

import threading
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import pytest

from intakesync.domain.errors import (
    InvalidTransitionError,
    JobAllocationError,
    JobNotFoundError,
    NotReady,
    TerminalStateError,
)
from intakesync.domain.lifecycle import JobLifecycleManager, JobResultView
from intakesync.domain.model import InputKind, JobState
from tests.helpers.jobs import SteppingClock, at, candidate, record, transcript_input

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from intakesync.adapters.memory import InMemoryJobStore, InMemoryJobUnitOfWork

SUBJECT = "subject-1"


@pytest.fixture
def lifecycle(memory_unit_of_work: Callable[[], InMemoryJobUnitOfWork]) -> JobLifecycleManager:
    return JobLifecycleManager(memory_unit_of_work, clock=SteppingClock())


def _completed(
    lifecycle: JobLifecycleManager,
    fields: dict[str, object],
    confidence: dict[str, object] | None = None,
    *,
    as_of: datetime | None = None,
) -> UUID:
    job_id = lifecycle.create(SUBJECT, transcript_input())
    lifecycle.begin_processing(job_id)
    lifecycle.complete(job_id, record(fields, confidence, as_of=as_of))
    return job_id


def test_create_stores_pending_job(
    lifecycle: JobLifecycleManager,
    job_store: InMemoryJobStore,
) -> None:
    job_id = lifecycle.create(SUBJECT, transcript_input())

    status = lifecycle.get_status(job_id, SUBJECT)
    assert status.state is JobState.PENDING
    assert status.progress_hint == 0
    assert len(job_store) == 1


def test_job_of_another_subject_is_not_found(lifecycle: JobLifecycleManager) -> None:
    job_id = lifecycle.create(SUBJECT, transcript_input())

    with pytest.raises(JobNotFoundError):
        lifecycle.get_status(job_id, "subject-2")
    with pytest.raises(JobNotFoundError):
        lifecycle.get_result(uuid4(), SUBJECT)


def test_result_of_unfinished_job_is_not_ready(lifecycle: JobLifecycleManager) -> None:
    job_id = lifecycle.create(SUBJECT, transcript_input())
    lifecycle.begin_processing(job_id)

    result = lifecycle.get_result(job_id, SUBJECT)

    assert result == NotReady(job_id=job_id, state=JobState.PROCESSING, progress_hint=50)
    assert result.to_dict()["ready"] is False


def test_complete_computes_overall_confidence_and_review_flag(
    lifecycle: JobLifecycleManager,
) -> None:
    job_id = _completed(
        lifecycle,
        {"firstName": "Jane", "lastName": "Doe", "dob": "1990-12-25"},
        {"firstName": 0.9, "lastName": 1.5, "dob": 0.6},
    )

    result = lifecycle.get_result(job_id, SUBJECT)

    assert isinstance(result, JobResultView)
    assert result.state is JobState.COMPLETED
    assert result.overall_confidence == pytest.approx(0.75)
    assert result.requires_manual_review is False
    assert result.low_confidence == ["dob"]
    payload = result.to_dict()
    assert payload["ready"] is True
    assert payload["fields"] == {"firstName": "Jane", "lastName": "Doe", "dob": "1990-12-25"}
    assert payload["lowConfidenceFields"] == ["dob"]


def test_low_overall_confidence_requires_review(lifecycle: JobLifecycleManager) -> None:
    job_id = _completed(lifecycle, {"firstName": "Jane"}, {"firstName": 0.3})

    result = lifecycle.get_result(job_id, SUBJECT)

    assert isinstance(result, JobResultView)
    assert result.requires_manual_review is True


def test_terminal_job_rejects_second_terminal_write(lifecycle: JobLifecycleManager) -> None:
    job_id = _completed(lifecycle, {"sex": "F"}, {"sex": 0.8})

    with pytest.raises(TerminalStateError):
        lifecycle.fail(job_id, "late failure")
    with pytest.raises(TerminalStateError):
        lifecycle.complete(job_id, record({"sex": "M"}, {"sex": 0.99}))

    result = lifecycle.get_result(job_id, SUBJECT)
    assert isinstance(result, JobResultView)
    assert result.fields == {"sex": "F"}
    assert result.error is None


def test_begin_processing_twice_is_rejected(lifecycle: JobLifecycleManager) -> None:
    job_id = lifecycle.create(SUBJECT, transcript_input())
    lifecycle.begin_processing(job_id)

    with pytest.raises(InvalidTransitionError):
        lifecycle.begin_processing(job_id)


def test_mutating_unknown_job_raises_not_found(lifecycle: JobLifecycleManager) -> None:
    with pytest.raises(JobNotFoundError):
        lifecycle.fail(uuid4(), "nothing there")


def test_failed_job_reports_error(lifecycle: JobLifecycleManager) -> None:
    job_id = lifecycle.create(SUBJECT, transcript_input())
    lifecycle.begin_processing(job_id)
    lifecycle.fail(job_id, "Recognition failed (anthropic): HTTP 500")
    lifecycle.annotate_failure(job_id, "retry scheduled")

    result = lifecycle.get_result(job_id, SUBJECT)

    assert isinstance(result, JobResultView)
    assert result.state is JobState.FAILED
    assert result.fields == {}
    assert result.error == "Recognition failed (anthropic): HTTP 500; retry scheduled"


def test_attach_candidate_is_stored(
    lifecycle: JobLifecycleManager,
    job_store: InMemoryJobStore,
) -> None:
    job_id = lifecycle.create(SUBJECT, transcript_input())
    lifecycle.begin_processing(job_id)

    lifecycle.attach_candidate(job_id, candidate({"firstName": "Jane"}))

    stored = job_store.get(job_id)
    assert stored is not None
    assert stored.candidate is not None
    assert stored.candidate.to_maps() == ({"firstName": "Jane"}, {"firstName": 0.7})


def test_create_retries_colliding_ids(
    memory_unit_of_work: Callable[[], InMemoryJobUnitOfWork],
) -> None:
    taken = uuid4()
    fresh = uuid4()
    ids = iter([taken, taken, fresh])
    lifecycle = JobLifecycleManager(memory_unit_of_work, id_factory=lambda: next(ids))

    assert lifecycle.create(SUBJECT, transcript_input()) == taken
    assert lifecycle.create(SUBJECT, transcript_input()) == fresh


def test_create_gives_up_after_repeated_collisions(
    memory_unit_of_work: Callable[[], InMemoryJobUnitOfWork],
) -> None:
    taken = uuid4()
    lifecycle = JobLifecycleManager(memory_unit_of_work, id_factory=lambda: taken)
    lifecycle.create(SUBJECT, transcript_input())

    with pytest.raises(JobAllocationError):
        lifecycle.create(SUBJECT, transcript_input())


def test_list_for_subject_orders_by_creation(lifecycle: JobLifecycleManager) -> None:
    first = lifecycle.create(SUBJECT, transcript_input())
    second = lifecycle.create(SUBJECT, transcript_input())
    lifecycle.create("subject-2", transcript_input())

    assert [view.id for view in lifecycle.list_for_subject(SUBJECT)] == [first, second]


def test_record_correction_creates_completed_manual_job(
    lifecycle: JobLifecycleManager,
    job_store: InMemoryJobStore,
) -> None:
    job_id = lifecycle.record_correction(SUBJECT, record({"lastName": "Smith"}, {"lastName": 1.5}))

    stored = job_store.get(job_id)
    assert stored is not None
    assert stored.input.kind is InputKind.MANUAL
    assert stored.state is JobState.COMPLETED
    assert stored.overall_confidence == 0.0


def test_latest_record_for_subject_respects_cutoff(lifecycle: JobLifecycleManager) -> None:
    _completed(lifecycle, {"firstName": "Jane"}, as_of=at(10))
    _completed(lifecycle, {"firstName": "Janet"}, as_of=at(100))
    lifecycle.create(SUBJECT, transcript_input())

    latest = lifecycle.latest_record_for_subject(SUBJECT)
    assert latest is not None
    assert latest.values() == {"firstName": "Janet"}

    earlier = lifecycle.latest_record_for_subject(SUBJECT, not_after=at(50))
    assert earlier is not None
    assert earlier.values() == {"firstName": "Jane"}

    assert lifecycle.latest_record_for_subject(SUBJECT, not_after=at(5)) is None
    assert lifecycle.latest_record_for_subject("subject-2") is None


def test_latest_record_for_subject_skips_excluded_job(lifecycle: JobLifecycleManager) -> None:
    only = _completed(lifecycle, {"firstName": "Jane"}, as_of=at(10))

    assert lifecycle.latest_record_for_subject(SUBJECT, exclude=only) is None


def test_prior_record_carries_locks_newer_than_cutoff(lifecycle: JobLifecycleManager) -> None:
    _completed(lifecycle, {"lastName": "Doe", "email": "jane@example.com"}, as_of=at(0))
    lifecycle.record_correction(
        SUBJECT,
        record({"lastName": "Smith"}, {"lastName": 1.5}, {"lastName": "user_edit"}, as_of=at(20)),
    )
    _completed(lifecycle, {"email": "j.doe@example.com"}, {"email": 0.9}, as_of=at(30))

    prior = lifecycle.prior_record_for_subject(SUBJECT, cutoff=at(10))

    assert prior is not None
    assert prior.as_of == at(0)
    assert prior.values() == {"lastName": "Smith", "email": "jane@example.com"}
    assert prior.field_sources()["lastName"] == "user_edit"


def test_prior_record_without_earlier_record_holds_only_locks(
    lifecycle: JobLifecycleManager,
) -> None:
    lifecycle.record_correction(
        SUBJECT, record({"dob": "1985-07-04"}, {"dob": 1.5}, as_of=at(20))
    )
    _completed(lifecycle, {"firstName": "Jane"}, as_of=at(30))

    prior = lifecycle.prior_record_for_subject(SUBJECT, cutoff=at(10))

    assert prior is not None
    assert prior.as_of is None
    assert prior.values() == {"dob": "1985-07-04"}
    assert lifecycle.prior_record_for_subject("subject-2", cutoff=at(10)) is None


def test_job_locks_are_released_after_use(lifecycle: JobLifecycleManager) -> None:
    for _ in range(3):
        _completed(lifecycle, {"firstName": "Jane"}, as_of=at(0))

    assert len(lifecycle._locks) == 0  # noqa: SLF001  # type: ignore[reportPrivateUsage]

def test_concurrent_terminal_signals_resolve_to_one_write(
    lifecycle: JobLifecycleManager,
) -> None:
    job_id = lifecycle.create(SUBJECT, transcript_input())
    lifecycle.begin_processing(job_id)
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def signal(index: int) -> None:
        barrier.wait()
        try:
            if index % 2:
                lifecycle.fail(job_id, f"failure {index}")
            else:
                lifecycle.complete(job_id, record({"firstName": f"Name{chr(65 + index)}"}))
        except TerminalStateError:
            outcome = "rejected"
        else:
            outcome = "written"
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=signal, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("written") == 1
    assert outcomes.count("rejected") == 7
    assert lifecycle.get_status(job_id, SUBJECT).state.is_terminal
