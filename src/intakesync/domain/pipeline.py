"""Extraction pipeline: one job from raw input to a reconciled record.

``ExtractionPipeline.run`` drives a single job through
``pending -> processing -> completed | failed``. Recognition, conversion and storage
failures never escape ``run``; they end the job as ``failed`` with a description.
``PipelineDispatcher`` schedules runs in the background, at most one running per job.
"""

from __future__ import annotations

import asyncio
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from intakesync.domain.errors import (
    DuplicateDispatchError,
    InputRejectedError,
    InvalidTransitionError,
    JobNotFoundError,
    MergeOrderError,
    PersistenceError,
    SchemaViolationError,
    TerminalStateError,
    UpstreamRecognitionError,
)
from intakesync.domain.model import AuthoritativeRecord
from intakesync.domain.reconciliation import fold

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from uuid import UUID

    from intakesync.domain.extraction import Extractor
    from intakesync.domain.lifecycle import JobLifecycleManager
    from intakesync.domain.model import CandidateFieldSet, Job
    from intakesync.domain.ports.conversion import InputConverter

log = getLogger(__name__)


def describe_failure(exc: BaseException) -> str:
    """Human-readable error stored on a failed job."""

    match exc:
        case InputRejectedError():
            return f"Input rejected: {exc}"
        case UpstreamRecognitionError(service=str(service)):
            return f"Recognition failed ({service}): {exc}"
        case UpstreamRecognitionError():
            return f"Recognition failed: {exc}"
        case PersistenceError():
            return f"Storage failure: {exc}"
        case MergeOrderError() | SchemaViolationError():
            return f"Reconciliation failed: {exc}"
        case _:
            return f"Unexpected error: {type(exc).__name__}: {exc}"


class ExtractionPipeline:
    def __init__(
        self,
        lifecycle: JobLifecycleManager,
        converter: InputConverter,
        extractor: Extractor,
    ) -> None:
        self._lifecycle = lifecycle
        self._converter = converter
        self._extractor = extractor

    async def run(self, job_id: UUID) -> None:
        """Process ``job_id`` to a terminal state.

        Only a job that is missing or no longer ``pending`` is left untouched;
        everything that goes wrong after processing began ends in ``fail``.
        """

        try:
            job = await asyncio.to_thread(self._lifecycle.begin_processing, job_id)
        except (JobNotFoundError, InvalidTransitionError):
            log.exception("Job %s cannot be processed", job_id)
            return
        except PersistenceError as exc:
            await self._fail(job_id, exc)
            return

        try:
            await self._process(job)
        except asyncio.CancelledError:
            await self._fail(job_id, UpstreamRecognitionError("Processing was cancelled"))
            raise
        except Exception as exc:
            log.exception("Processing job %s failed", job_id)
            await self._fail(job_id, exc)

    async def _process(self, job: Job) -> None:
        prepared = await self._converter.prepare(job.input)
        candidate = await self._extractor.extract(prepared)
        await asyncio.to_thread(self._lifecycle.attach_candidate, job.id, candidate)

        candidates = _chronological(job.realtime, candidate)
        prior = await asyncio.to_thread(
            self._lifecycle.prior_record_for_subject,
            job.subject_id,
            cutoff=candidates[0].observed_at,
            exclude=job.id,
        )
        result = fold(prior or AuthoritativeRecord.empty(), candidates)
        await asyncio.to_thread(self._lifecycle.complete, job.id, result.record)

    async def _fail(self, job_id: UUID, exc: BaseException) -> None:
        description = describe_failure(exc)
        try:
            await asyncio.to_thread(self._lifecycle.fail, job_id, description)
        except TerminalStateError:
            log.warning(
                "Job %s already reached a terminal state; dropping: %s", job_id, description
            )
        except (JobNotFoundError, PersistenceError):
            log.exception("Could not record failure of job %s: %s", job_id, description)


def _chronological(
    realtime: CandidateFieldSet | None,
    candidate: CandidateFieldSet,
) -> list[CandidateFieldSet]:
    if realtime is None:
        return [candidate]
    # stable sort keeps realtime data first on equal timestamps
    return sorted([realtime, candidate], key=lambda item: item.observed_at)


class PipelineDispatcher:
    """Runs pipeline coroutines as background tasks, one task per job.

    Only unfinished runs are tracked. A finished task is forgotten, so a second
    submit for the same job is accepted once the first run is over.
    """

    def __init__(self) -> None:
        self._tasks: dict[UUID, asyncio.Task[None]] = {}

    def submit(self, job_id: UUID, run: Coroutine[object, object, None]) -> asyncio.Task[None]:
        if job_id in self._tasks:
            run.close()
            raise DuplicateDispatchError(job_id)
        task = asyncio.get_running_loop().create_task(run, name=f"extract-{job_id}")
        task.add_done_callback(partial(self._finished, job_id))
        self._tasks[job_id] = task
        return task

    def completion(self, job_id: UUID) -> asyncio.Task[None] | None:
        return self._tasks.get(job_id)

    def pending(self) -> list[UUID]:
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    async def drain(self) -> None:
        """Wait for every dispatched run to finish."""

        while tasks := [task for task in self._tasks.values() if not task.done()]:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _finished(self, job_id: UUID, task: asyncio.Task[None]) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]
        if task.cancelled():
            log.warning("Pipeline task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            log.error("Pipeline task %s crashed", task.get_name(), exc_info=exc)
