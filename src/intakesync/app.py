"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from intakesync.adapters.anthropic import AnthropicRecognizer
from intakesync.adapters.conversion import FileInputConverter
from intakesync.adapters.memory import InMemoryJobStore, InMemoryJobUnitOfWork
from intakesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyJobUnitOfWork,
    is_started,
    startup,
)
from intakesync.adapters.whisper import WhisperTranscriber
from intakesync.config import (
    PipelineConfig,
    get_pipeline_config,
    get_recognition_config,
    get_transcription_config,
    optional_env_var,
    recognition_configured,
)
from intakesync.domain.address import backfill_address
from intakesync.domain.errors import InputRejectedError
from intakesync.domain.extraction import Extractor, PatternRecognizer
from intakesync.domain.lifecycle import JobLifecycleManager
from intakesync.domain.model import (
    DEFAULT_CONFIDENCE,
    AuthoritativeRecord,
    CandidateFieldSet,
    InputKind,
    InputReference,
    JobState,
    SourceLabel,
)
from intakesync.domain.pipeline import ExtractionPipeline, PipelineDispatcher
from intakesync.domain.reconciliation import apply_user_edit, merge

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from pathlib import Path
    from uuid import UUID

    from intakesync.domain.errors import NotReady
    from intakesync.domain.lifecycle import JobResultView, JobStatusView
    from intakesync.domain.ports.conversion import Transcriber
    from intakesync.domain.ports.recognition import Recognizer
    from intakesync.domain.ports.unit_of_work import JobUnitOfWork
    from intakesync.domain.reconciliation import MergeResult

UnitOfWorkFactory = Callable[[], "JobUnitOfWork"]

log = getLogger(__name__)


@dataclass(slots=True)
class IntakeService:
    """Accepts raw input, runs extraction in the background and serves results."""

    lifecycle: JobLifecycleManager
    pipeline: ExtractionPipeline
    config: PipelineConfig = field(default_factory=PipelineConfig)
    dispatcher: PipelineDispatcher = field(default_factory=PipelineDispatcher)

    async def submit(
        self,
        subject_id: str,
        input_ref: InputReference,
        *,
        realtime: CandidateFieldSet | None = None,
    ) -> UUID:
        """Create a pending job and schedule its pipeline; returns without waiting."""

        job_id = await asyncio.to_thread(
            self.lifecycle.create, subject_id, input_ref, realtime=realtime
        )
        self.dispatcher.submit(job_id, self.pipeline.run(job_id))
        return job_id

    async def submit_transcript(
        self,
        subject_id: str,
        text: str,
        *,
        realtime: Mapping[str, object] | None = None,
        realtime_confidence: Mapping[str, object] | None = None,
        realtime_observed_at: datetime | None = None,
    ) -> UUID:
        return await self.submit(
            subject_id,
            InputReference(kind=InputKind.TRANSCRIPT, text=text),
            realtime=self.realtime_candidate(
                realtime, realtime_confidence, observed_at=realtime_observed_at
            ),
        )

    async def submit_id_image(
        self,
        subject_id: str,
        path: Path,
        *,
        mime_type: str | None = None,
    ) -> UUID:
        return await self.submit(
            subject_id,
            InputReference(
                kind=InputKind.ID_IMAGE,
                path=str(path),
                filename=path.name,
                mime_type=mime_type,
            ),
        )

    async def submit_audio(
        self,
        subject_id: str,
        path: Path,
        *,
        mime_type: str | None = None,
        realtime: Mapping[str, object] | None = None,
        realtime_confidence: Mapping[str, object] | None = None,
        realtime_observed_at: datetime | None = None,
    ) -> UUID:
        return await self.submit(
            subject_id,
            InputReference(
                kind=InputKind.AUDIO,
                path=str(path),
                filename=path.name,
                mime_type=mime_type,
            ),
            realtime=self.realtime_candidate(
                realtime, realtime_confidence, observed_at=realtime_observed_at
            ),
        )

    def realtime_candidate(
        self,
        fields: Mapping[str, object] | None,
        confidence: Mapping[str, object] | None = None,
        *,
        observed_at: datetime | None = None,
    ) -> CandidateFieldSet | None:
        values, scores = backfill_address(fields or {}, confidence)
        if not values:
            return None
        return CandidateFieldSet.from_maps(
            values,
            scores,
            source=SourceLabel.REALTIME,
            observed_at=observed_at,
            default_confidence=self.config.default_confidence,
        )

    async def wait(self, job_id: UUID) -> None:
        task = self.dispatcher.completion(job_id)
        if task is not None:
            await task

    def get_status(self, job_id: UUID, requester: str) -> JobStatusView:
        return self.lifecycle.get_status(job_id, requester)

    def get_result(self, job_id: UUID, requester: str) -> JobResultView | NotReady:
        return self.lifecycle.get_result(job_id, requester)

    def list_jobs(self, subject_id: str) -> list[JobStatusView]:
        return self.lifecycle.list_for_subject(subject_id)

    def edit_field(self, job_id: UUID, requester: str, name: str, value: object) -> UUID:
        """Lock ``name`` to an operator value for the subject of a completed job.

        The edit applies to the subject's latest record, which may be newer than
        ``job_id``'s own. Terminal jobs are never rewritten; the corrected record is
        stored as a new completed manual job and its id is returned.
        """

        job = self.lifecycle.get(job_id, requester)
        if job.state is not JobState.COMPLETED:
            raise InputRejectedError(
                f"Job {job_id} is {job.state}; only completed jobs can be edited"
            )
        latest = self.lifecycle.latest_record_for_subject(job.subject_id) or job.record
        corrected = apply_user_edit(latest, name, value)
        correction_id = self.lifecycle.record_correction(job.subject_id, corrected)
        log.info("Recorded operator edit of %s on job %s as job %s", name, job_id, correction_id)
        return correction_id


def merge_field_maps(
    existing: Mapping[str, object],
    existing_confidence: Mapping[str, object] | None,
    incoming: Mapping[str, object],
    incoming_confidence: Mapping[str, object] | None,
    *,
    existing_sources: Mapping[str, str] | None = None,
    incoming_source: SourceLabel = SourceLabel.POST_CALL,
    default_confidence: float = DEFAULT_CONFIDENCE,
) -> MergeResult:
    """Merge two boundary field maps, e.g. realtime call data and a post-call extraction."""

    record = AuthoritativeRecord.from_maps(
        existing,
        existing_confidence,
        existing_sources,
        default_confidence=default_confidence,
    )
    candidate = CandidateFieldSet.from_maps(
        incoming,
        incoming_confidence,
        source=incoming_source,
        default_confidence=default_confidence,
    )
    return merge(record, candidate)


def in_memory_unit_of_work_factory(store: InMemoryJobStore) -> UnitOfWorkFactory:
    def factory() -> JobUnitOfWork:
        return InMemoryJobUnitOfWork(store)

    return factory


def _default_recognizer() -> Recognizer:
    if recognition_configured():
        return AnthropicRecognizer(config=get_recognition_config())
    log.warning("ANTHROPIC_API_KEY is not set; using offline pattern recognition for transcripts")
    return PatternRecognizer()


def _default_transcriber() -> Transcriber | None:
    if optional_env_var("OPENAI_API_KEY") is None:
        return None
    return WhisperTranscriber(config=get_transcription_config())


def build_service(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    recognizer: Recognizer | None = None,
    transcriber: Transcriber | None = None,
    config: PipelineConfig | None = None,
    database_uri: str | None = None,
    in_memory: bool = False,
) -> IntakeService:
    """Wire the service from configured adapters; explicit arguments take precedence."""

    pipeline_config = config or get_pipeline_config()
    effective_uow: UnitOfWorkFactory
    if unit_of_work_factory is not None:
        effective_uow = unit_of_work_factory
    elif in_memory:
        effective_uow = in_memory_unit_of_work_factory(InMemoryJobStore())
    else:
        if not is_started():
            startup(database_uri=database_uri)
        effective_uow = SqlAlchemyJobUnitOfWork

    lifecycle = JobLifecycleManager(
        effective_uow,
        manual_review_threshold=pipeline_config.manual_review_threshold,
        low_confidence_threshold=pipeline_config.low_confidence_threshold,
    )
    converter = FileInputConverter(
        transcriber=transcriber if transcriber is not None else _default_transcriber(),
        min_transcript_length=pipeline_config.min_transcript_length,
    )
    extractor = Extractor(
        recognizer or _default_recognizer(),
        timeout_seconds=pipeline_config.recognition_timeout_seconds,
    )
    return IntakeService(
        lifecycle=lifecycle,
        pipeline=ExtractionPipeline(lifecycle, converter, extractor),
        config=pipeline_config,
    )


async def extract_and_wait(
    service: IntakeService,
    subject_id: str,
    input_ref: InputReference,
    *,
    realtime: CandidateFieldSet | None = None,
) -> JobResultView | NotReady:
    """Submit one job, wait for its pipeline and return the result view."""

    job_id = await service.submit(subject_id, input_ref, realtime=realtime)
    await service.wait(job_id)
    return service.get_result(job_id, subject_id)

