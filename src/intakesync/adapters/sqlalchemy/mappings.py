"""SQLAlchemy table metadata for extraction jobs.

Jobs are stored as one row per job. Field sets and the input reference are kept
as JSON documents in the boundary map format, so a row always holds a complete
snapshot of the job.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
)

from intakesync.domain.model import (
    AuthoritativeRecord,
    CandidateFieldSet,
    InputKind,
    InputReference,
    Job,
    JobState,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

job_table = Table(
    "job",
    metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("subject_id", String, nullable=False),
    Column("input_kind", Enum(InputKind, native_enum=False, length=16), nullable=False),
    Column("input", JSON, nullable=False),
    Column("state", Enum(JobState, native_enum=False, length=16), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    Column("processed_at", UTCDateTime(), nullable=True),
    Column("realtime", JSON, nullable=True),
    Column("candidate", JSON, nullable=True),
    Column("record", JSON, nullable=False),
    Column("overall_confidence", Float, nullable=False, default=0.0),
    Column("requires_manual_review", Boolean, nullable=False, default=False),
    Column("error", Text, nullable=True),
    Column("processing_time_ms", Integer, nullable=True),
    Index("ix_job_subject_created", "subject_id", "created_at"),
)


def job_to_row(job: Job) -> dict[str, object]:
    return {
        "id": job.id,
        "subject_id": job.subject_id,
        "input_kind": job.input.kind,
        "input": job.input.to_dict(),
        "state": job.state,
        "created_at": job.created_at,
        "updated_at": job.updated_at,
        "processed_at": job.processed_at,
        "realtime": job.realtime.to_dict() if job.realtime else None,
        "candidate": job.candidate.to_dict() if job.candidate else None,
        "record": job.record.to_dict(),
        "overall_confidence": job.overall_confidence,
        "requires_manual_review": job.requires_manual_review,
        "error": job.error,
        "processing_time_ms": job.processing_time_ms,
    }


def _document(value: object) -> Mapping[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise TypeError(f"Expected a JSON object, got {type(value).__name__}")
    return cast("Mapping[str, Any]", value)


def job_from_row(row: Mapping[str, Any]) -> Job:
    realtime = _document(row["realtime"])
    candidate = _document(row["candidate"])
    record = _document(row["record"])
    return Job(
        id=row["id"],
        subject_id=row["subject_id"],
        input=InputReference.from_dict(_document(row["input"]) or {}),
        state=JobState(row["state"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        processed_at=row["processed_at"],
        realtime=CandidateFieldSet.from_dict(realtime) if realtime else None,
        candidate=CandidateFieldSet.from_dict(candidate) if candidate else None,
        record=AuthoritativeRecord.from_dict(record) if record else AuthoritativeRecord.empty(),
        overall_confidence=row["overall_confidence"],
        requires_manual_review=row["requires_manual_review"],
        error=row["error"],
        processing_time_ms=row["processing_time_ms"],
    )


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the job metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
