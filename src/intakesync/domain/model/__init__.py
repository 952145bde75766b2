"""Public domain model surface."""

from __future__ import annotations

from intakesync.domain.model.enums import (
    Canonicalization,
    FieldKind,
    FieldName,
    InputKind,
    JobState,
    SourceLabel,
)
from intakesync.domain.model.fields import (
    DEFAULT_CONFIDENCE,
    LOCKED_SENTINEL,
    UNSET,
    AuthoritativeRecord,
    CandidateFieldSet,
    FieldState,
    Inferred,
    Locked,
    Unset,
    state_confidence,
    state_value,
    to_state,
)
from intakesync.domain.model.job import InputReference, Job, new_job_id, utcnow
from intakesync.domain.model.schema import (
    EXPECTED_FIELDS,
    FIELD_NAMES,
    FIELD_SCHEMA,
    SPEC_BY_NAME,
    FieldSpec,
    canonicalize,
    field_name,
)
from intakesync.domain.model.us_states import STATE_CODES, STATE_NAMES, US_STATES, state_code

__all__ = [  # noqa: RUF022
    # enums
    "Canonicalization",
    "FieldKind",
    "FieldName",
    "InputKind",
    "JobState",
    "SourceLabel",
    # schema
    "EXPECTED_FIELDS",
    "FIELD_NAMES",
    "FIELD_SCHEMA",
    "SPEC_BY_NAME",
    "FieldSpec",
    "canonicalize",
    "field_name",
    # field state
    "DEFAULT_CONFIDENCE",
    "LOCKED_SENTINEL",
    "UNSET",
    "AuthoritativeRecord",
    "CandidateFieldSet",
    "FieldState",
    "Inferred",
    "Locked",
    "Unset",
    "state_confidence",
    "state_value",
    "to_state",
    # jobs
    "InputReference",
    "Job",
    "new_job_id",
    "utcnow",
    # states
    "STATE_CODES",
    "STATE_NAMES",
    "US_STATES",
    "state_code",
]
