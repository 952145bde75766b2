"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class FieldName(StrEnum):
    """Closed set of extractable fields, valued by their wire names."""

    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    MIDDLE_INITIAL = "middleInitial"
    DOB = "dob"
    SEX = "sex"
    ADDRESS_STREET = "addressStreet"
    ADDRESS_CITY = "addressCity"
    ADDRESS_STATE = "addressState"
    ADDRESS_ZIP = "addressZip"
    EMAIL = "email"
    PHONE = "phone"
    INSURANCE_PROVIDER = "insuranceProvider"
    INSURANCE_ID = "insuranceId"
    MEMBER_ID = "memberId"
    ID_NUMBER = "idNumber"


class FieldKind(StrEnum):
    TEXT = "text"
    CODE = "code"
    DATE = "date"
    IDENTIFIER = "identifier"


class Canonicalization(StrEnum):
    TRIM = "trim"
    UPPER = "upper"
    LOWER = "lower"
    DIGITS = "digits"
    COMPACT_UPPER = "compact_upper"


class SourceLabel(StrEnum):
    """Provenance label recorded for every authoritative field value."""

    REALTIME = "realtime"
    POST_CALL = "post_call"
    USER_EDIT = "user_edit"
    POST_CALL_TIE = "post_call_tie"


class JobState(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {JobState.COMPLETED, JobState.FAILED}

    @property
    def progress_hint(self) -> int:
        return _PROGRESS_HINTS[self]


_PROGRESS_HINTS: dict[JobState, int] = {
    JobState.PENDING: 0,
    JobState.PROCESSING: 50,
    JobState.COMPLETED: 100,
    JobState.FAILED: 0,
}


class InputKind(StrEnum):
    ID_IMAGE = "id_image"
    TRANSCRIPT = "transcript"
    AUDIO = "audio"
    MANUAL = "manual"
