"""Heuristic per-field confidence for values a recognizer did not score."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Final

from intakesync.domain.model import STATE_CODES, FieldName

DEFAULT_FIELD_CONFIDENCE: Final[float] = 0.7

_PROPER_NAME = re.compile(r"^[A-Z][a-z]+$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_TEN_DIGITS = re.compile(r"^\d{10}$")
_ZIP = re.compile(r"^\d{5}(-\d{4})?$")


def field_confidence(name: FieldName, value: str, *, current_year: int | None = None) -> float:
    """Score a normalized value by how well it matches its expected shape."""

    if not value:
        return 0.0

    match name:
        case FieldName.FIRST_NAME | FieldName.LAST_NAME:
            return 0.9 if _PROPER_NAME.match(value) else 0.7
        case FieldName.SEX:
            return 0.95 if value in {"M", "F"} else 0.5
        case FieldName.DOB:
            if _ISO_DATE.match(value):
                year = int(value[:4])
                latest = current_year or datetime.now(UTC).year
                if 1900 <= year <= latest:
                    return 0.9
            return 0.5
        case FieldName.EMAIL:
            return 0.9 if _EMAIL.match(value) else 0.5
        case FieldName.PHONE:
            return 0.9 if _TEN_DIGITS.match(value) else 0.6
        case FieldName.ADDRESS_STATE:
            return 0.95 if value in STATE_CODES else 0.5
        case FieldName.ADDRESS_ZIP:
            return 0.9 if _ZIP.match(value) else 0.6
        case _:
            return DEFAULT_FIELD_CONFIDENCE
