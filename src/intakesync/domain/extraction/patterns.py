"""Offline regex recognizer for call transcripts.

Used when no recognition service is configured. It only finds values with a
recognizable surface form and reports fixed confidences for each pattern.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from intakesync.domain.errors import InputRejectedError
from intakesync.domain.model import US_STATES, FieldName
from intakesync.domain.ports.recognition import RecognitionResponse

from .normalize import normalize_name

if TYPE_CHECKING:
    from intakesync.domain.ports.recognition import PreparedInput

_EMAIL = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
_SPOKEN_EMAIL = re.compile(
    r"([a-zA-Z0-9._%+-]+)\s+at\s+([a-zA-Z0-9.-]+)\s+dot\s+(com|org|net|edu)",
    re.IGNORECASE,
)
_PHONE = re.compile(r"(\d{3}[-.\s]?\d{3}[-.\s]?\d{4})")
_ZIP = re.compile(r"\b(\d{5}(?:-\d{4})?)\b")
_NAME = re.compile(
    r"(?:name is|I'm|my name's|I am)\s+([A-Z][a-z]+)(?:\s+([A-Z][a-z]+))?",
    re.IGNORECASE,
)
_SEX = re.compile(r"\b(male|female|man|woman)\b", re.IGNORECASE)
# case-sensitive so ordinary words like "in" or "me" are not read as states
_STATE_PATTERNS: Final[tuple[tuple[str, re.Pattern[str]], ...]] = tuple(
    (code, re.compile(rf"\b{code}\b")) for code in US_STATES
)

EMAIL_CONFIDENCE: Final[float] = 0.85
SPOKEN_EMAIL_CONFIDENCE: Final[float] = 0.75
PHONE_CONFIDENCE: Final[float] = 0.8
ZIP_CONFIDENCE: Final[float] = 0.85
STATE_CONFIDENCE: Final[float] = 0.8
NAME_CONFIDENCE: Final[float] = 0.75
SEX_CONFIDENCE: Final[float] = 0.8


def scan_transcript(text: str) -> RecognitionResponse:
    fields: dict[str, object] = {}
    confidence: dict[str, object] = {}

    def put(name: FieldName, value: str, score: float) -> None:
        fields[name] = value
        confidence[name] = score

    if match := _EMAIL.search(text):
        put(FieldName.EMAIL, match.group(1).lower(), EMAIL_CONFIDENCE)
    elif match := _SPOKEN_EMAIL.search(text):
        user, domain, tld = match.groups()
        put(FieldName.EMAIL, f"{user}@{domain}.{tld}".lower(), SPOKEN_EMAIL_CONFIDENCE)

    if match := _PHONE.search(text):
        put(FieldName.PHONE, re.sub(r"\D", "", match.group(1)), PHONE_CONFIDENCE)

    if match := _ZIP.search(text):
        put(FieldName.ADDRESS_ZIP, match.group(1), ZIP_CONFIDENCE)

    for code, pattern in _STATE_PATTERNS:
        if pattern.search(text):
            put(FieldName.ADDRESS_STATE, code, STATE_CONFIDENCE)
            break

    if match := _NAME.search(text):
        put(FieldName.FIRST_NAME, normalize_name(match.group(1)), NAME_CONFIDENCE)
        if match.group(2):
            put(FieldName.LAST_NAME, normalize_name(match.group(2)), NAME_CONFIDENCE)

    if match := _SEX.search(text):
        word = match.group(1).lower()
        put(FieldName.SEX, "M" if word in {"male", "man"} else "F", SEX_CONFIDENCE)

    return RecognitionResponse(fields=fields, confidence=confidence, engine="patterns")


class PatternRecognizer:
    """Recognizer backed by ``scan_transcript``; it cannot read images."""

    async def recognize(self, prepared: PreparedInput) -> RecognitionResponse:
        if prepared.text is None:
            raise InputRejectedError(
                f"Pattern recognition needs transcript text, got {prepared.kind} input"
            )
        return scan_transcript(prepared.text)


if TYPE_CHECKING:
    from intakesync.domain.ports.recognition import Recognizer

    _recognizer_check: Recognizer = PatternRecognizer()
