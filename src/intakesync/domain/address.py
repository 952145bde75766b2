"""Heuristic decomposition of a one-line US address."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from intakesync.domain.model import STATE_NAMES, US_STATES, FieldName

if TYPE_CHECKING:
    from collections.abc import Mapping

BASE_CONFIDENCE: Final[float] = 0.5
ZIP_BONUS: Final[float] = 0.15
STATE_CODE_BONUS: Final[float] = 0.15
STATE_NAME_BONUS: Final[float] = 0.10
SEGMENTS_BONUS: Final[float] = 0.20

RAW_ADDRESS_KEY: Final[str] = "address"
ADDRESS_PARTS: Final[tuple[FieldName, ...]] = (
    FieldName.ADDRESS_STREET,
    FieldName.ADDRESS_CITY,
    FieldName.ADDRESS_STATE,
    FieldName.ADDRESS_ZIP,
)

_ZIP_PATTERN = re.compile(r"\b(\d{5}(?:-\d{4})?)\b")
_STREET_PATTERN = re.compile(r"^\d+\s+")
_REPEATED_COMMAS = re.compile(r",+")
_STATE_CODE_PATTERNS: Final[tuple[tuple[str, re.Pattern[str]], ...]] = tuple(
    (code, re.compile(rf"\b{code}\b", re.IGNORECASE)) for code in US_STATES
)
# "west virginia" must be tried before "virginia"
_STATE_NAME_PATTERNS: Final[tuple[tuple[str, re.Pattern[str]], ...]] = tuple(
    (code, re.compile(rf"\b{re.escape(name)}\b", re.IGNORECASE))
    for name, code in sorted(STATE_NAMES.items(), key=lambda item: -len(item[0]))
)


@dataclass(frozen=True, slots=True)
class ParsedAddress:
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    confidence: float = BASE_CONFIDENCE

    def to_dict(self) -> dict[str, str | float | None]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "confidence": self.confidence,
        }


def _strip_state(working: str) -> tuple[str, str | None, float]:
    # abbreviations resolve by list order, not by position in the string
    for code, pattern in _STATE_CODE_PATTERNS:
        if pattern.search(working):
            return pattern.sub("", working, count=1).strip(), code, STATE_CODE_BONUS
    for code, pattern in _STATE_NAME_PATTERNS:
        if pattern.search(working):
            return pattern.sub("", working, count=1).strip(), code, STATE_NAME_BONUS
    return working, None, 0.0


def _segments(working: str) -> list[str]:
    collapsed = _REPEATED_COMMAS.sub(",", working).strip().strip(",")
    return [part.strip() for part in collapsed.split(",") if part.strip()]


def parse_address(text: str | None) -> ParsedAddress:
    """Split ``text`` into street, city, state and ZIP.

    Steps run in a fixed order, each removing what it matched: ZIP code, state
    abbreviation (or, failing that, full state name), then the remaining comma
    separated segments. Each successful step raises the confidence score.
    """

    if not text or not text.strip():
        return ParsedAddress()

    working = text.strip()
    confidence = BASE_CONFIDENCE

    zip_code: str | None = None
    zip_match = _ZIP_PATTERN.search(working)
    if zip_match:
        zip_code = zip_match.group(1)
        working = (working[: zip_match.start()] + working[zip_match.end() :]).strip()
        confidence += ZIP_BONUS

    working, state, bonus = _strip_state(working)
    confidence += bonus

    street: str | None = None
    city: str | None = None
    parts = _segments(working)
    if len(parts) >= 2:
        street, city = parts[0], parts[1]
        confidence += SEGMENTS_BONUS
    elif len(parts) == 1:
        if _STREET_PATTERN.match(parts[0]):
            street = parts[0]
        else:
            city = parts[0]

    return ParsedAddress(
        street=street,
        city=city,
        state=state,
        zip=zip_code,
        confidence=round(confidence, 2),
    )


def _filled(value: object) -> bool:
    return value is not None and bool(str(value).strip())


def backfill_address(
    fields: Mapping[str, object],
    confidence: Mapping[str, object] | None = None,
) -> tuple[dict[str, object], dict[str, object]]:
    """Replace a one-line ``address`` entry with structured address fields.

    The raw entry is always removed. Its parts are only used when ``fields``
    holds none of the structured address fields, and each derived field is
    scored with the parser's confidence.
    """

    values = dict(fields)
    scores = dict(confidence or {})
    raw = values.pop(RAW_ADDRESS_KEY, None)
    scores.pop(RAW_ADDRESS_KEY, None)
    if not isinstance(raw, str) or any(_filled(values.get(part)) for part in ADDRESS_PARTS):
        return values, scores

    parsed = parse_address(raw)
    derived = (parsed.street, parsed.city, parsed.state, parsed.zip)
    for name, value in zip(ADDRESS_PARTS, derived, strict=True):
        if value:
            values[name] = value
            scores[name] = parsed.confidence
    return values, scores
