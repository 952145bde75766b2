"""Value normalizers applied to raw recognizer output.

Recognizers return values the way they were read or heard: "JOHN", "new york",
"December twenty-fifth nineteen ninety", "+1 (555) 123-4567". Each normalizer maps
such a value onto the canonical form the validation rules expect and falls back
to the cleaned input when it cannot do better.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from intakesync.domain.model import FieldName, state_code

if TYPE_CHECKING:
    from collections.abc import Callable

SPOKEN_NUMBERS: Final[dict[str, int]] = {
    "zero": 0, "oh": 0,
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
    "twenty": 20, "twenty-one": 21, "twenty-two": 22, "twenty-three": 23,
    "twenty-four": 24, "twenty-five": 25, "twenty-six": 26, "twenty-seven": 27,
    "twenty-eight": 28, "twenty-nine": 29, "thirty": 30, "thirty-one": 31,
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
    "sixth": 6, "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10,
    "eleventh": 11, "twelfth": 12, "thirteenth": 13, "fourteenth": 14, "fifteenth": 15,
    "sixteenth": 16, "seventeenth": 17, "eighteenth": 18, "nineteenth": 19,
    "twentieth": 20, "twenty-first": 21, "twenty-second": 22, "twenty-third": 23,
    "twenty-fourth": 24, "twenty-fifth": 25, "twenty-sixth": 26, "twenty-seventh": 27,
    "twenty-eighth": 28, "twenty-ninth": 29, "thirtieth": 30, "thirty-first": 31,
}  # fmt: skip

SPOKEN_DECADES: Final[dict[str, int]] = {
    "ninety": 90, "eighty": 80, "seventy": 70, "sixty": 60, "fifty": 50,
    "forty": 40, "thirty": 30, "twenty": 20, "ten": 10, "oh": 0, "zero": 0,
}  # fmt: skip

MONTH_NAMES: Final[dict[str, int]] = {
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
}  # fmt: skip

SEX_CODES: Final[dict[str, str]] = {
    "male": "M", "m": "M", "man": "M", "boy": "M",
    "female": "F", "f": "F", "woman": "F", "girl": "F",
}  # fmt: skip

TWO_DIGIT_YEAR_PIVOT: Final[int] = 30

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ORDINAL_SUFFIX = re.compile(r"(\d+)(st|nd|rd|th)\b", re.IGNORECASE)
_LOOSE_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_NUMERIC_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")
_MONTH_DAY_YEAR = re.compile(r"^([a-z]+)\.?\s+(\d{1,2}),?\s*(\d{4})$", re.IGNORECASE)
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})(?:\s+of)?\s+([a-z]+)\.?,?\s*(\d{4})$", re.IGNORECASE)
_SPOKEN_YEAR = re.compile(r"(?=\b(nineteen|twenty)\s+([a-z-]+)(?:\s+([a-z-]+))?)")
_TWO_THOUSAND = re.compile(r"\btwo thousand(?:\s+(?:and\s+)?([a-z-]+))?")
_NUMERIC_YEAR = re.compile(r"\b(19\d{2}|20\d{2})\b")
_NUMERIC_DAY = re.compile(r"\b(\d{1,2})\b")
_NON_DIGITS = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s+")

_DAY_WORD_PATTERNS: Final[tuple[tuple[int, re.Pattern[str]], ...]] = tuple(
    (number, re.compile(rf"\b{word.replace('-', '[- ]?')}\b"))
    for word, number in sorted(SPOKEN_NUMBERS.items(), key=lambda item: -len(item[0]))
    if number >= 1
)
_MONTH_PATTERNS: Final[tuple[tuple[int, re.Pattern[str]], ...]] = tuple(
    (number, re.compile(rf"\b{name}\b"))
    for name, number in sorted(MONTH_NAMES.items(), key=lambda item: -len(item[0]))
)


def _clean(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def normalize_name(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in _clean(value).split(" "))


def normalize_initial(value: str) -> str:
    return _clean(value).rstrip(".")[:1].upper()


def normalize_state(value: str) -> str:
    cleaned = _clean(value)
    return state_code(cleaned) or cleaned.upper()


def normalize_zip(value: str) -> str:
    digits = _NON_DIGITS.sub("", value)
    if len(digits) == 9:
        return f"{digits[:5]}-{digits[5:]}"
    if len(digits) >= 5:
        return digits[:5]
    return digits


def normalize_sex(value: str) -> str:
    cleaned = _clean(value)
    return SEX_CODES.get(cleaned.lower(), cleaned[:1].upper())


def normalize_phone(value: str) -> str:
    digits = _NON_DIGITS.sub("", value)
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def normalize_email(value: str) -> str:
    return _clean(value).lower()


def normalize_identifier(value: str) -> str:
    return _WHITESPACE.sub("", value).upper()


def _iso(year: int | str, month: int | str, day: int | str) -> str:
    return f"{year}-{int(month):02d}-{int(day):02d}"


def _expand_year(year: str) -> str:
    if len(year) != 2:
        return year
    return f"19{year}" if int(year) > TWO_DIGIT_YEAR_PIVOT else f"20{year}"


def _decade_value(word: str, unit: str | None) -> tuple[int, bool] | None:
    """Value of the last two year digits and whether the unit word was consumed."""

    head, _, tail = word.partition("-")
    if head not in SPOKEN_DECADES:
        return None
    value = SPOKEN_DECADES[head]
    if tail:
        if SPOKEN_NUMBERS.get(tail, 10) < 10:
            value += SPOKEN_NUMBERS[tail]
        return value, False
    if unit and SPOKEN_NUMBERS.get(unit, 10) < 10:
        return value + SPOKEN_NUMBERS[unit], True
    return value, False


def _spoken_year(text: str) -> tuple[int, tuple[int, int]] | None:
    for match in _SPOKEN_YEAR.finditer(text):
        century = 1900 if match.group(1) == "nineteen" else 2000
        decade = _decade_value(match.group(2), match.group(3))
        if decade is not None:
            value, used_unit = decade
            end = match.end(3) if used_unit else match.end(2)
            return century + value, (match.start(1), end)
    thousand = _TWO_THOUSAND.search(text)
    if thousand:
        unit = thousand.group(1)
        return 2000 + SPOKEN_NUMBERS.get(unit or "", 0), thousand.span()
    numeric = _NUMERIC_YEAR.search(text)
    if numeric:
        return int(numeric.group(1)), numeric.span()
    return None


def parse_spoken_date(text: str) -> str | None:
    """Parse dates such as "December twenty-fifth nineteen ninety" into ISO form."""

    lower = _clean(text).lower()
    month: int | None = None
    for number, pattern in _MONTH_PATTERNS:
        found = pattern.search(lower)
        if found:
            month = number
            lower = lower[: found.start()] + " " + lower[found.end() :]
            break
    if month is None:
        return None

    year_match = _spoken_year(lower)
    if year_match is None:
        return None
    year, (start, end) = year_match
    remainder = lower[:start] + " " + lower[end:]

    day: int | None = None
    for number, pattern in _DAY_WORD_PATTERNS:
        if pattern.search(remainder):
            day = number
            break
    if day is None:
        numeric_day = _NUMERIC_DAY.search(remainder)
        if numeric_day and 1 <= int(numeric_day.group(1)) <= 31:
            day = int(numeric_day.group(1))
    if day is None or not 1900 <= year <= 2100:
        return None
    return _iso(year, month, day)


def normalize_dob(value: str) -> str:
    """Best-effort conversion of a spoken or written date to ``YYYY-MM-DD``."""

    cleaned = _clean(value)
    if _ISO_DATE.match(cleaned):
        return cleaned
    cleaned = _ORDINAL_SUFFIX.sub(r"\1", cleaned)

    if match := _LOOSE_ISO.match(cleaned):
        return _iso(match.group(1), match.group(2), match.group(3))
    if match := _NUMERIC_DATE.match(cleaned):
        return _iso(_expand_year(match.group(3)), match.group(1), match.group(2))
    if (match := _MONTH_DAY_YEAR.match(cleaned)) and match.group(1).lower() in MONTH_NAMES:
        return _iso(match.group(3), MONTH_NAMES[match.group(1).lower()], match.group(2))
    if (match := _DAY_MONTH_YEAR.match(cleaned)) and match.group(2).lower() in MONTH_NAMES:
        return _iso(match.group(3), MONTH_NAMES[match.group(2).lower()], match.group(1))
    spoken = parse_spoken_date(cleaned)
    if spoken is not None:
        return spoken
    return cleaned


NORMALIZERS: Final[dict[FieldName, Callable[[str], str]]] = {
    FieldName.FIRST_NAME: normalize_name,
    FieldName.LAST_NAME: normalize_name,
    FieldName.MIDDLE_INITIAL: normalize_initial,
    FieldName.DOB: normalize_dob,
    FieldName.SEX: normalize_sex,
    FieldName.ADDRESS_STREET: _clean,
    FieldName.ADDRESS_CITY: normalize_name,
    FieldName.ADDRESS_STATE: normalize_state,
    FieldName.ADDRESS_ZIP: normalize_zip,
    FieldName.EMAIL: normalize_email,
    FieldName.PHONE: normalize_phone,
    FieldName.INSURANCE_PROVIDER: _clean,
    FieldName.INSURANCE_ID: normalize_identifier,
    FieldName.MEMBER_ID: normalize_identifier,
    FieldName.ID_NUMBER: normalize_identifier,
}


def normalize_field(name: FieldName, value: object) -> str | None:
    """Normalize ``value`` for ``name``; blank or non-scalar values yield ``None``."""

    if value is None or isinstance(value, dict | list | bool):
        return None
    text = str(value)
    if not text.strip():
        return None
    return NORMALIZERS[name](text) or None
