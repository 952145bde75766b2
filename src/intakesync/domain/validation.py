"""Per-field content rules producing hard errors and soft warnings.

An error marks a value that cannot be right; a warning marks one an operator
should look at. Only errors affect validity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from intakesync.domain.model import EXPECTED_FIELDS, SPEC_BY_NAME, STATE_CODES, FieldName

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

MIN_AGE_YEARS: Final[int] = 1
MAX_AGE_YEARS: Final[int] = 120
DAYS_PER_YEAR: Final[float] = 365.25

_NAME_PATTERN = re.compile(r"^[A-Za-z\s'-]+$")
_PROPER_NAME_PATTERN = re.compile(r"^[A-Z][a-z]*(?:[-'\s][A-Z][a-z]+)*$")
_STREET_NUMBER_PATTERN = re.compile(r"^\d+\s+")
_IDENTIFIER_SEPARATORS = re.compile(r"[\s-]")
_ALPHANUMERIC = re.compile(r"^[A-Z0-9]+$")
_DOB_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True, slots=True)
class ValidationResult:
    errors: dict[str, str] = field(default_factory=dict[str, str])
    warnings: dict[str, str] = field(default_factory=dict[str, str])

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {"isValid": self.is_valid, "errors": self.errors, "warnings": self.warnings}


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


type Finding = tuple[Severity, str]
type Rule = Callable[[str, date], Finding | None]

MIN_STREET_LENGTH: Final[int] = 5
MIN_CITY_LENGTH: Final[int] = 2
MIN_PROVIDER_LENGTH: Final[int] = 3
MIN_IDENTIFIER_LENGTH: Final[int] = 3
FULL_IDENTIFIER_LENGTH: Final[range] = range(6, 16)

# matched as substrings of the lower-cased provider name
KNOWN_INSURERS: Final[tuple[str, ...]] = (
    "blue cross", "blue shield", "bcbs", "aetna", "cigna", "united", "humana",
    "kaiser", "anthem", "medicare", "medicaid", "oscar", "molina", "tricare",
    "emblem", "oxford", "fidelis", "healthfirst", "metroplus", "amerigroup",
    "wellcare", "highmark",
)  # fmt: skip


def _error(message: str) -> Finding:
    return Severity.ERROR, message


def _warning(message: str) -> Finding:
    return Severity.WARNING, message


def _check_name(label: str) -> Rule:
    def check(value: str, _today: date) -> Finding | None:
        if not _NAME_PATTERN.match(value):
            return _error(f"{label} contains invalid characters")
        if len(value) < 2:
            return _error(f"{label} is too short")
        if not _PROPER_NAME_PATTERN.match(value):
            return _warning("Name format may need review")
        return None

    return check


def age_in_years(born: date, today: date) -> int:
    return int((today - born).days // DAYS_PER_YEAR)


def _check_dob(value: str, today: date) -> Finding | None:
    if not _DOB_PATTERN.match(value):
        return _error("Date of birth must be in YYYY-MM-DD format")
    try:
        born = date.fromisoformat(value)
    except ValueError:
        return _error("Date of birth is not a real calendar date")
    age = age_in_years(born, today)
    if not MIN_AGE_YEARS <= age <= MAX_AGE_YEARS:
        return _error("Date of birth appears invalid")
    return None


def _check_sex(value: str, _today: date) -> Finding | None:
    return None if value in {"M", "F"} else _error("Sex must be M or F")


def _check_email(value: str, _today: date) -> Finding | None:
    return None if _EMAIL_PATTERN.match(value) else _error("Invalid email format")


def _check_phone(value: str, _today: date) -> Finding | None:
    digits = _NON_DIGITS.sub("", value)
    return None if len(digits) == 10 else _error("Phone number must be 10 digits")


def _check_street(value: str, _today: date) -> Finding | None:
    if len(value) < MIN_STREET_LENGTH:
        return _warning("Street address appears too short")
    if not _STREET_NUMBER_PATTERN.match(value):
        return _warning("Street address may be missing number")
    return None


def _check_city(value: str, _today: date) -> Finding | None:
    return _error("City name is too short") if len(value) < MIN_CITY_LENGTH else None


def _check_state(value: str, _today: date) -> Finding | None:
    return None if value in STATE_CODES else _error("Invalid state code")


def _check_zip(value: str, _today: date) -> Finding | None:
    return None if _ZIP_PATTERN.match(value) else _error("Invalid ZIP code format")


def _check_provider(value: str, _today: date) -> Finding | None:
    lowered = value.lower()
    if any(insurer in lowered for insurer in KNOWN_INSURERS):
        return None
    if len(value) < MIN_PROVIDER_LENGTH:
        return _error("Invalid insurance provider")
    return _warning("Insurance provider not recognized - please verify")


def _check_identifier(label: str) -> Rule:
    def check(value: str, _today: date) -> Finding | None:
        compact = _IDENTIFIER_SEPARATORS.sub("", value).upper()
        if len(compact) < MIN_IDENTIFIER_LENGTH:
            return _error(f"Invalid {label}")
        if not _ALPHANUMERIC.match(compact) or len(compact) > FULL_IDENTIFIER_LENGTH[-1]:
            return _warning(f"{label} format may be incorrect")
        if len(compact) not in FULL_IDENTIFIER_LENGTH:
            return _warning(f"{label} appears short")
        return None

    return check


RULES: Final[dict[FieldName, Rule]] = {
    FieldName.FIRST_NAME: _check_name("First name"),
    FieldName.LAST_NAME: _check_name("Last name"),
    FieldName.DOB: _check_dob,
    FieldName.SEX: _check_sex,
    FieldName.EMAIL: _check_email,
    FieldName.PHONE: _check_phone,
    FieldName.ADDRESS_STREET: _check_street,
    FieldName.ADDRESS_CITY: _check_city,
    FieldName.ADDRESS_STATE: _check_state,
    FieldName.ADDRESS_ZIP: _check_zip,
    FieldName.INSURANCE_PROVIDER: _check_provider,
    FieldName.INSURANCE_ID: _check_identifier("Insurance ID"),
    FieldName.MEMBER_ID: _check_identifier("Member ID"),
}


def validate_fields(
    fields: Mapping[str, object],
    *,
    today: date | None = None,
) -> ValidationResult:
    """Check ``fields`` against the rule table.

    Malformed present values are errors, doubtful ones are warnings. Missing
    expected fields are warnings too and never affect validity. Names outside
    the schema are ignored.
    """

    reference = today or datetime.now(UTC).date()
    errors: dict[str, str] = {}
    warnings: dict[str, str] = {}

    for name, rule in RULES.items():
        raw = fields.get(name)
        value = str(raw).strip() if raw is not None else ""
        if not value:
            if name in EXPECTED_FIELDS:
                warnings[name] = f"{SPEC_BY_NAME[name].label} is missing"
            continue
        finding = rule(value, reference)
        if finding is None:
            continue
        severity, message = finding
        target = errors if severity is Severity.ERROR else warnings
        target[name] = message

    return ValidationResult(errors=errors, warnings=warnings)
