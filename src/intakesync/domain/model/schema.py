"""The closed field schema shared by candidate sets and authoritative records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from intakesync.domain.errors import SchemaViolationError
from intakesync.domain.model.enums import Canonicalization, FieldKind, FieldName

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: FieldName
    kind: FieldKind
    rule: Canonicalization
    label: str
    expected: bool = False


FIELD_SCHEMA: Final[tuple[FieldSpec, ...]] = (
    FieldSpec(FieldName.FIRST_NAME, FieldKind.TEXT, Canonicalization.TRIM, "First name", True),
    FieldSpec(FieldName.LAST_NAME, FieldKind.TEXT, Canonicalization.TRIM, "Last name", True),
    FieldSpec(
        FieldName.MIDDLE_INITIAL, FieldKind.TEXT, Canonicalization.UPPER, "Middle initial"
    ),
    FieldSpec(FieldName.DOB, FieldKind.DATE, Canonicalization.TRIM, "Date of birth", True),
    FieldSpec(FieldName.SEX, FieldKind.CODE, Canonicalization.UPPER, "Sex", True),
    FieldSpec(FieldName.ADDRESS_STREET, FieldKind.TEXT, Canonicalization.TRIM, "Street"),
    FieldSpec(FieldName.ADDRESS_CITY, FieldKind.TEXT, Canonicalization.TRIM, "City"),
    FieldSpec(FieldName.ADDRESS_STATE, FieldKind.CODE, Canonicalization.UPPER, "State"),
    FieldSpec(FieldName.ADDRESS_ZIP, FieldKind.IDENTIFIER, Canonicalization.TRIM, "ZIP code"),
    FieldSpec(FieldName.EMAIL, FieldKind.TEXT, Canonicalization.LOWER, "Email"),
    FieldSpec(FieldName.PHONE, FieldKind.IDENTIFIER, Canonicalization.DIGITS, "Phone"),
    FieldSpec(
        FieldName.INSURANCE_PROVIDER, FieldKind.TEXT, Canonicalization.TRIM, "Insurance provider"
    ),
    FieldSpec(
        FieldName.INSURANCE_ID,
        FieldKind.IDENTIFIER,
        Canonicalization.COMPACT_UPPER,
        "Insurance ID",
    ),
    FieldSpec(
        FieldName.MEMBER_ID, FieldKind.IDENTIFIER, Canonicalization.COMPACT_UPPER, "Member ID"
    ),
    FieldSpec(
        FieldName.ID_NUMBER, FieldKind.IDENTIFIER, Canonicalization.COMPACT_UPPER, "ID number"
    ),
)

SPEC_BY_NAME: Final[dict[FieldName, FieldSpec]] = {spec.name: spec for spec in FIELD_SCHEMA}
FIELD_NAMES: Final[tuple[FieldName, ...]] = tuple(spec.name for spec in FIELD_SCHEMA)
EXPECTED_FIELDS: Final[tuple[FieldName, ...]] = tuple(
    spec.name for spec in FIELD_SCHEMA if spec.expected
)

_WHITESPACE = re.compile(r"\s+")
_NON_DIGITS = re.compile(r"\D")


def field_name(name: str | FieldName) -> FieldName:
    """Resolve a wire name to a schema field, rejecting names outside the schema."""

    try:
        return FieldName(name)
    except ValueError as exc:
        raise SchemaViolationError(f"Unknown field: {name!r}") from exc


def field_names(names: Iterable[str | FieldName]) -> list[FieldName]:
    return [field_name(name) for name in names]


def canonicalize(name: FieldName, value: object) -> str | None:
    """Apply the field's canonicalization rule; blank values become ``None``."""

    if value is None:
        return None
    text = _WHITESPACE.sub(" ", str(value)).strip()
    if not text:
        return None

    match SPEC_BY_NAME[name].rule:
        case Canonicalization.TRIM:
            result = text
        case Canonicalization.UPPER:
            result = text.upper()
        case Canonicalization.LOWER:
            result = text.lower()
        case Canonicalization.DIGITS:
            result = _NON_DIGITS.sub("", text)
        case Canonicalization.COMPACT_UPPER:
            result = text.replace(" ", "").upper()
    return result or None
