from __future__ import annotations

import pytest

from intakesync.domain.errors import SchemaViolationError
from intakesync.domain.model import (
    UNSET,
    AuthoritativeRecord,
    CandidateFieldSet,
    FieldName,
    Inferred,
    Locked,
    SourceLabel,
    canonicalize,
)
from tests.helpers.jobs import at, candidate, record


@pytest.mark.parametrize(
    ("name", "raw", "expected"),
    [
        (FieldName.FIRST_NAME, "  Jane   Ann ", "Jane Ann"),
        (FieldName.ADDRESS_STATE, "tx", "TX"),
        (FieldName.EMAIL, "Jane@Example.COM", "jane@example.com"),
        (FieldName.PHONE, "(555) 123-4567", "5551234567"),
        (FieldName.INSURANCE_ID, "abc 123 45", "ABC12345"),
        (FieldName.SEX, " f ", "F"),
        (FieldName.LAST_NAME, "   ", None),
        (FieldName.PHONE, "n/a", None),
    ],
)
def test_canonicalize_applies_field_rule(name: FieldName, raw: str, expected: str | None) -> None:
    assert canonicalize(name, raw) == expected


def test_field_states_reject_out_of_range_values() -> None:
    with pytest.raises(SchemaViolationError):
        Inferred("Jane", 1.2)
    with pytest.raises(SchemaViolationError):
        Inferred("", 0.5)
    with pytest.raises(SchemaViolationError):
        Locked("Jane", 1.0)


def test_unset_is_falsy() -> None:
    assert not UNSET
    assert candidate({}).state(FieldName.DOB) is UNSET


def test_from_maps_rejects_unknown_field_names() -> None:
    with pytest.raises(SchemaViolationError):
        candidate({"shoeSize": "9"})
    with pytest.raises(SchemaViolationError):
        candidate({"firstName": "Jane"}, {"shoeSize": 0.5})


def test_from_maps_rejects_non_numeric_confidence() -> None:
    with pytest.raises(SchemaViolationError):
        candidate({"firstName": "Jane"}, {"firstName": "high"})


def test_from_maps_drops_blank_values() -> None:
    incoming = candidate({"firstName": "Jane", "lastName": "", "email": None})

    assert dict(incoming.present()) == {FieldName.FIRST_NAME: Inferred("Jane", 0.7)}


def test_confidence_above_one_marks_value_locked() -> None:
    incoming = candidate({"firstName": "Jane"}, {"firstName": 1.5})

    assert incoming.state(FieldName.FIRST_NAME) == Locked("Jane", 1.5)
    assert incoming.to_maps() == ({"firstName": "Jane"}, {"firstName": 1.5})


def test_candidate_dict_round_trip_keeps_states() -> None:
    original = candidate(
        {"firstName": "Jane", "addressZip": "78701"},
        {"firstName": 1.5, "addressZip": 0.8},
        source=SourceLabel.REALTIME,
        observed_at=at(42),
    )

    restored = CandidateFieldSet.from_dict(original.to_dict())

    assert restored == original


def test_record_provenance_requires_present_field() -> None:
    with pytest.raises(SchemaViolationError):
        AuthoritativeRecord(sources={FieldName.DOB: SourceLabel.POST_CALL})


def test_record_from_maps_ignores_sources_of_absent_fields() -> None:
    restored = record({"firstName": "Jane"}, None, {"firstName": "realtime", "dob": "post_call"})

    assert restored.field_sources() == {"firstName": "realtime"}


def test_record_dict_round_trip() -> None:
    original = record(
        {"firstName": "Jane", "lastName": "Doe"},
        {"firstName": 0.9, "lastName": 1.5},
        {"firstName": "post_call_tie", "lastName": "user_edit"},
        as_of=at(5),
    )

    restored = AuthoritativeRecord.from_dict(original.to_dict())

    assert restored == original
    assert not restored.is_empty()
    assert AuthoritativeRecord.empty().is_empty()
