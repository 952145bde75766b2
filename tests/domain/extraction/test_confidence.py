from __future__ import annotations

import pytest

from intakesync.domain.extraction import DEFAULT_FIELD_CONFIDENCE, field_confidence
from intakesync.domain.model import FieldName


@pytest.mark.parametrize(
    ("name", "value", "expected"),
    [
        (FieldName.FIRST_NAME, "Jane", 0.9),
        (FieldName.LAST_NAME, "Van Dyke", 0.7),
        (FieldName.SEX, "F", 0.95),
        (FieldName.SEX, "U", 0.5),
        (FieldName.DOB, "1990-12-25", 0.9),
        (FieldName.DOB, "2099-01-01", 0.5),
        (FieldName.DOB, "December 1990", 0.5),
        (FieldName.EMAIL, "jane@example.com", 0.9),
        (FieldName.EMAIL, "jane at example", 0.5),
        (FieldName.PHONE, "5551234567", 0.9),
        (FieldName.PHONE, "1234567", 0.6),
        (FieldName.ADDRESS_STATE, "TX", 0.95),
        (FieldName.ADDRESS_STATE, "ZZ", 0.5),
        (FieldName.ADDRESS_ZIP, "78701-1234", 0.9),
        (FieldName.ADDRESS_ZIP, "7870", 0.6),
        (FieldName.ADDRESS_CITY, "Austin", DEFAULT_FIELD_CONFIDENCE),
    ],
)
def test_field_confidence_by_shape(name: FieldName, value: str, expected: float) -> None:
    assert field_confidence(name, value, current_year=2025) == expected


def test_empty_value_scores_zero() -> None:
    assert field_confidence(FieldName.FIRST_NAME, "") == 0.0
