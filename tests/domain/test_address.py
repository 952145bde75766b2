from __future__ import annotations

import pytest

from intakesync.domain.address import ParsedAddress, backfill_address, parse_address


def test_full_address_is_split_with_full_confidence() -> None:
    parsed = parse_address("123 Main St, New York, NY 10001")

    assert parsed == ParsedAddress(
        street="123 Main St",
        city="New York",
        state="NY",
        zip="10001",
        confidence=1.0,
    )


def test_full_state_name_scores_lower_than_code() -> None:
    parsed = parse_address("500 Oak Ave, Charleston, West Virginia 25301")

    assert parsed.state == "WV"
    assert parsed.street == "500 Oak Ave"
    assert parsed.city == "Charleston"
    assert parsed.zip == "25301"
    assert parsed.confidence == pytest.approx(0.95)


def test_zip_plus_four_is_kept() -> None:
    parsed = parse_address("9 Elm Rd, Austin, TX 78701-1234")

    assert parsed.zip == "78701-1234"
    assert parsed.state == "TX"


def test_single_segment_with_house_number_is_street() -> None:
    parsed = parse_address("742 Evergreen Terrace")

    assert parsed.street == "742 Evergreen Terrace"
    assert parsed.city is None
    assert parsed.confidence == pytest.approx(0.5)


def test_single_segment_without_house_number_is_city() -> None:
    parsed = parse_address("Springfield 62704")

    assert parsed.city == "Springfield"
    assert parsed.street is None
    assert parsed.zip == "62704"
    assert parsed.confidence == pytest.approx(0.65)


@pytest.mark.parametrize("text", [None, "", "   "])
def test_blank_input_yields_empty_result(text: str | None) -> None:
    assert parse_address(text) == ParsedAddress(confidence=0.5)


def test_to_dict_exposes_all_keys() -> None:
    assert parse_address("Boston").to_dict() == {
        "street": None,
        "city": "Boston",
        "state": None,
        "zip": None,
        "confidence": 0.5,
    }


def test_backfill_splits_raw_address_with_parser_confidence() -> None:
    values, scores = backfill_address(
        {"address": "123 Main St, New York, NY 10001", "firstName": "Jane"},
        {"address": 0.9, "firstName": 0.95},
    )

    assert values == {
        "firstName": "Jane",
        "addressStreet": "123 Main St",
        "addressCity": "New York",
        "addressState": "NY",
        "addressZip": "10001",
    }
    assert scores == {
        "firstName": 0.95,
        "addressStreet": 1.0,
        "addressCity": 1.0,
        "addressState": 1.0,
        "addressZip": 1.0,
    }


def test_backfill_leaves_structured_parts_alone() -> None:
    values, scores = backfill_address(
        {"address": "123 Main St, New York, NY 10001", "addressCity": "Brooklyn"},
        {"addressCity": 0.8},
    )

    assert values == {"addressCity": "Brooklyn"}
    assert scores == {"addressCity": 0.8}


def test_backfill_only_fills_parts_the_parser_found() -> None:
    values, scores = backfill_address({"address": "742 Evergreen Terrace", "addressZip": " "})

    assert values == {"addressStreet": "742 Evergreen Terrace", "addressZip": " "}
    assert scores == {"addressStreet": 0.5}


def test_backfill_without_raw_address_is_a_copy() -> None:
    fields = {"email": "jane@example.com"}

    values, scores = backfill_address(fields)

    assert values == fields
    assert values is not fields
    assert scores == {}
