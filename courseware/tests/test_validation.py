from __future__ import annotations

from datetime import datetime, timezone

import pytest

from courseware.errors import ValidationError
from courseware.identifiers import is_object_id, new_object_id
from courseware.validation import (
    parse_datetime,
    parse_page_param,
    require_datetime,
    require_object_id,
    require_text,
)


def test_new_object_id_is_24_lowercase_hex_digits():
    object_id = new_object_id(now=0x65A1B2C3)

    assert len(object_id) == 24
    assert object_id.startswith("65a1b2c3")
    assert is_object_id(object_id)


def test_new_object_ids_are_unique():
    assert len({new_object_id() for _ in range(200)}) == 200


@pytest.mark.parametrize(
    "value",
    [None, "", "abc", "65a1b2c3d4e5f6a7b8c9d0e", "65a1b2c3d4e5f6a7b8c9d0e1f", "zza1b2c3d4e5f6a7b8c9d0e1", 12345],
)
def test_is_object_id_rejects_malformed_values(value):
    assert not is_object_id(value)


def test_require_object_id_normalizes_case():
    assert require_object_id("65A1B2C3D4E5F6A7B8C9D0E1", "bad") == "65a1b2c3d4e5f6a7b8c9d0e1"


def test_require_object_id_raises_with_field_message():
    with pytest.raises(ValidationError, match="Course Id is required"):
        require_object_id("nope", "Course Id is required")


@pytest.mark.parametrize("value", [None, "", "   ", 42])
def test_require_text_rejects_blank_values(value):
    with pytest.raises(ValidationError, match="Course name is required"):
        require_text(value, "Course name is required")


def test_require_text_strips_whitespace():
    assert require_text("  Algebra ", "missing") == "Algebra"


def test_parse_datetime_accepts_zulu_suffix():
    parsed = parse_datetime("2024-03-01T10:30:00Z")

    assert parsed == datetime(2024, 3, 1, 10, 30, tzinfo=timezone.utc)


def test_parse_datetime_treats_naive_values_as_utc():
    assert parse_datetime("2024-03-01").tzinfo == timezone.utc


@pytest.mark.parametrize("value", [None, "", "tomorrow", "2024-13-01", 1700000000])
def test_require_datetime_rejects_invalid_dates(value):
    with pytest.raises(ValidationError, match="Date is required"):
        require_datetime(value, "Date is required")


@pytest.mark.parametrize(
    "raw,expected",
    [(None, 5), ("", 5), ("abc", 5), ("0", 5), ("-3", 5), ("2", 2), (" 7 ", 7), (3, 3)],
)
def test_parse_page_param_falls_back_to_default(raw, expected):
    assert parse_page_param(raw, 5) == expected
