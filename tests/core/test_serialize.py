"""Unit tests for core.serialize: JSON-safe event values."""

import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from mssql_app.core.serialize import MAX_SAFE_INTEGER, make_json_safe, serialize_row


def test_safe_integers_stay_numbers() -> None:
    assert make_json_safe(42) == 42
    assert make_json_safe(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
    assert make_json_safe(-MAX_SAFE_INTEGER) == -MAX_SAFE_INTEGER


def test_bigints_outside_safe_range_become_strings() -> None:
    assert make_json_safe(9223372036854775807) == "9223372036854775807"
    assert make_json_safe(-(MAX_SAFE_INTEGER + 1)) == str(-(MAX_SAFE_INTEGER + 1))


def test_bool_is_not_treated_as_int() -> None:
    assert make_json_safe(True) is True


def test_decimals() -> None:
    assert make_json_safe(Decimal("10")) == 10
    assert make_json_safe(Decimal("10.50")) == 10.5
    assert make_json_safe(Decimal("12345678901234567890")) == "12345678901234567890"


def test_temporal_and_misc_types() -> None:
    assert make_json_safe(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
    assert make_json_safe(date(2024, 1, 2)) == "2024-01-02"
    assert make_json_safe(time(3, 4)) == "03:04:00"
    assert make_json_safe(timedelta(minutes=1)) == 60.0
    assert make_json_safe(uuid.UUID(int=1)) == "00000000-0000-0000-0000-000000000001"
    assert make_json_safe(b"\x00\xff") == "AP8="


def test_nested_structures() -> None:
    value = {"ids": [1, 2**60], "meta": {"at": date(2024, 1, 1)}}
    assert make_json_safe(value) == {
        "ids": [1, str(2**60)],
        "meta": {"at": "2024-01-01"},
    }


def test_serialize_row_keeps_column_names() -> None:
    row = {"id": 2**62, "name": "a", "price": Decimal("9.99"), "note": None}
    assert serialize_row(row) == {
        "id": str(2**62),
        "name": "a",
        "price": 9.99,
        "note": None,
    }
