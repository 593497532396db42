"""Unit tests for value coercion."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import pytest
from entities import CharacterGender, DayOfWeek

from entity_sql.core.exceptions import InvalidEnumValueError, UnconvertibleValueError
from entity_sql.core.params import DB_NULL
from entity_sql.mapping.coercion import coerce, zero_value


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Point:
    def __init__(self) -> None:
        self.x = 0


class NeedsArguments:
    def __init__(self, value: int) -> None:
        self.value = value


class TestNullValues:
    @pytest.mark.parametrize(
        "target", [bool, int, float, str, datetime, DayOfWeek, Decimal, uuid.UUID]
    )
    def test_nullable_yields_none(self, target: type) -> None:
        assert coerce(None, target, nullable=True) is None

    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            (bool, False),
            (int, 0),
            (float, 0.0),
            (str, ""),
            (datetime, datetime.min),
            (date, date.min),
            (time, time.min),
            (timedelta, timedelta(0)),
            (Decimal, Decimal(0)),
            (uuid.UUID, uuid.UUID(int=0)),
            (bytes, b""),
            (DayOfWeek, DayOfWeek.SUNDAY),
        ],
    )
    def test_non_nullable_yields_zero_value(self, target: type, expected: object) -> None:
        assert coerce(None, target, nullable=False) == expected

    def test_optional_hint_is_nullable(self) -> None:
        assert coerce(None, Optional[int]) is None
        assert coerce(None, int | None) is None

    def test_db_null_is_null(self) -> None:
        assert coerce(DB_NULL, int) == 0

    def test_reference_type_is_default_constructed(self) -> None:
        assert isinstance(coerce(None, Point), Point)

    def test_reference_type_without_default_constructor(self) -> None:
        assert coerce(None, NeedsArguments) is None

    def test_enum_zero_value(self) -> None:
        assert zero_value(CharacterGender) is CharacterGender.FEMALE
        assert zero_value(Color) is Color.RED


class TestEnums:
    def test_name_is_case_insensitive(self) -> None:
        assert coerce("friday", DayOfWeek) is DayOfWeek.FRIDAY
        assert coerce("FRIDAY", DayOfWeek) is DayOfWeek.FRIDAY

    def test_ordinal(self) -> None:
        assert coerce(5, DayOfWeek) is DayOfWeek.FRIDAY

    def test_ordinal_text(self) -> None:
        assert coerce("5", DayOfWeek) is DayOfWeek.FRIDAY

    def test_float_ordinal(self) -> None:
        assert coerce(1.0, CharacterGender) is CharacterGender.MALE

    def test_unknown_name(self) -> None:
        with pytest.raises(InvalidEnumValueError):
            coerce("someday", DayOfWeek)

    def test_undeclared_ordinal_passes_through(self) -> None:
        assert coerce(42, CharacterGender) == 42

    def test_member_is_returned_unchanged(self) -> None:
        assert coerce(DayOfWeek.MONDAY, DayOfWeek) is DayOfWeek.MONDAY


class TestConversions:
    def test_same_type_unchanged(self) -> None:
        value = "Cédric"
        assert coerce(value, str) is value

    def test_float_to_int(self) -> None:
        assert coerce(-123.456, int) == -123

    def test_float_to_int_rounds_half_to_even(self) -> None:
        assert coerce(2.5, int) == 2
        assert coerce(3.5, int) == 4

    def test_decimal_to_int(self) -> None:
        assert coerce(Decimal("7.5"), int) == 8

    def test_text_to_int(self) -> None:
        assert coerce(" 42 ", int) == 42

    def test_bool_to_int(self) -> None:
        result = coerce(True, int)
        assert result == 1
        assert type(result) is int

    def test_enum_to_int(self) -> None:
        result = coerce(DayOfWeek.FRIDAY, int)
        assert result == 5
        assert type(result) is int

    def test_int_to_float(self) -> None:
        assert coerce(3, float) == 3.0

    def test_float_to_decimal(self) -> None:
        assert coerce(0.1, Decimal) == Decimal("0.1")

    def test_int_to_bool(self) -> None:
        assert coerce(1, bool) is True
        assert coerce(0, bool) is False

    def test_text_to_bool(self) -> None:
        assert coerce("True", bool) is True
        assert coerce("false", bool) is False

    def test_invalid_text_to_bool(self) -> None:
        with pytest.raises(UnconvertibleValueError):
            coerce("maybe", bool)

    def test_text_to_datetime(self) -> None:
        assert coerce("2025-06-07 10:45:01", datetime) == datetime(2025, 6, 7, 10, 45, 1)

    def test_datetime_to_date(self) -> None:
        assert coerce(datetime(2025, 6, 7, 10, 45, 1), date) == date(2025, 6, 7)

    def test_text_to_date(self) -> None:
        assert coerce("2025-06-07", date) == date(2025, 6, 7)
        assert coerce("2025-06-07 10:45:01", date) == date(2025, 6, 7)

    def test_text_to_time(self) -> None:
        assert coerce("10:45:01", time) == time(10, 45, 1)

    def test_text_to_uuid(self) -> None:
        value = "12345678-1234-5678-1234-567812345678"
        assert coerce(value, uuid.UUID) == uuid.UUID(value)

    def test_anything_to_str(self) -> None:
        assert coerce(123, str) == "123"
        assert coerce(DayOfWeek.FRIDAY, str) == "FRIDAY"
        assert coerce(b"abc", str) == "abc"
        assert coerce(date(2025, 6, 7), str) == "2025-06-07"

    def test_memoryview_to_bytes(self) -> None:
        assert coerce(memoryview(b"abc"), bytes) == b"abc"

    def test_invalid_number_text(self) -> None:
        with pytest.raises(UnconvertibleValueError):
            coerce("abc", int)

    def test_no_conversion_path(self) -> None:
        with pytest.raises(UnconvertibleValueError):
            coerce(3, datetime)

    def test_unknown_target_type(self) -> None:
        with pytest.raises(UnconvertibleValueError):
            coerce("x", Point)

    def test_enum_value_to_int(self) -> None:
        assert coerce(CharacterGender.MALE, int) == 1

    def test_any_target_is_passthrough(self) -> None:
        value = object()
        assert coerce(value, object) is value
        assert coerce(value, Any) is value
        assert coerce(value, int | str) is value
