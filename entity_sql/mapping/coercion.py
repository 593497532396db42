"""Value coercion.

Converts database values into the types declared by entity attributes.
Conversions are locale-independent: numbers and dates are parsed the same
way everywhere.

Rules, in order:

1. ``None`` becomes ``None`` for nullable targets, otherwise the target's
   zero value (``0``, ``""``, ``datetime.min``, first enum ordinal...).
2. Text into an enum matches a member name, case-insensitively.
3. Anything else into an enum is read as an ordinal. Ordinals that are not
   declared members pass through as plain integers.
4. Values already of the target type are returned unchanged; everything else
   goes through the conversion table below.
"""

from __future__ import annotations

import logging
import math
import re
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from typing import Any, get_origin

from entity_sql.core.exceptions import InvalidEnumValueError, UnconvertibleValueError
from entity_sql.core.params import DB_NULL
from entity_sql.mapping.metadata import _unwrap

logger = logging.getLogger(__name__)

_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")

_ZERO_VALUES: dict[type, Any] = {
    bool: False,
    int: 0,
    float: 0.0,
    Decimal: Decimal(0),
    str: "",
    bytes: b"",
    datetime: datetime.min,
    date: date.min,
    time: time.min,
    timedelta: timedelta(0),
    uuid.UUID: uuid.UUID(int=0),
}


class _NoConversion(Exception):
    """No conversion path between the value and the target type."""


def _to_bool(value: Any) -> bool:
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1"):
            return True
        if text in ("false", "0"):
            return False
        raise ValueError(f"'{value}' is not a boolean literal")
    raise _NoConversion


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("non-finite number")
        # round half to even, like an invariant numeric conversion
        return int(round(value))
    if isinstance(value, Decimal):
        return int(value.to_integral_value(rounding=ROUND_HALF_EVEN))
    if isinstance(value, str):
        return int(value.strip())
    raise _NoConversion


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise _NoConversion


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, (bool, int)):
        return Decimal(int(value))
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    raise _NoConversion


def _to_str(value: Any) -> str:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise _NoConversion


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text).date()
    raise _NoConversion


def _to_time(value: Any) -> time:
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise _NoConversion


def _to_timedelta(value: Any) -> timedelta:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return timedelta(seconds=float(value))
    raise _NoConversion


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, str):
        return uuid.UUID(value.strip())
    if isinstance(value, (bytes, bytearray, memoryview)):
        return uuid.UUID(bytes=bytes(value))
    raise _NoConversion


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise _NoConversion


_CONVERTERS: dict[type, Callable[[Any], Any]] = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    Decimal: _to_decimal,
    str: _to_str,
    datetime: _to_datetime,
    date: _to_date,
    time: _to_time,
    timedelta: _to_timedelta,
    uuid.UUID: _to_uuid,
    bytes: _to_bytes,
}


def zero_value(target_type: Any) -> Any:
    """The value a non-nullable attribute of *target_type* takes for NULL."""
    target = get_origin(target_type) or target_type
    if target is Any or target is object or not isinstance(target, type):
        return None
    if issubclass(target, Enum):
        try:
            return target(0)
        except ValueError:
            return next(iter(target), None)
    if target in _ZERO_VALUES:
        return _ZERO_VALUES[target]
    try:
        return target()
    except TypeError:
        return None


def _enum_from_ordinal(enum_type: type[Enum], ordinal: int) -> Any:
    try:
        return enum_type(ordinal)
    except ValueError:
        logger.debug("Ordinal %d is not a member of %s", ordinal, enum_type.__name__)
        return ordinal


def _coerce_enum(value: Any, enum_type: type[Enum]) -> Any:
    if isinstance(value, enum_type):
        return value

    if isinstance(value, str):
        text = value.strip()
        folded = text.casefold()
        for name, member in enum_type.__members__.items():
            if name.casefold() == folded:
                return member
        for member in enum_type:
            if isinstance(member.value, str) and member.value.casefold() == folded:
                return member
        if _INTEGER_TEXT.match(text):
            return _enum_from_ordinal(enum_type, int(text))
        raise InvalidEnumValueError(value, enum_type)

    try:
        ordinal = _to_int(value)
    except (_NoConversion, ValueError, ArithmeticError) as e:
        raise UnconvertibleValueError(value, enum_type) from e
    return _enum_from_ordinal(enum_type, ordinal)


def _is_instance(value: Any, target: type) -> bool:
    if not isinstance(value, target):
        return False
    if isinstance(value, bool) and target is not bool:
        return False
    if isinstance(value, Enum) and not issubclass(target, Enum):
        return False
    if target is date and isinstance(value, datetime):
        return False
    return True


def coerce(value: Any, target_type: Any, nullable: bool = False) -> Any:
    """Convert *value* into *target_type*.

    Args:
        value: The value read from the database (``None`` for NULL).
        target_type: A class or a type hint; ``Optional[T]`` implies nullable.
        nullable: Whether NULL maps to ``None`` rather than the zero value.

    Raises:
        InvalidEnumValueError: Text that names no member of an enum target.
        UnconvertibleValueError: No conversion path to the target type.
    """
    base, hinted_nullable, _ = _unwrap(target_type)
    nullable = nullable or hinted_nullable

    if value is None or value is DB_NULL:
        return None if nullable else zero_value(base)

    target = get_origin(base) or base
    if target is Any or target is object or not isinstance(target, type):
        return value
    if issubclass(target, Enum):
        return _coerce_enum(value, target)
    if isinstance(value, Enum) and target is not str:
        value = value.value
    if _is_instance(value, target):
        return value

    converter = _CONVERTERS.get(target)
    if converter is None:
        raise UnconvertibleValueError(value, target, "no conversion path")
    try:
        return converter(value)
    except _NoConversion:
        raise UnconvertibleValueError(value, target) from None
    except (ValueError, TypeError, ArithmeticError) as e:
        raise UnconvertibleValueError(value, target, str(e)) from e
