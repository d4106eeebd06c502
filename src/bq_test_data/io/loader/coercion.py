"""Conversion of fixture values to insertAll wire values.

Every fixture value is classified into one of a closed set of kinds, and each
kind has a pure coercion function. BigQuery rejects sub-microsecond precision
and explicit offsets or zone ids in streamed rows, so temporal values are
normalized to naive UTC literals before they are sent. Rows travel as JSON:
decimals are sent as strings, and the elements of REPEATED and RECORD values
are coerced one by one.

Examples:
    >>> coerce(datetime(2023, 1, 1, 10, tzinfo=timezone(timedelta(hours=2))))
    '2023-01-01 08:00:00'
    >>> coerce(date(2023, 1, 1))
    '2023-01-01'
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Sequence

import pandas as pd

_REFERENCE_DATE = date(1970, 1, 1)


class ValueKind(str, Enum):
    """Closed set of fixture value kinds."""

    NULL = "null"
    SYMBOLIC = "symbolic"
    INSTANT = "instant"
    DATE = "date"
    OFFSET_DATETIME = "offset_datetime"
    ZONED_DATETIME = "zoned_datetime"
    OFFSET_TIME = "offset_time"
    DECIMAL = "decimal"
    SEQUENCE = "sequence"
    RECORD = "record"
    OPAQUE = "opaque"


def classify(value: Any) -> ValueKind:
    """Return the kind of ``value``, most specific first."""
    if value is None or value is pd.NaT:
        return ValueKind.NULL
    if isinstance(value, Enum):
        return ValueKind.SYMBOLIC
    # datetime is a subclass of date, so it must be checked first
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return ValueKind.INSTANT
        if isinstance(value.tzinfo, timezone):
            return ValueKind.OFFSET_DATETIME
        return ValueKind.ZONED_DATETIME
    if isinstance(value, date):
        return ValueKind.DATE
    if isinstance(value, time):
        if value.tzinfo is None:
            return ValueKind.INSTANT
        return ValueKind.OFFSET_TIME
    if isinstance(value, Decimal):
        return ValueKind.DECIMAL
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if isinstance(value, Mapping):
        return ValueKind.RECORD
    return ValueKind.OPAQUE


def _truncate_to_micros(value: Any) -> Any:
    # pandas Timestamps carry nanoseconds; stdlib values stop at microseconds
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime(warn=False)
    return value


def _coerce_null(value: Any) -> None:
    return None


def _coerce_symbolic(value: Enum) -> str:
    return value.name


def _coerce_instant(value: Any) -> str:
    value = _truncate_to_micros(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return value.isoformat()


def _coerce_date(value: date) -> str:
    return value.isoformat()


def _coerce_offset_datetime(value: datetime) -> str:
    utc_value = _truncate_to_micros(value).astimezone(timezone.utc)
    return _coerce_instant(utc_value.replace(tzinfo=None))


def _coerce_zoned_datetime(value: datetime) -> str:
    offset_value = value.astimezone(timezone(value.utcoffset()))
    return _coerce_offset_datetime(offset_value)


def _coerce_offset_time(value: time) -> str:
    anchored = datetime.combine(_REFERENCE_DATE, value).astimezone(timezone.utc)
    return _coerce_instant(anchored.time())


def _coerce_decimal(value: Decimal) -> str:
    # BIGNUMERIC accepts a string literal without losing precision
    return str(value)


def _coerce_sequence(value: Sequence[Any]) -> List[Any]:
    return [coerce(item) for item in value]


def _coerce_record(value: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(key): coerce(item) for key, item in value.items()}


def _coerce_opaque(value: Any) -> Any:
    return value


_COERCERS: Dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.NULL: _coerce_null,
    ValueKind.SYMBOLIC: _coerce_symbolic,
    ValueKind.INSTANT: _coerce_instant,
    ValueKind.DATE: _coerce_date,
    ValueKind.OFFSET_DATETIME: _coerce_offset_datetime,
    ValueKind.ZONED_DATETIME: _coerce_zoned_datetime,
    ValueKind.OFFSET_TIME: _coerce_offset_time,
    ValueKind.DECIMAL: _coerce_decimal,
    ValueKind.SEQUENCE: _coerce_sequence,
    ValueKind.RECORD: _coerce_record,
    ValueKind.OPAQUE: _coerce_opaque,
}


def coerce(value: Any) -> Any:
    """Convert a fixture value to the representation sent to insertAll."""
    return _COERCERS[classify(value)](value)


__all__ = [
    "ValueKind",
    "classify",
    "coerce",
]
