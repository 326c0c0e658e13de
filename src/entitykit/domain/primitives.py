"""Scalar kinds and their strict deserializers / serializers.

Field resolver thunks name a scalar kind by returning one of the Python
types below. No implicit coercion happens: a numeric string is never a
number, and ``True`` is never a number.

==============  ================================  ========================
Thunk returns   Accepts                           Serializes to
==============  ================================  ========================
``str``         ``str``                           unchanged
``float``       ``int`` or ``float`` (not bool)   unchanged
``bool``        ``bool``                          unchanged
``datetime``    ``datetime`` or ISO-8601 string   ``YYYY-MM-DDTHH:MM:SS.mmmZ``
``BigInt``      ``int`` (not bool) or digits      base-10 digit string
==============  ================================  ========================
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from entitykit.domain.problem import validation_error

_BIGINT_RE = re.compile(r"-?[0-9]+")


class BigInt:
    """Marker naming the large-integer kind in a resolver thunk.

    Values of a ``BigInt`` field are plain :class:`int`; on the wire they
    travel as decimal strings so no precision is lost.
    """


PRIMITIVE_TYPES: frozenset[type] = frozenset({str, float, bool, datetime, BigInt})


def is_primitive(kind: object) -> bool:
    """Whether *kind* names one of the supported scalar kinds."""
    return isinstance(kind, type) and kind in PRIMITIVE_TYPES


def kind_of(value: object) -> str:
    """Human name of the runtime kind of *value*, used in problem messages.

    Examples:
        >>> kind_of("x"), kind_of(1), kind_of(True), kind_of(None)
        ('string', 'number', 'boolean', 'null')
        >>> kind_of([1]), kind_of({"a": 1})
        ('array', 'object')
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, datetime):
        return "date"
    return type(value).__name__


# ---------------------------------------------------------------------------
# Deserializers
# ---------------------------------------------------------------------------


def _deserialize_string(value: object) -> str:
    if not isinstance(value, str):
        raise validation_error(f"Expects a string but received {kind_of(value)}")
    return value


def _deserialize_number(value: object) -> int | float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise validation_error(f"Expects a number but received {kind_of(value)}")
    return value


def _deserialize_boolean(value: object) -> bool:
    if not isinstance(value, bool):
        raise validation_error(f"Expects a boolean but received {kind_of(value)}")
    return value


def _deserialize_bigint(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        if not _BIGINT_RE.fullmatch(value):
            raise validation_error(f"Cannot parse '{value}' as BigInt")
        return int(value)
    raise validation_error(f"Expects a bigint or string but received {kind_of(value)}")


def _deserialize_date(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise validation_error(f"Cannot parse '{value}' as Date") from None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    raise validation_error(f"Expects a Date or ISO string but received {kind_of(value)}")


_DESERIALIZERS = {
    str: _deserialize_string,
    float: _deserialize_number,
    bool: _deserialize_boolean,
    datetime: _deserialize_date,
    BigInt: _deserialize_bigint,
}


def deserialize_primitive(value: object, kind: type) -> Any:
    """Strictly convert *value* to the scalar *kind*.

    Raises:
        ValidationError: With one path-less problem on a kind mismatch.
    """
    try:
        deserializer = _DESERIALIZERS[kind]
    except KeyError:
        raise validation_error(f"Unknown primitive kind {kind!r}") from None
    return deserializer(value)


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------


def serialize_datetime(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix.

    Naive datetimes are taken to be UTC.

    Examples:
        >>> serialize_datetime(datetime(2024, 1, 1, tzinfo=UTC))
        '2024-01-01T00:00:00.000Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    text = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.removesuffix("+00:00") + "Z"


def serialize_bigint(value: int) -> str:
    """Plain base-10 digits with an optional leading ``-``."""
    return str(int(value))
