"""Built-in field validators.

A validator is any callable ``validator(value)`` returning an iterable of
:class:`Problem` (or ``None``), or an awaitable of one. Field validators see
one scalar value or one array element; array validators see the whole list.

Validators report path-less problems; the engine re-roots them at the field
or element being validated. A validator may return a relative path (e.g.
``"street"``) to point inside a nested value.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Iterable, Sequence
from enum import Enum
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from entitykit.domain.problem import Problem

ProblemList = Iterable[Problem] | None
Validator = Callable[[Any], ProblemList | Awaitable[ProblemList]]


def min_length(length: int) -> Validator:
    def check(value: Any) -> list[Problem]:
        if len(value) < length:
            return [Problem(message=f"Must be at least {length} characters long")]
        return []

    return check


def max_length(length: int) -> Validator:
    def check(value: Any) -> list[Problem]:
        if len(value) > length:
            return [Problem(message=f"Must be at most {length} characters long")]
        return []

    return check


def pattern(regex: str | re.Pattern[str], message: str | None = None) -> Validator:
    """Require *regex* to match somewhere in the string (``re.search`` semantics).

    Anchor the pattern with ``^...$`` to require a full match.
    """
    compiled = re.compile(regex) if isinstance(regex, str) else regex

    def check(value: Any) -> list[Problem]:
        if compiled.search(value) is None:
            return [Problem(message=message or f"Must match pattern {compiled.pattern}")]
        return []

    return check


def one_of(choices: type[Enum] | Iterable[Any]) -> Validator:
    """Require the value to be one of *choices* (an Enum class or iterable).

    For an Enum class the allowed values are the members' ``.value``; a
    member instance is accepted too.
    """
    if isinstance(choices, type) and issubclass(choices, Enum):
        allowed = [member.value for member in choices]
    else:
        allowed = list(choices)

    def check(value: Any) -> list[Problem]:
        candidate = value.value if isinstance(value, Enum) else value
        if candidate not in allowed:
            rendered = ", ".join(str(a) for a in allowed)
            return [Problem(message=f'Expected one of [{rendered}] but received "{value}"')]
        return []

    return check


def integer() -> Validator:
    def check(value: Any) -> list[Problem]:
        if isinstance(value, int) or (isinstance(value, float) and value.is_integer()):
            return []
        return [Problem(message=f"Expected an integer but received {value}")]

    return check


def min_value(minimum: float) -> Validator:
    def check(value: Any) -> list[Problem]:
        if value < minimum:
            return [Problem(message=f"Must be at least {minimum}")]
        return []

    return check


def max_value(maximum: float) -> Validator:
    def check(value: Any) -> list[Problem]:
        if value > maximum:
            return [Problem(message=f"Must be at most {maximum}")]
        return []

    return check


def array_min_length(length: int) -> Validator:
    def check(value: Sequence[Any]) -> list[Problem]:
        if len(value) < length:
            return [Problem(message=f"Array must have at least {length} elements")]
        return []

    return check


def array_max_length(length: int) -> Validator:
    def check(value: Sequence[Any]) -> list[Problem]:
        if len(value) > length:
            return [Problem(message=f"Array must have at most {length} elements")]
        return []

    return check


# ---------------------------------------------------------------------------
# External schema adapter (pydantic)
# ---------------------------------------------------------------------------


def loc_to_path(loc: Iterable[int | str]) -> str:
    """Render a pydantic error ``loc`` as a problem path.

    Examples:
        >>> loc_to_path(("address", "street"))
        'address.street'
        >>> loc_to_path(("items", 0, "name"))
        'items[0].name'
        >>> loc_to_path(())
        ''
    """
    path = ""
    for segment in loc:
        if isinstance(segment, int):
            path += f"[{segment}]"
        elif path == "":
            path = segment
        else:
            path += f".{segment}"
    return path


def pydantic_problems(exc: PydanticValidationError) -> list[Problem]:
    """Convert a pydantic ValidationError into Problems."""
    return [
        Problem(path=loc_to_path(error["loc"]), message=error["msg"]) for error in exc.errors()
    ]


def as_type_adapter(schema: Any) -> TypeAdapter[Any]:
    """Wrap *schema* (a type, annotation, or TypeAdapter) in a TypeAdapter."""
    if isinstance(schema, TypeAdapter):
        return schema
    return TypeAdapter(schema)


def schema_validator(schema: Any) -> Validator:
    """Delegate validation of a value to a pydantic type.

    The value itself is left untouched; only the problems are reported.

    Usage::

        from typing import Annotated
        from annotated_types import Len

        name = string_field(validators=[schema_validator(Annotated[str, Len(2, 20)])])
    """
    adapter = as_type_adapter(schema)

    def check(value: Any) -> list[Problem]:
        try:
            adapter.validate_python(value, strict=True)
        except PydanticValidationError as exc:
            return pydantic_problems(exc)
        return []

    return check
