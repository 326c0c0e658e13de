"""Diff / Equality Engine: structural comparison of instances.

Two instances are equal when they are of the same registered type and their
diff is empty. Fields compare with their declared ``equals`` when one is
given, otherwise with :func:`equals`, which recurses into nested entities,
mappings and sequences and falls back to ``==``.

An unset field and a ``None`` field are different values: both compare equal
only to themselves. Date fields compare in their serialized form (UTC,
millisecond precision), so an instance equals its own round trip.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from entitykit.domain.fields import MISSING, FieldDeclaration
from entitykit.domain.instance import is_set
from entitykit.domain.primitives import serialize_datetime
from entitykit.domain.problem import EntityError
from entitykit.domain.registry import REGISTRY


class EntityTypeMismatchError(EntityError, TypeError):
    """diff/changes received values that are not the same registered type."""


@dataclass(frozen=True)
class DiffEntry:
    """One changed field; an unset side is reported as ``None``."""

    field: str
    old_value: Any
    new_value: Any


def _is_instance(value: Any) -> bool:
    return not isinstance(value, type) and REGISTRY.is_registered(value)


def equals(a: Any, b: Any) -> bool:
    """Deep equality aware of registered entities."""
    if _is_instance(a) or _is_instance(b):
        return type(a) is type(b) and not diff(a, b)
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(equals(a[key], b[key]) for key in a)
    if isinstance(a, list | tuple) and isinstance(b, list | tuple):
        return len(a) == len(b) and all(equals(x, y) for x, y in zip(a, b, strict=True))
    return bool(a == b)


def _is_date_field(decl: FieldDeclaration) -> bool:
    return (
        decl.type is not None
        and decl.deserialize is None
        and REGISTRY.resolve_type(decl.type) is datetime
    )


def _same_instant(a: Any, b: Any) -> bool:
    if isinstance(a, datetime) and isinstance(b, datetime):
        return serialize_datetime(a) == serialize_datetime(b)
    return bool(a == b)


def _field_equal(decl: FieldDeclaration, old: Any, new: Any) -> bool:
    if old is None or old is MISSING or new is None or new is MISSING:
        return old is new
    custom: Callable[[Any, Any], bool] | None = decl.equals
    if custom is None and _is_date_field(decl):
        custom = _same_instant
    if custom is None:
        return equals(old, new)
    if decl.is_array and isinstance(old, list | tuple) and isinstance(new, list | tuple):
        return len(old) == len(new) and all(
            x is y if x is None or y is None else custom(x, y)
            for x, y in zip(old, new, strict=True)
        )
    return bool(custom(old, new))


def diff(old: Any, new: Any) -> list[DiffEntry]:
    """Fields whose values differ between *old* and *new*, in declaration order.

    Injected fields are not compared.

    Raises:
        EntityTypeMismatchError: *old* and *new* are not instances of the
            same registered type.
    """
    if not _is_instance(old) or type(old) is not type(new):
        raise EntityTypeMismatchError(
            "Entities must be of the same registered type to compute a diff, got "
            f"'{type(old).__name__}' and '{type(new).__name__}'"
        )
    declaration = REGISTRY.get_declaration(type(old))
    old_state, new_state = vars(old), vars(new)

    entries: list[DiffEntry] = []
    for name, decl in declaration.fields.items():
        if decl.is_injected:
            continue
        old_value = old_state.get(name, MISSING)
        new_value = new_state.get(name, MISSING)
        if not _field_equal(decl, old_value, new_value):
            entries.append(
                DiffEntry(
                    field=name,
                    old_value=None if old_value is MISSING else old_value,
                    new_value=None if new_value is MISSING else new_value,
                )
            )
    return entries


def changes(old: Any, new: Any) -> dict[str, Any]:
    """Sparse record of the new values of every changed field.

    A field that is unset on *new* is left out: the record is meant to be
    passed to ``update``, which has no way to unset a field.
    """
    return {entry.field: entry.new_value for entry in diff(old, new) if is_set(new, entry.field)}
