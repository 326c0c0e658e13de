"""Serialize Engine: typed instances back to plain data.

Output rules:
- wrapper types emit only their wrapped value (a bare list or scalar);
- unset fields are omitted, explicit ``None`` is kept;
- injected fields are never emitted;
- ``datetime`` becomes an ISO-8601 string, ``BigInt`` fields a digit string;
- nested entities serialize recursively, arrays element-wise;
- a custom ``serialize`` replaces all of the above for its field (applied per
  element for arrays); passthrough values are emitted unchanged.

No validation happens here.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from entitykit.config.settings import resolve_discriminator_key
from entitykit.domain.fields import FieldDeclaration
from entitykit.domain.primitives import BigInt, serialize_bigint, serialize_datetime
from entitykit.domain.registry import REGISTRY, UnregisteredTypeError


def to_json(instance: Any) -> Any:
    """Plain-data form of *instance*.

    Raises:
        UnregisteredTypeError: *instance* is not of a registered type.
    """
    if isinstance(instance, type) or not REGISTRY.is_registered(instance):
        raise UnregisteredTypeError(
            f"Cannot serialize non-entity value of type '{type(instance).__name__}'"
        )
    declaration = REGISTRY.get_declaration(type(instance))
    state = vars(instance)

    if declaration.is_wrapper:
        wrapped = declaration.wrapped_field
        return serialize_field(wrapped, state.get(wrapped.name))

    result: dict[str, Any] = {}
    for name, decl in declaration.fields.items():
        if decl.is_injected or name not in state:
            continue
        result[name] = serialize_field(decl, state[name])
    return result


def serialize_field(decl: FieldDeclaration, value: Any) -> Any:
    """Serialize one field value according to its declaration."""
    if value is None or decl.passthrough:
        return value
    if decl.is_array and isinstance(value, list | tuple):
        return [None if item is None else _serialize_one(decl, item) for item in value]
    return _serialize_one(decl, value)


def _serialize_one(decl: FieldDeclaration, value: Any) -> Any:
    if decl.serialize is not None:
        return decl.serialize(value)
    if decl.is_discriminated and REGISTRY.is_registered(value):
        return _serialize_discriminated(decl, value)
    if decl.type is not None and isinstance(value, int) and not isinstance(value, bool):
        if REGISTRY.resolve_type(decl.type) is BigInt:
            return serialize_bigint(value)
    return serialize_value(value)


def _serialize_discriminated(decl: FieldDeclaration, value: Any) -> Any:
    key = resolve_discriminator_key(decl.discriminator)
    name = REGISTRY.name_of(type(value))
    if name is None:
        raise UnregisteredTypeError(
            f"Discriminated value of type '{type(value).__name__}' has no registered name"
        )
    body = to_json(value)
    if isinstance(body, Mapping):
        return {key: name, **body}
    return {key: name}


def serialize_value(value: Any) -> Any:
    """Serialize a value with no field declaration to guide it."""
    if value is None or isinstance(value, str | bool | int | float):
        return value
    if isinstance(value, datetime):
        return serialize_datetime(value)
    if isinstance(value, Enum):
        return value.value
    if REGISTRY.is_registered(value) and not isinstance(value, type):
        return to_json(value)
    if isinstance(value, list | tuple):
        return [serialize_value(item) for item in value]
    if isinstance(value, Mapping):
        return {key: serialize_value(item) for key, item in value.items()}
    raise TypeError(
        f"Cannot serialize value of type '{type(value).__name__}'. "
        "Declare the field as passthrough or give it a custom serialize."
    )
