"""Parse Engine: plain data to typed instances.

Each declared field goes through the same pipeline, in declaration order:

1. injected fields are resolved from the dependency registry;
2. an absent key takes the default, stays unset when optional, or is a
   HARD problem;
3. ``None`` is kept for optional fields, otherwise a HARD problem;
4. the value is deserialized by kind (HARD problems on mismatch);
5. field validators run against the deserialized value (SOFT problems).

Fields and array elements are processed strictly one after another so that
problem order and paths are reproducible.

INVARIANT: Any HARD problem fails the parse. SOFT problems fail it only in
strict mode; otherwise they are attached to the returned instance.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from entitykit.config.logging import logged_operation
from entitykit.config.settings import resolve_discriminator_key, resolve_strict
from entitykit.domain.fields import MISSING, FieldDeclaration
from entitykit.domain.instance import construct, get_problems, set_problems, set_raw_input
from entitykit.domain.primitives import deserialize_primitive, is_primitive, kind_of
from entitykit.domain.problem import (
    Problem,
    ValidationError,
    prepend_index,
    prepend_path,
    validation_error,
)
from entitykit.domain.registry import REGISTRY, ResolvedDeclaration
from entitykit.services.dependencies import DEPENDENCIES
from entitykit.services.result import PartialRecord, SafeResult
from entitykit.services.validate import (
    attached_problems,
    field_problems,
    maybe_await,
    type_problems,
)

logger = logging.getLogger(__name__)


@dataclass
class _FieldOutcome:
    """Result of running one field through the pipeline."""

    value: Any = MISSING
    problems: list[Problem] = field(default_factory=list)
    failed: bool = False


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


@logged_operation("parse")
async def parse(cls: type, data: Any, *, strict: bool | None = None) -> Any:
    """Build an instance of *cls* from plain *data*.

    Raises:
        ValidationError: A HARD problem was found, or *strict* and any
            problem was found.
        UnregisteredTypeError: *cls* is not a registered type.
        DependencyResolutionError: An injected field could not be resolved.
    """
    instance = await _parse_entity(cls, data, resolve_strict(strict))
    logger.debug(
        "Parsed %s with %d attached problem(s)",
        type(instance).__name__,
        len(get_problems(instance)),
    )
    return instance


async def safe_parse(cls: type, data: Any, *, strict: bool | None = None) -> SafeResult:
    """Like :func:`parse`, but report problem failures in a :class:`SafeResult`."""
    try:
        instance = await parse(cls, data, strict=strict)
    except ValidationError as exc:
        return SafeResult(success=False, problems=exc.problems)
    return SafeResult(success=True, data=instance, problems=get_problems(instance))


@logged_operation("partial_parse")
async def partial_parse(cls: type, data: Any, *, strict: bool | None = None) -> PartialRecord:
    """Parse only the keys present in *data* into a plain record.

    Absent keys are neither required nor defaulted. Outside strict mode a
    field with a HARD problem is left out of the record and its problems are
    attached to the record. Type validators never run.

    Raises:
        ValidationError: In strict mode when any problem was recorded, or
            when *data* itself has the wrong shape.
    """
    is_strict = resolve_strict(strict)
    target, problems = _select_partial_variant(cls, data, is_strict)
    declaration = REGISTRY.get_declaration(target)
    source = _boundary_input(declaration, data)

    record = PartialRecord()
    for name, decl in declaration.fields.items():
        if decl.is_injected or name not in source:
            continue
        if decl.polymorphic and problems:
            continue
        outcome = await _parse_present(decl, source[name], declaration.path_of(decl), is_strict)
        problems.extend(outcome.problems)
        if not outcome.failed:
            record[name] = outcome.value

    if is_strict and problems:
        raise ValidationError(problems)
    set_problems(record, problems)
    logger.debug(
        "Partially parsed %s: %d field(s), %d problem(s)",
        declaration.display_name,
        len(record),
        len(problems),
    )
    return record


async def safe_partial_parse(
    cls: type, data: Any, *, strict: bool | None = None
) -> SafeResult:
    """Like :func:`partial_parse`, but report problem failures in a :class:`SafeResult`."""
    try:
        record = await partial_parse(cls, data, strict=strict)
    except ValidationError as exc:
        return SafeResult(success=False, problems=exc.problems)
    return SafeResult(success=True, data=record, problems=get_problems(record))


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


async def _parse_entity(cls: type, data: Any, strict: bool) -> Any:
    target = _select_variant(cls, data)
    declaration = REGISTRY.get_declaration(target)
    source = _boundary_input(declaration, data)

    values: dict[str, Any] = {}
    problems: list[Problem] = []
    failed = False
    for name, decl in declaration.fields.items():
        outcome = await _parse_field(decl, source, declaration.path_of(decl), strict)
        problems.extend(outcome.problems)
        failed = failed or outcome.failed
        if outcome.value is not MISSING:
            values[name] = outcome.value

    if failed:
        raise ValidationError(problems)

    instance = construct(target, values)
    problems.extend(await type_problems(instance, declaration))
    if strict and problems:
        raise ValidationError(problems)

    set_problems(instance, problems)
    set_raw_input(instance, data)
    return instance


def _boundary_input(declaration: ResolvedDeclaration, data: Any) -> Mapping[str, Any]:
    if declaration.is_wrapper:
        return {declaration.wrapped_field.name: data}
    if not isinstance(data, Mapping):
        raise validation_error(f"Expects an object but received {kind_of(data)}")
    return data


def _select_variant(cls: type, data: Any) -> type:
    """Concrete variant of a polymorphic base, or *cls* itself."""
    field_name = REGISTRY.polymorphic_field_of(cls)
    if field_name is None:
        return cls
    if not isinstance(data, Mapping):
        raise validation_error(f"Expects an object but received {kind_of(data)}")
    value = data.get(field_name)
    if value is None:
        raise ValidationError(
            [
                Problem(
                    path=field_name,
                    message=f"Missing polymorphic discriminator property '{field_name}'",
                )
            ]
        )
    variant = REGISTRY.get_variant(cls, getattr(value, "value", value))
    if variant is None:
        raise ValidationError(
            [Problem(path=field_name, message=f"Unknown polymorphic variant '{value}'")]
        )
    return variant


def _select_partial_variant(cls: type, data: Any, strict: bool) -> tuple[type, list[Problem]]:
    """Variant named by *data*, or *cls* when none is named.

    Outside strict mode an unknown variant falls back to *cls* and comes back
    as a problem, so the remaining keys still parse against the base fields.
    """
    field_name = REGISTRY.polymorphic_field_of(cls)
    if field_name is None or not isinstance(data, Mapping) or data.get(field_name) is None:
        return cls, []
    try:
        return _select_variant(cls, data), []
    except ValidationError as exc:
        if strict:
            raise
        return cls, exc.problems


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


async def _parse_field(
    decl: FieldDeclaration,
    source: Mapping[str, Any],
    path: str,
    strict: bool,
) -> _FieldOutcome:
    if decl.is_injected:
        return _FieldOutcome(value=await DEPENDENCIES.resolve(decl.inject))

    if decl.name not in source:
        if decl.has_default:
            value = await _default(decl)
            problems = await field_problems(decl, value, path, attached_problems)
            return _FieldOutcome(value=value, problems=problems)
        if decl.optional or decl.passthrough:
            return _FieldOutcome()
        return _hard(path, "Required property is missing from input")

    return await _parse_present(decl, source[decl.name], path, strict)


async def _parse_present(
    decl: FieldDeclaration,
    value: Any,
    path: str,
    strict: bool,
) -> _FieldOutcome:
    if decl.passthrough:
        return _FieldOutcome(value=value)
    if value is None:
        if decl.optional:
            return _FieldOutcome(value=None)
        return _hard(path, "Cannot be null or undefined")

    try:
        parsed = await _deserialize(decl, value, strict)
    except ValidationError as exc:
        return _FieldOutcome(problems=prepend_path(path, exc.problems), failed=True)

    problems = await field_problems(decl, parsed, path, attached_problems)
    return _FieldOutcome(value=parsed, problems=problems)


async def _default(decl: FieldDeclaration) -> Any:
    if decl.default_factory is not None:
        return await maybe_await(decl.default_factory())
    return decl.default


def _hard(path: str, message: str) -> _FieldOutcome:
    return _FieldOutcome(problems=[Problem(path=path, message=message)], failed=True)


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


async def _deserialize(decl: FieldDeclaration, value: Any, strict: bool) -> Any:
    if not decl.is_array:
        return await _deserialize_one(decl, value, strict)

    if not isinstance(value, list | tuple):
        raise validation_error(f"Expects an array but received {kind_of(value)}")

    result: list[Any] = []
    problems: list[Problem] = []
    for index, item in enumerate(value):
        if item is None:
            if not decl.sparse:
                problems.append(Problem(path=f"[{index}]", message="Cannot be null or undefined"))
            result.append(None)
            continue
        try:
            result.append(await _deserialize_one(decl, item, strict))
        except ValidationError as exc:
            problems.extend(prepend_index(index, exc.problems))

    if problems:
        raise ValidationError(problems)
    return result


async def _deserialize_one(decl: FieldDeclaration, value: Any, strict: bool) -> Any:
    if decl.deserialize is not None:
        try:
            return await maybe_await(decl.deserialize(value))
        except (ValueError, TypeError) as exc:
            raise validation_error(str(exc) or type(exc).__name__) from exc

    if decl.is_discriminated:
        return await _parse_discriminated(decl, value, strict)

    target = REGISTRY.resolve_type(decl.type)
    if is_primitive(target):
        return deserialize_primitive(value, target)
    if isinstance(target, type) and REGISTRY.is_registered(target):
        return await _parse_entity(target, value, strict)

    raise validation_error(
        f"Has unknown type {getattr(target, '__name__', target)!s}. Supported types are "
        "str, float, bool, datetime, BigInt and registered entities"
    )


async def _parse_discriminated(decl: FieldDeclaration, value: Any, strict: bool) -> Any:
    key = resolve_discriminator_key(decl.discriminator)
    if not isinstance(value, Mapping):
        raise validation_error("Discriminated entity must be an object")
    name = value.get(key)
    if not isinstance(name, str) or not name:
        raise validation_error(f"Missing or invalid discriminator '{key}'")
    target = REGISTRY.lookup_by_name(name)
    if target is None:
        raise validation_error(f"Unknown entity type '{name}'")
    return await _parse_entity(target, value, strict)
