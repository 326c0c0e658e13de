"""Validation Engine: field and type validator passes over typed values.

The same field pass runs in two places: during parse (against freshly
deserialized values) and in :func:`validate` (against an instance's current
values). They differ only in how a nested entity contributes problems:
parse reuses the problems its nested parse already attached, while
:func:`validate` re-validates the nested instance.

INVARIANT: Validators only ever produce SOFT problems. An exception raised
by a validator propagates and aborts the enclosing operation.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from entitykit.config.logging import logged_operation
from entitykit.domain.fields import FieldDeclaration
from entitykit.domain.instance import get_problems, set_problems
from entitykit.domain.problem import Problem, index_path, prepend_path
from entitykit.domain.registry import REGISTRY, ResolvedDeclaration, UnregisteredTypeError
from entitykit.domain.validators import Validator

logger = logging.getLogger(__name__)

NestedProblems = Callable[[Any], Awaitable[list[Problem]]]


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def run_validators(validators: Iterable[Validator], value: Any, path: str) -> list[Problem]:
    """Run *validators* in order, re-rooting their problems at *path*."""
    problems: list[Problem] = []
    for validator in validators:
        found = await maybe_await(validator(value))
        if found:
            problems.extend(prepend_path(path, found))
    return problems


async def attached_problems(instance: Any) -> list[Problem]:
    """Problems a nested parse already attached to *instance*."""
    return get_problems(instance)


async def _value_problems(
    validators: Iterable[Validator],
    value: Any,
    path: str,
    nested: NestedProblems,
) -> list[Problem]:
    problems = await run_validators(validators, value, path)
    if REGISTRY.is_registered(value) and not isinstance(value, type):
        problems.extend(prepend_path(path, await nested(value)))
    return problems


async def field_problems(
    decl: FieldDeclaration,
    value: Any,
    path: str,
    nested: NestedProblems,
) -> list[Problem]:
    """SOFT problems of one field value.

    Array fields run their array validators against the whole list first,
    then the element validators against each non-``None`` element at
    ``path[index]``.
    """
    if decl.passthrough or decl.is_injected or value is None:
        return []
    if not decl.is_array or not isinstance(value, list | tuple):
        return await _value_problems(decl.validators, value, path, nested)

    problems = await run_validators(decl.array_validators, value, path)
    for index, element in enumerate(value):
        if element is None:
            continue
        problems.extend(
            await _value_problems(decl.validators, element, index_path(path, index), nested)
        )
    return problems


async def type_problems(instance: Any, declaration: ResolvedDeclaration) -> list[Problem]:
    """Run the type-level validators of *declaration* against *instance*."""
    problems: list[Problem] = []
    for method_name in declaration.validators:
        found = await maybe_await(getattr(instance, method_name)())
        if found:
            problems.extend(found)
    return problems


@logged_operation("validate")
async def validate(instance: Any) -> list[Problem]:
    """Re-check *instance* against its declaration.

    Runs the field validators over the current field values (recursing into
    nested entities), then the type validators, and replaces the attached
    problem list with the result, even when it is empty.

    Raises:
        UnregisteredTypeError: *instance* is not of a registered type.
    """
    if isinstance(instance, type) or not REGISTRY.is_registered(instance):
        raise UnregisteredTypeError(
            f"Cannot validate non-entity value of type '{type(instance).__name__}'"
        )
    declaration = REGISTRY.get_declaration(type(instance))
    state = vars(instance)

    problems: list[Problem] = []
    for name, decl in declaration.fields.items():
        if name not in state:
            continue
        path = declaration.path_of(decl)
        problems.extend(await field_problems(decl, state[name], path, validate))
    problems.extend(await type_problems(instance, declaration))

    set_problems(instance, problems)
    logger.debug("Validated %s: %d problem(s)", declaration.display_name, len(problems))
    return problems
