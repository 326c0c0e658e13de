"""Update Engine: partial mutation producing a new instance.

INVARIANT: The original instance is never modified. Immutable fields keep
their current value whatever the changes say, and change values are taken
as already typed (they are not deserialized).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from entitykit.config.logging import logged_operation
from entitykit.config.settings import resolve_strict
from entitykit.domain.instance import construct, field_values, get_problems
from entitykit.domain.problem import ValidationError
from entitykit.domain.registry import REGISTRY, UnregisteredTypeError
from entitykit.services.result import SafeResult
from entitykit.services.validate import validate

logger = logging.getLogger(__name__)


@logged_operation("update")
async def update(
    instance: Any,
    changes: Mapping[str, Any],
    *,
    strict: bool | None = None,
) -> Any:
    """Copy *instance*, apply *changes*, and validate the copy.

    Keys that are not declared fields are ignored.

    Raises:
        UnregisteredTypeError: *instance* is not of a registered type.
        ValidationError: *strict* and the copy has problems.
    """
    if isinstance(instance, type) or not REGISTRY.is_registered(instance):
        raise UnregisteredTypeError(
            f"Cannot update non-entity value of type '{type(instance).__name__}'"
        )
    declaration = REGISTRY.get_declaration(type(instance))
    values = field_values(instance, declaration.fields)

    for name, value in changes.items():
        decl = declaration.fields.get(name)
        if decl is None:
            continue
        if decl.immutable:
            logger.debug("Skipping immutable field %s.%s", declaration.display_name, name)
            continue
        values[name] = value

    updated = construct(type(instance), values)
    problems = await validate(updated)
    if resolve_strict(strict) and problems:
        raise ValidationError(problems)
    return updated


async def safe_update(
    instance: Any,
    changes: Mapping[str, Any],
    *,
    strict: bool | None = None,
) -> SafeResult:
    """Like :func:`update`; on failure ``data`` is the unmodified *instance*."""
    try:
        updated = await update(instance, changes, strict=strict)
    except ValidationError as exc:
        return SafeResult(success=False, data=instance, problems=exc.problems)
    return SafeResult(success=True, data=updated, problems=get_problems(updated))
