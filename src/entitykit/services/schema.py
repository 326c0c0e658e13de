"""Schema-builder front end: declare a type at runtime without a class body.

Usage::

    UserSchema = EntitySchema.define(
        "User",
        {"name": string_field(min_length=2), "age": int_field(optional=True)},
        validators=[lambda user: [] if user.name != "root" else [Problem(...)]],
    )
    user = await UserSchema.parse({"name": "John"})

The generated class goes through the same registry as decorated classes.
Its name is only published for name-based lookup when ``register=True``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from entitykit.domain.declare import TYPE_VALIDATOR_MARKER, entity
from entitykit.domain.fields import FieldDeclaration
from entitykit.domain.problem import Problem
from entitykit.domain.registry import EntityKind
from entitykit.services import compare, parse, serialize, update, validate
from entitykit.services.result import PartialRecord, SafeResult

SchemaValidator = Callable[[Any], Any]


def _as_method(check: SchemaValidator) -> Callable[[Any], Any]:
    def method(self: Any) -> Any:
        return check(self)

    setattr(method, TYPE_VALIDATOR_MARKER, True)
    return method


class EntitySchema:
    """A runtime-declared type plus bound versions of every engine operation."""

    def __init__(self, entity_class: type) -> None:
        self.entity_class = entity_class

    @classmethod
    def define(
        cls,
        name: str,
        fields: Mapping[str, FieldDeclaration],
        *,
        validators: tuple[SchemaValidator, ...] | list[SchemaValidator] = (),
        kind: EntityKind = EntityKind.PLAIN,
        register: bool = False,
    ) -> EntitySchema:
        """Create and register a class named *name* with *fields*.

        Args:
            validators: Callables receiving the instance and returning
                problems; they run as type-level validators.
            kind: Plain or one of the wrapper kinds.
            register: Publish *name* for discriminated-field and
                name-returning resolver lookup.
        """
        namespace: dict[str, Any] = dict(fields)
        for index, check in enumerate(validators):
            namespace[f"_schema_validator_{index}"] = _as_method(check)
        generated = type(name, (), namespace)
        entity(generated, name=name if register else None, kind=kind)
        return cls(generated)

    def __repr__(self) -> str:
        return f"EntitySchema({self.entity_class.__name__})"

    async def parse(self, data: Any, *, strict: bool | None = None) -> Any:
        return await parse.parse(self.entity_class, data, strict=strict)

    async def safe_parse(self, data: Any, *, strict: bool | None = None) -> SafeResult:
        return await parse.safe_parse(self.entity_class, data, strict=strict)

    async def partial_parse(self, data: Any, *, strict: bool | None = None) -> PartialRecord:
        return await parse.partial_parse(self.entity_class, data, strict=strict)

    async def safe_partial_parse(self, data: Any, *, strict: bool | None = None) -> SafeResult:
        return await parse.safe_partial_parse(self.entity_class, data, strict=strict)

    def serialize(self, instance: Any) -> Any:
        return serialize.to_json(instance)

    async def validate(self, instance: Any) -> list[Problem]:
        return await validate.validate(instance)

    async def update(
        self, instance: Any, changes: Mapping[str, Any], *, strict: bool | None = None
    ) -> Any:
        return await update.update(instance, changes, strict=strict)

    async def safe_update(
        self, instance: Any, changes: Mapping[str, Any], *, strict: bool | None = None
    ) -> SafeResult:
        return await update.safe_update(instance, changes, strict=strict)

    def equals(self, a: Any, b: Any) -> bool:
        return compare.equals(a, b)

    def diff(self, a: Any, b: Any) -> dict[str, tuple[Any, Any]]:
        """Changed fields as ``{field: (old, new)}``."""
        return {entry.field: (entry.old_value, entry.new_value) for entry in compare.diff(a, b)}

    def changes(self, a: Any, b: Any) -> dict[str, Any]:
        return compare.changes(a, b)
