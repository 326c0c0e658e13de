"""Field declarations and the builder helpers that produce them.

A :class:`FieldDeclaration` carries everything the engines need to know about
one field: how to resolve its type, its cardinality, optionality, defaults,
validators and custom codecs. Declarations are immutable; the field name is
filled in when the owning type is registered.

INVARIANT: A declaration that breaks a combination rule never exists;
``__post_init__`` raises :class:`DeclarationError` instead.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, StrEnum
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from entitykit.domain import validators as checks
from entitykit.domain.primitives import BigInt
from entitykit.domain.problem import EntityError, ValidationError
from entitykit.domain.validators import Validator

DEFAULT_DISCRIMINATOR_KEY = "__type"


class DeclarationError(EntityError, ValueError):
    """A field or type declaration breaks a combination rule."""


class _Missing:
    """Sentinel type for "no value supplied"."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class Cardinality(StrEnum):
    """Whether a field holds one value or a list of values."""

    SCALAR = "scalar"
    ARRAY = "array"


@dataclass(frozen=True)
class FieldDeclaration:
    """Declared shape of one field.

    Attributes:
        name: Field name; empty until the owning type is registered.
        type: Zero-argument resolver returning the field's type (a scalar
            kind, a registered class, or a registered name). Invoked every
            time it is needed, never at declaration time.
        cardinality: ``scalar`` or ``array``.
        sparse: ``None`` elements are allowed inside an array.
        optional: The field may be absent or ``None``.
        passthrough: The value bypasses all type checking and validation.
        immutable: The update engine never overwrites this field.
        default: Static value used when the key is absent.
        default_factory: Sync or async callable producing a fresh default.
        validators: Run per scalar value or per array element.
        array_validators: Run once against the whole array.
        serialize: Custom value -> plain data override.
        deserialize: Custom plain data -> value override.
        equals: Custom equality used by diff.
        discriminator: Key naming the concrete type of a discriminated field.
            ``""`` means "use the configured default key".
        polymorphic: This field selects the variant of a polymorphic base.
        inject: Dependency token; the value is resolved, never parsed.
    """

    name: str = ""
    type: Callable[[], Any] | None = None
    cardinality: Cardinality = Cardinality.SCALAR
    sparse: bool = False
    optional: bool = False
    passthrough: bool = False
    immutable: bool = False
    default: Any = MISSING
    default_factory: Callable[[], Any] | None = None
    validators: tuple[Validator, ...] = ()
    array_validators: tuple[Validator, ...] = ()
    serialize: Callable[[Any], Any] | None = None
    deserialize: Callable[[Any], Any] | None = None
    equals: Callable[[Any, Any], bool] | None = None
    discriminator: str | None = None
    polymorphic: bool = False
    inject: Any = MISSING

    def __post_init__(self) -> None:
        label = f"Field '{self.name}'" if self.name else "Field"
        if self.passthrough:
            if self.is_array:
                raise DeclarationError(f"{label} cannot combine passthrough with array")
            if self.optional:
                raise DeclarationError(f"{label} cannot combine passthrough with optional")
            if self.sparse:
                raise DeclarationError(f"{label} cannot combine passthrough with sparse")
            if self.serialize is not None or self.deserialize is not None:
                raise DeclarationError(
                    f"{label} cannot combine passthrough with serialize or deserialize"
                )
        if self.sparse and not self.is_array:
            raise DeclarationError(f"{label} has sparse set but is not an array")
        if self.array_validators and not self.is_array:
            raise DeclarationError(f"{label} has array validators but is not an array")
        if (self.serialize is None) != (self.deserialize is None):
            found = "serialize" if self.serialize is not None else "deserialize"
            raise DeclarationError(
                f"{label} must define both serialize and deserialize, or neither. "
                f"Found only {found}."
            )
        if self.default is not MISSING and self.default_factory is not None:
            raise DeclarationError(f"{label} cannot define both default and default_factory")
        if self.type is None and not (
            self.passthrough
            or self.is_injected
            or self.is_discriminated
            or self.deserialize is not None
        ):
            raise DeclarationError(f"{label} needs a type resolver")

    @property
    def is_array(self) -> bool:
        return self.cardinality is Cardinality.ARRAY

    @property
    def is_injected(self) -> bool:
        return self.inject is not MISSING

    @property
    def is_discriminated(self) -> bool:
        return self.discriminator is not None

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory is not None

    def named(self, name: str) -> FieldDeclaration:
        """Copy of this declaration bound to *name*."""
        return dataclasses.replace(self, name=name)


# ---------------------------------------------------------------------------
# Builder helpers
# ---------------------------------------------------------------------------


def field(
    type: Callable[[], Any] | None = None,
    *,
    array: bool = False,
    sparse: bool = False,
    optional: bool = False,
    passthrough: bool = False,
    immutable: bool = False,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | None = None,
    validators: Iterable[Validator] = (),
    array_validators: Iterable[Validator] = (),
    serialize: Callable[[Any], Any] | None = None,
    deserialize: Callable[[Any], Any] | None = None,
    equals: Callable[[Any, Any], bool] | None = None,
    discriminator: str | None = None,
    polymorphic: bool = False,
    inject: Any = MISSING,
) -> FieldDeclaration:
    """General-purpose field declaration; the typed helpers below wrap this."""
    return FieldDeclaration(
        type=type,
        cardinality=Cardinality.ARRAY if array else Cardinality.SCALAR,
        sparse=sparse,
        optional=optional,
        passthrough=passthrough,
        immutable=immutable,
        default=default,
        default_factory=default_factory,
        validators=tuple(validators),
        array_validators=tuple(array_validators),
        serialize=serialize,
        deserialize=deserialize,
        equals=equals,
        discriminator=discriminator,
        polymorphic=polymorphic,
        inject=inject,
    )


def string_field(
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
    pattern_message: str | None = None,
    validators: Iterable[Validator] = (),
    **options: Any,
) -> FieldDeclaration:
    """String field with optional length and pattern checks.

    Example::

        username = string_field(min_length=3, pattern=r"^[a-z0-9]+$")
    """
    built: list[Validator] = []
    if min_length is not None:
        built.append(checks.min_length(min_length))
    if max_length is not None:
        built.append(checks.max_length(max_length))
    if pattern is not None:
        built.append(checks.pattern(pattern, pattern_message))
    return field(lambda: str, validators=[*built, *validators], **options)


def enum_field(
    choices: type[Enum] | Iterable[Any],
    *,
    validators: Iterable[Validator] = (),
    **options: Any,
) -> FieldDeclaration:
    """String field restricted to the values of *choices*."""
    return field(lambda: str, validators=[checks.one_of(choices), *validators], **options)


def number_field(
    *,
    min: float | None = None,
    max: float | None = None,
    validators: Iterable[Validator] = (),
    **options: Any,
) -> FieldDeclaration:
    built: list[Validator] = []
    if min is not None:
        built.append(checks.min_value(min))
    if max is not None:
        built.append(checks.max_value(max))
    return field(lambda: float, validators=[*built, *validators], **options)


def int_field(
    *,
    min: float | None = None,
    max: float | None = None,
    validators: Iterable[Validator] = (),
    **options: Any,
) -> FieldDeclaration:
    """Number field whose values must be integral."""
    return number_field(min=min, max=max, validators=[checks.integer(), *validators], **options)


def bool_field(**options: Any) -> FieldDeclaration:
    return field(lambda: bool, **options)


def date_field(**options: Any) -> FieldDeclaration:
    return field(lambda: datetime, **options)


def bigint_field(**options: Any) -> FieldDeclaration:
    return field(lambda: BigInt, **options)


def entity_field(type: Callable[[], Any], **options: Any) -> FieldDeclaration:
    """Nested declared type. *type* may return a class or a registered name."""
    return field(type, **options)


def array_field(
    type: Callable[[], Any],
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    array_validators: Iterable[Validator] = (),
    **options: Any,
) -> FieldDeclaration:
    """List of *type* values, with optional whole-array length checks."""
    built: list[Validator] = []
    if min_length is not None:
        built.append(checks.array_min_length(min_length))
    if max_length is not None:
        built.append(checks.array_max_length(max_length))
    return field(type, array=True, array_validators=[*built, *array_validators], **options)


def passthrough_field(**options: Any) -> FieldDeclaration:
    """Opaque value accepted and emitted unchanged."""
    return field(passthrough=True, **options)


def discriminated_field(key: str = "", **options: Any) -> FieldDeclaration:
    """Nested value whose concrete registered type is named by *key*.

    An empty *key* uses the configured default (``__type`` unless overridden).
    """
    return field(discriminator=key, **options)


def polymorphic_field(
    choices: type[Enum] | Iterable[Any],
    **options: Any,
) -> FieldDeclaration:
    """Discriminator field of a polymorphic base; see :func:`variant`."""
    return field(lambda: str, validators=[checks.one_of(choices)], polymorphic=True, **options)


def injected_field(token: Any) -> FieldDeclaration:
    """Field resolved from the dependency registry by *token* at parse time."""
    return field(inject=token)


def stringifiable_field(type: Callable[[], Any], **options: Any) -> FieldDeclaration:
    """Value object that travels as a string.

    The class returned by *type* must provide a ``parse(text)`` classmethod;
    ``str(value)`` produces the wire form.
    """

    def deserialize(value: Any) -> Any:
        if isinstance(value, str):
            return type().parse(value)
        msg = f"Invalid value {type().__name__}: {value!r}"
        raise TypeError(msg)

    return field(
        type,
        serialize=str,
        deserialize=deserialize,
        equals=lambda a, b: a == b or str(a) == str(b),
        **options,
    )


def serializable_field(type: Callable[[], Any], **options: Any) -> FieldDeclaration:
    """Value object with ``parse(data)`` classmethod and ``to_json()`` method."""
    return field(
        type,
        serialize=lambda value: value.to_json(),
        deserialize=lambda value: type().parse(value),
        equals=lambda a, b: a == b or a.to_json() == b.to_json(),
        **options,
    )


def schema_field(schema: Any, **options: Any) -> FieldDeclaration:
    """Field parsed by a pydantic type instead of the built-in deserializers.

    Schema failures are structural (HARD) problems. Any transformation the
    schema applies (coercion, defaults) is kept in the parsed value.
    """
    adapter = checks.as_type_adapter(schema)

    def deserialize(value: Any) -> Any:
        try:
            return adapter.validate_python(value)
        except PydanticValidationError as exc:
            raise ValidationError(checks.pydantic_problems(exc)) from None

    return field(
        serialize=lambda value: adapter.dump_python(value, mode="json"),
        deserialize=deserialize,
        **options,
    )
