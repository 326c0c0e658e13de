"""Metadata Registry, Type Resolver, and polymorphic variant table.

The registry is keyed by class identity. Each class stores only its *own*
declaration; :meth:`MetadataRegistry.get_declaration` merges the supertype
chain on every call so late registrations are always visible.

Field order follows the class hierarchy the way dataclasses do: supertype
fields first, a re-declared field keeps its original slot but takes the
subtype's declaration, and new subtype fields are appended.

INVARIANT: Field type resolvers are invoked on demand, never cached, so
forward references between mutually recursive types resolve as soon as both
types are registered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from entitykit.domain.fields import DeclarationError, FieldDeclaration
from entitykit.domain.problem import EntityError

logger = logging.getLogger(__name__)


class UnregisteredTypeError(EntityError, TypeError):
    """An operation received a value whose type is not registered."""


class EntityKind(StrEnum):
    """Boundary shape of a declared type."""

    PLAIN = "plain"
    COLLECTION = "collection-wrapper"
    SCALAR = "scalar-wrapper"


@dataclass(frozen=True)
class TypeDeclaration:
    """Declaration of one class, excluding anything inherited.

    Attributes:
        fields: Own field declarations, in declaration order, already named.
        validators: Names of own type-level validator methods.
        kind: ``plain``, ``collection-wrapper`` or ``scalar-wrapper``.
        name: Registered name for name-based lookup, if any.
    """

    fields: tuple[FieldDeclaration, ...] = ()
    validators: tuple[str, ...] = ()
    kind: EntityKind = EntityKind.PLAIN
    name: str | None = None

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if any(not n for n in names):
            raise DeclarationError("Every field of a type declaration must be named")
        if len(set(names)) != len(names):
            raise DeclarationError(f"Duplicate field names in declaration: {names}")


@dataclass(frozen=True)
class ResolvedDeclaration:
    """A class's declaration merged across its supertype chain."""

    cls: type
    fields: dict[str, FieldDeclaration]
    validators: tuple[str, ...]
    kind: EntityKind
    name: str | None

    @property
    def wrapped_field(self) -> FieldDeclaration:
        """The single field of a wrapper type."""
        return next(iter(self.fields.values()))

    @property
    def is_wrapper(self) -> bool:
        return self.kind is not EntityKind.PLAIN

    @property
    def discriminator_field(self) -> FieldDeclaration | None:
        """The field that selects a polymorphic variant, if any."""
        for decl in self.fields.values():
            if decl.polymorphic:
                return decl
        return None

    @property
    def display_name(self) -> str:
        return self.name or self.cls.__name__

    def path_of(self, decl: FieldDeclaration) -> str:
        """Problem path of *decl*; a wrapper's field is the value itself."""
        return "" if self.is_wrapper else decl.name


@dataclass
class _Variants:
    field_name: str
    by_value: dict[Any, type] = field(default_factory=dict)


class MetadataRegistry:
    """Process-wide table of declared types.

    Populate once at start-up (normally through the ``@entity`` decorators);
    reads are safe once the table is stable.
    """

    def __init__(self) -> None:
        self._declarations: dict[type, TypeDeclaration] = {}
        self._names: dict[str, type] = {}
        self._variants: dict[type, _Variants] = {}
        self._variant_values: dict[type, tuple[str, Any]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, cls: type, declaration: TypeDeclaration) -> None:
        """Store *declaration* for *cls*. Idempotent; the last write wins."""
        self._check_wrapper(cls, declaration)
        previous = self._declarations.get(cls)
        if previous is not None and previous.name and previous.name != declaration.name:
            if self._names.get(previous.name) is cls:
                del self._names[previous.name]
        self._declarations[cls] = declaration

        if declaration.name:
            existing = self._names.get(declaration.name)
            if existing is not None and existing is not cls:
                logger.warning(
                    "Registered name %r moved from %s to %s",
                    declaration.name,
                    existing.__qualname__,
                    cls.__qualname__,
                )
            self._names[declaration.name] = cls

        for decl in declaration.fields:
            if decl.polymorphic:
                self._set_discriminator(cls, decl.name)

        logger.debug(
            "Registered %s (%s, %d field(s))",
            cls.__qualname__,
            declaration.kind,
            len(declaration.fields),
        )

    def unregister(self, cls: type) -> None:
        """Drop *cls* and any name or variant entries pointing at it."""
        declaration = self._declarations.pop(cls, None)
        if declaration is not None and declaration.name:
            if self._names.get(declaration.name) is cls:
                del self._names[declaration.name]
        self._variants.pop(cls, None)
        self._variant_values.pop(cls, None)
        for variants in self._variants.values():
            for value, variant_cls in list(variants.by_value.items()):
                if variant_cls is cls:
                    del variants.by_value[value]

    def clear(self) -> None:
        self._declarations.clear()
        self._names.clear()
        self._variants.clear()
        self._variant_values.clear()

    @staticmethod
    def _check_wrapper(cls: type, declaration: TypeDeclaration) -> None:
        if declaration.kind is EntityKind.PLAIN:
            return
        if len(declaration.fields) != 1:
            raise DeclarationError(
                f"Wrapper type '{cls.__name__}' must declare exactly one field, "
                f"found {len(declaration.fields)}"
            )
        wrapped = declaration.fields[0]
        if declaration.kind is EntityKind.COLLECTION and not wrapped.is_array:
            raise DeclarationError(
                f"Collection wrapper '{cls.__name__}' must wrap an array field"
            )
        if declaration.kind is EntityKind.SCALAR and wrapped.is_array:
            raise DeclarationError(f"Scalar wrapper '{cls.__name__}' must wrap a scalar field")
        if wrapped.is_injected:
            raise DeclarationError(f"Wrapper type '{cls.__name__}' cannot wrap an injected field")

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def is_registered(self, obj: object) -> bool:
        """Whether *obj* (a class or an instance) belongs to a registered type."""
        cls = obj if isinstance(obj, type) else type(obj)
        return cls in self._declarations

    def get_declaration(self, cls: type) -> ResolvedDeclaration:
        """Merged declaration of *cls*, walking its supertype chain.

        Raises:
            UnregisteredTypeError: If *cls* itself is not registered.
        """
        own = self._declarations.get(cls)
        if own is None:
            raise UnregisteredTypeError(f"Type '{cls.__name__}' is not a registered entity")

        fields: dict[str, FieldDeclaration] = {}
        validators: dict[str, None] = {}
        for klass in reversed(cls.__mro__):
            declaration = self._declarations.get(klass)
            if declaration is None:
                continue
            for decl in declaration.fields:
                fields[decl.name] = decl
            for method_name in declaration.validators:
                validators[method_name] = None

        return ResolvedDeclaration(
            cls=cls,
            fields=fields,
            validators=tuple(validators),
            kind=own.kind,
            name=own.name,
        )

    def lookup_by_name(self, name: str) -> type | None:
        return self._names.get(name)

    def name_of(self, cls: type) -> str | None:
        declaration = self._declarations.get(cls)
        return declaration.name if declaration is not None else None

    def names(self) -> list[str]:
        return list(self._names)

    def resolve_type(self, resolver: Callable[[], Any]) -> Any:
        """Invoke a field's type resolver.

        A resolver returning a string is looked up by registered name; an
        unknown name resolves to ``None``.
        """
        target = resolver()
        if isinstance(target, str):
            return self.lookup_by_name(target)
        return target

    # ------------------------------------------------------------------
    # Polymorphic variants
    # ------------------------------------------------------------------

    def _set_discriminator(self, base: type, field_name: str) -> None:
        current = self._variants.get(base)
        if current is None:
            self._variants[base] = _Variants(field_name=field_name)
        elif current.field_name != field_name:
            raise DeclarationError(
                f"Base class '{base.__name__}' already has a polymorphic discriminator "
                f"property '{current.field_name}'; cannot register '{field_name}'"
            )

    def register_variant(self, base: type, value: Any, variant_cls: type) -> None:
        """Map discriminator *value* of polymorphic *base* to *variant_cls*."""
        variants = self._variants.get(base)
        if variants is None:
            raise DeclarationError(
                f"Base class '{base.__name__}' has no polymorphic discriminator field"
            )
        key = getattr(value, "value", value)
        existing = variants.by_value.get(key)
        if existing is not None and existing is not variant_cls:
            raise DeclarationError(
                f"Duplicate polymorphic variant for '{base.__name__}' with discriminator "
                f"value '{key}': '{existing.__name__}' already registered, "
                f"attempted '{variant_cls.__name__}'"
            )
        variants.by_value[key] = variant_cls
        self._variant_values[variant_cls] = (variants.field_name, key)

    def variant_value(self, variant_cls: type) -> tuple[str, Any] | None:
        """``(discriminator field, value)`` that *variant_cls* was registered under."""
        return self._variant_values.get(variant_cls)

    def polymorphic_field_of(self, base: type) -> str | None:
        variants = self._variants.get(base)
        return variants.field_name if variants is not None else None

    def get_variant(self, base: type, value: Any) -> type | None:
        variants = self._variants.get(base)
        if variants is None:
            return None
        try:
            return variants.by_value.get(value)
        except TypeError:
            return None

    def variants_of(self, base: type) -> list[tuple[Any, type]]:
        variants = self._variants.get(base)
        if variants is None:
            return []
        return list(variants.by_value.items())

    def has_variants(self, base: type) -> bool:
        variants = self._variants.get(base)
        return variants is not None and bool(variants.by_value)


REGISTRY = MetadataRegistry()


def register(cls: type, declaration: TypeDeclaration) -> None:
    REGISTRY.register(cls, declaration)


def get_declaration(cls: type) -> ResolvedDeclaration:
    return REGISTRY.get_declaration(cls)


def lookup_by_name(name: str) -> type | None:
    return REGISTRY.lookup_by_name(name)


def is_entity(obj: object) -> bool:
    """Whether *obj* is a registered class or an instance of one."""
    return obj is not None and REGISTRY.is_registered(obj)


def build_declaration(
    fields: Iterable[tuple[str, FieldDeclaration]],
    *,
    validators: Iterable[str] = (),
    kind: EntityKind = EntityKind.PLAIN,
    name: str | None = None,
) -> TypeDeclaration:
    """Bind field names and assemble a :class:`TypeDeclaration`."""
    return TypeDeclaration(
        fields=tuple(decl.named(field_name) for field_name, decl in fields),
        validators=tuple(validators),
        kind=kind,
        name=name,
    )
