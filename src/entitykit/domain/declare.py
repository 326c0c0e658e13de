"""Declarative front end: class decorators that populate the registry.

Usage::

    @entity
    class User:
        name = string_field(min_length=3)
        age = int_field(min=0, optional=True)

        @type_validator
        def adults_need_a_name(self) -> list[Problem]:
            ...

Field declarations are collected from the class body in definition order and
replaced by ``None`` class attributes, so reading an unset field on an
instance yields ``None`` while the engines still see it as unset.

INVARIANT: Decorators only translate a class body into a
:class:`TypeDeclaration`; every rule about declarations lives in the domain
types they build.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar, overload

from entitykit.domain.fields import MISSING, DeclarationError, FieldDeclaration
from entitykit.domain.instance import is_set
from entitykit.domain.registry import REGISTRY, EntityKind, build_declaration

TYPE_VALIDATOR_MARKER = "__entitykit_type_validator__"


def _entity_init(self: Any, **data: Any) -> None:
    declaration = REGISTRY.get_declaration(type(self))
    unknown = sorted(set(data) - set(declaration.fields))
    if unknown:
        msg = f"{type(self).__name__}() got unexpected keyword argument(s): {', '.join(unknown)}"
        raise TypeError(msg)
    for name, decl in declaration.fields.items():
        if name in data:
            object.__setattr__(self, name, data[name])
        elif decl.default is not MISSING:
            object.__setattr__(self, name, decl.default)
    variant = REGISTRY.variant_value(type(self))
    if variant is not None and not is_set(self, variant[0]):
        object.__setattr__(self, variant[0], variant[1])


def _entity_repr(self: Any) -> str:
    declaration = REGISTRY.get_declaration(type(self))
    state = vars(self)
    parts = [f"{name}={state[name]!r}" for name in declaration.fields if name in state]
    return f"{type(self).__name__}({', '.join(parts)})"


def _collect(cls: type) -> tuple[list[tuple[str, FieldDeclaration]], list[str]]:
    fields: list[tuple[str, FieldDeclaration]] = []
    validators: list[str] = []
    for attr, value in list(vars(cls).items()):
        if isinstance(value, FieldDeclaration):
            fields.append((attr, value))
            setattr(cls, attr, None)
        elif getattr(value, TYPE_VALIDATOR_MARKER, False):
            validators.append(attr)
    return fields, validators


def _declare(cls: type, name: str | None, kind: EntityKind) -> type:
    fields, validators = _collect(cls)
    REGISTRY.register(cls, build_declaration(fields, validators=validators, kind=kind, name=name))
    if cls.__init__ is object.__init__:
        cls.__init__ = _entity_init  # type: ignore[misc]
    if cls.__repr__ is object.__repr__:
        cls.__repr__ = _entity_repr  # type: ignore[method-assign]
    return cls


@overload
def entity(cls: type, /) -> type: ...


@overload
def entity(
    *, name: str | None = None, kind: EntityKind = EntityKind.PLAIN
) -> Callable[[type], type]: ...


def entity(
    cls: type | None = None,
    /,
    *,
    name: str | None = None,
    kind: EntityKind = EntityKind.PLAIN,
) -> type | Callable[[type], type]:
    """Register the decorated class as a declared type.

    Args:
        name: Registered name, required for discriminated fields and
            name-returning resolver thunks to find this type.
        kind: ``EntityKind.PLAIN`` (default) or one of the wrapper kinds.
    """
    if cls is not None:
        return _declare(cls, name, kind)

    def decorator(target: type) -> type:
        return _declare(target, name, kind)

    return decorator


def collection_entity(cls: type | None = None, /, *, name: str | None = None) -> Any:
    """Declare a type wrapping exactly one array field; it travels as a bare list."""
    decorator = entity(name=name, kind=EntityKind.COLLECTION)
    return decorator(cls) if cls is not None else decorator


def scalar_entity(cls: type | None = None, /, *, name: str | None = None) -> Any:
    """Declare a type wrapping exactly one scalar field; it travels as a bare value."""
    decorator = entity(name=name, kind=EntityKind.SCALAR)
    return decorator(cls) if cls is not None else decorator


F = TypeVar("F", bound=Callable[..., Any])


def type_validator(method: F) -> F:
    """Mark a method as a type-level validator.

    The method receives the fully constructed instance and returns an
    iterable of problems (or ``None``); it may be a coroutine function.
    """
    setattr(method, TYPE_VALIDATOR_MARKER, True)
    return method


def variant(base: type, value: Any, *, name: str | None = None) -> Callable[[type], type]:
    """Register the decorated subclass as the variant of *base* for *value*.

    The class is declared with :func:`entity` if that has not happened yet.
    Instances built through the generated ``__init__`` get *value* as their
    discriminator.
    """

    def decorator(cls: type) -> type:
        if not issubclass(cls, base):
            raise DeclarationError(
                f"Polymorphic variant '{cls.__name__}' must subclass '{base.__name__}'"
            )
        if not REGISTRY.is_registered(cls):
            _declare(cls, name, EntityKind.PLAIN)
        REGISTRY.register_variant(base, value, cls)
        return cls

    return decorator
