"""Tests for the declarative decorators."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from entitykit import (
    REGISTRY,
    DeclarationError,
    EntityKind,
    Problem,
    entity,
    int_field,
    polymorphic_field,
    string_field,
    type_validator,
    variant,
)
from tests.entities import Animal, AnimalKind, Cat, Dog, Email, Range, Tags, User


@pytest.fixture
def scratch() -> Iterator[list[type]]:
    """Classes appended here are unregistered after the test."""
    declared: list[type] = []
    yield declared
    for cls in declared:
        REGISTRY.unregister(cls)


class TestEntityDecorator:
    def test_fields_collected_in_order(self) -> None:
        assert list(REGISTRY.get_declaration(User).fields) == ["name", "age", "address"]

    def test_class_attributes_become_none(self) -> None:
        assert User.name is None
        assert User(name="Jane").age is None

    def test_generated_init_sets_only_given_fields(self) -> None:
        user = User(name="Jane")
        assert vars(user) == {"name": "Jane"}

    def test_generated_init_rejects_unknown_keywords(self) -> None:
        with pytest.raises(TypeError, match="nickname"):
            User(name="Jane", nickname="J")

    def test_generated_init_applies_static_defaults(self) -> None:
        assert Cat(name="Tom").lives == 9

    def test_repr(self) -> None:
        assert repr(User(name="Jane", age=30)) == "User(name='Jane', age=30)"

    def test_own_init_is_kept(self, scratch: list[type]) -> None:
        @entity
        class Point:
            x = int_field()

            def __init__(self, x: int) -> None:
                self.x = x * 2

        scratch.append(Point)
        assert Point(2).x == 4

    def test_bare_and_called_forms(self, scratch: list[type]) -> None:
        @entity
        class Bare:
            a = string_field()

        @entity(name="Called")
        class Called:
            a = string_field()

        scratch.extend([Bare, Called])
        assert REGISTRY.name_of(Bare) is None
        assert REGISTRY.lookup_by_name("Called") is Called

    def test_wrapper_kinds(self) -> None:
        assert REGISTRY.get_declaration(Tags).kind is EntityKind.COLLECTION
        assert REGISTRY.get_declaration(Email).kind is EntityKind.SCALAR


class TestTypeValidator:
    def test_marked_methods_are_collected(self) -> None:
        assert REGISTRY.get_declaration(Range).validators == ("low_below_high",)

    def test_inherited_validators(self, scratch: list[type]) -> None:
        @entity
        class Strict(Range):
            @type_validator
            def not_equal(self) -> list[Problem]:
                return []

        scratch.append(Strict)
        assert REGISTRY.get_declaration(Strict).validators == ("low_below_high", "not_equal")


class TestVariant:
    def test_variant_inherits_base_fields(self) -> None:
        assert list(REGISTRY.get_declaration(Dog).fields) == ["name", "kind", "breed"]

    def test_discriminator_set_by_init(self) -> None:
        assert Dog(name="Rex", breed="Lab").kind == "dog"
        assert Cat(name="Tom").kind == "cat"

    def test_variant_lookup(self) -> None:
        assert REGISTRY.get_variant(Animal, "dog") is Dog
        assert REGISTRY.get_variant(Animal, AnimalKind.CAT.value) is Cat

    def test_variant_must_subclass_base(self) -> None:
        with pytest.raises(DeclarationError, match="must subclass"):

            @variant(Animal, "bird")
            class Bird:
                pass

    def test_duplicate_value_rejected(self) -> None:
        with pytest.raises(DeclarationError, match="Duplicate polymorphic variant"):

            @variant(Animal, AnimalKind.DOG)
            class Puppy(Animal):
                pass

    def test_variants_of_lists_registered_variants(self, scratch: list[type]) -> None:
        @entity
        class Vehicle:
            kind = polymorphic_field(["car"])

        @variant(Vehicle, "car")
        class Car(Vehicle):
            pass

        scratch.extend([Car, Vehicle])
        assert REGISTRY.variants_of(Vehicle) == [("car", Car)]
