"""Declared types shared across the test suite."""

from __future__ import annotations

from enum import StrEnum

from entitykit import (
    Problem,
    Token,
    array_field,
    bigint_field,
    bool_field,
    collection_entity,
    date_field,
    discriminated_field,
    entity,
    entity_field,
    injected_field,
    int_field,
    number_field,
    passthrough_field,
    polymorphic_field,
    scalar_entity,
    string_field,
    stringifiable_field,
    type_validator,
    variant,
)


@entity(name="Address")
class Address:
    street = string_field(min_length=3)
    city = string_field()


@entity(name="User")
class User:
    name = string_field(min_length=3)
    age = number_field(optional=True)
    address = entity_field(lambda: Address, optional=True)


@entity
class Stats:
    scores = array_field(lambda: float)


@entity
class Item:
    id = string_field(immutable=True)
    value = number_field()


@collection_entity(name="Tags")
class Tags:
    items = array_field(lambda: str)


@scalar_entity(name="Email")
class Email:
    value = string_field(pattern=r"^[^@\s]+@[^@\s]+\.[a-z]{2,}$", pattern_message="Invalid email")


@entity
class Contact:
    name = string_field()
    email = entity_field(lambda: Email)


@entity
class Event:
    title = string_field()
    starts_at = date_field()
    attendees = bigint_field(optional=True)
    public = bool_field(default=False)


@entity
class TreeNode:
    label = string_field()
    children = array_field(lambda: TreeNode, default_factory=list)


@entity
class Sparse:
    values = array_field(lambda: float, sparse=True)


@entity
class Settings:
    options = passthrough_field()
    retries = int_field(min=0, max=5, default=3)


@entity
class Range:
    low = number_field()
    high = number_field()

    @type_validator
    def low_below_high(self) -> list[Problem]:
        if self.low > self.high:
            return [Problem(path="low", message="Must not exceed high")]
        return []


class AnimalKind(StrEnum):
    DOG = "dog"
    CAT = "cat"


@entity
class Animal:
    name = string_field()
    kind = polymorphic_field(AnimalKind)


@variant(Animal, AnimalKind.DOG)
class Dog(Animal):
    breed = string_field()


@variant(Animal, AnimalKind.CAT)
class Cat(Animal):
    lives = int_field(min=0, max=9, default=9)



@entity
class Envelope:
    content = discriminated_field()


CLOCK = Token("clock")


@entity
class Stamped:
    label = string_field()
    clock = injected_field(CLOCK)


class Version:
    """Value object that travels as ``"major.minor"``."""

    def __init__(self, major: int, minor: int) -> None:
        self.major, self.minor = major, minor

    @classmethod
    def parse(cls, text: str) -> Version:
        major, _, minor = text.partition(".")
        if not (major.isdigit() and minor.isdigit()):
            raise ValueError(f"Invalid version: {text}")
        return cls(int(major), int(minor))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@entity
class Release:
    version = stringifiable_field(lambda: Version)
