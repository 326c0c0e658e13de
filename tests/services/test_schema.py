"""Tests for the runtime schema builder."""

from __future__ import annotations

from typing import Any

import pytest

from entitykit import (
    REGISTRY,
    EntityKind,
    EntitySchema,
    Problem,
    ValidationError,
    array_field,
    entity_field,
    get_problems,
    int_field,
    string_field,
)
from tests.conftest import paths
from tests.entities import Address


def _no_root(user: Any) -> list[Problem]:
    if user.name == "root":
        return [Problem(path="name", message="Reserved name")]
    return []


@pytest.fixture(scope="module")
def user_schema() -> EntitySchema:
    return EntitySchema.define(
        "SchemaUser",
        {
            "name": string_field(min_length=2),
            "age": int_field(min=0, optional=True),
            "address": entity_field(lambda: Address, optional=True),
        },
        validators=[_no_root],
    )


class TestDefine:
    def test_generates_registered_class(self, user_schema: EntitySchema) -> None:
        cls = user_schema.entity_class
        assert cls.__name__ == "SchemaUser"
        assert list(REGISTRY.get_declaration(cls).fields) == ["name", "age", "address"]

    def test_name_is_not_published_by_default(self, user_schema: EntitySchema) -> None:
        assert REGISTRY.lookup_by_name("SchemaUser") is None

    def test_register_publishes_name(self) -> None:
        schema = EntitySchema.define("SchemaTag", {"label": string_field()}, register=True)
        try:
            assert REGISTRY.lookup_by_name("SchemaTag") is schema.entity_class
        finally:
            REGISTRY.unregister(schema.entity_class)

    def test_wrapper_kind(self) -> None:
        schema = EntitySchema.define(
            "SchemaList", {"items": array_field(lambda: str)}, kind=EntityKind.COLLECTION
        )
        assert REGISTRY.get_declaration(schema.entity_class).is_wrapper

    def test_repr(self, user_schema: EntitySchema) -> None:
        assert repr(user_schema) == "EntitySchema(SchemaUser)"


class TestOperations:
    async def test_parse_and_serialize(self, user_schema: EntitySchema) -> None:
        user = await user_schema.parse({"name": "John", "age": 30})
        assert isinstance(user, user_schema.entity_class)
        assert user_schema.serialize(user) == {"name": "John", "age": 30}

    async def test_type_validators(self, user_schema: EntitySchema) -> None:
        user = await user_schema.parse({"name": "root"})
        assert get_problems(user) == [Problem(path="name", message="Reserved name")]

    async def test_safe_parse(self, user_schema: EntitySchema) -> None:
        result = await user_schema.safe_parse({"name": "J"}, strict=True)
        assert result.success is False
        assert paths(result.problems) == ["name"]

    async def test_partial_parse(self, user_schema: EntitySchema) -> None:
        record = await user_schema.partial_parse({"age": -1})
        assert record == {"age": -1}
        assert paths(get_problems(record)) == ["age"]
        result = await user_schema.safe_partial_parse({"age": "x"})
        assert result.data == {}

    async def test_validate(self, user_schema: EntitySchema) -> None:
        user = user_schema.entity_class(name="root")
        assert paths(await user_schema.validate(user)) == ["name"]

    async def test_update(self, user_schema: EntitySchema) -> None:
        user = await user_schema.parse({"name": "John"})
        updated = await user_schema.update(user, {"age": 3})
        assert updated.age == 3
        with pytest.raises(ValidationError):
            await user_schema.update(user, {"name": "J"}, strict=True)
        result = await user_schema.safe_update(user, {"name": "J"}, strict=True)
        assert result.data is user

    async def test_equals_diff_changes(self, user_schema: EntitySchema) -> None:
        a = await user_schema.parse({"name": "John", "age": 1})
        b = await user_schema.parse({"name": "John", "age": 2})
        assert not user_schema.equals(a, b)
        assert user_schema.diff(a, b) == {"age": (1, 2)}
        assert user_schema.changes(a, b) == {"age": 2}
