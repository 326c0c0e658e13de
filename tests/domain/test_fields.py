"""Tests for FieldDeclaration combination rules and builder helpers."""

from __future__ import annotations

from datetime import datetime

import pytest

from entitykit.domain.fields import (
    MISSING,
    Cardinality,
    DeclarationError,
    FieldDeclaration,
    array_field,
    bigint_field,
    discriminated_field,
    field,
    injected_field,
    int_field,
    passthrough_field,
    schema_field,
    string_field,
)
from entitykit.domain.primitives import BigInt
from entitykit.domain.problem import ValidationError


class TestCombinationRules:
    @pytest.mark.parametrize(
        "options",
        [
            {"array": True},
            {"optional": True},
            {"serialize": str, "deserialize": str},
        ],
        ids=["array", "optional", "codec"],
    )
    def test_passthrough_combinations(self, options: dict[str, object]) -> None:
        with pytest.raises(DeclarationError, match="passthrough"):
            field(lambda: str, passthrough=True, **options)  # type: ignore[arg-type]

    def test_sparse_requires_array(self) -> None:
        with pytest.raises(DeclarationError, match="sparse"):
            field(lambda: str, sparse=True)

    def test_array_validators_require_array(self) -> None:
        with pytest.raises(DeclarationError, match="array validators"):
            field(lambda: str, array_validators=[lambda v: []])

    def test_serialize_without_deserialize(self) -> None:
        with pytest.raises(DeclarationError, match="Found only serialize"):
            field(lambda: str, serialize=str)

    def test_default_and_factory(self) -> None:
        with pytest.raises(DeclarationError, match="default"):
            field(lambda: str, default="a", default_factory=lambda: "b")

    def test_type_required_for_plain_fields(self) -> None:
        with pytest.raises(DeclarationError, match="type resolver"):
            FieldDeclaration()

    def test_declaration_error_is_value_error(self) -> None:
        assert issubclass(DeclarationError, ValueError)


class TestBuilders:
    def test_string_field_builds_validators(self) -> None:
        decl = string_field(min_length=2, max_length=4, pattern=r"^[a-z]+$")
        assert decl.type is not None and decl.type() is str
        assert len(decl.validators) == 3

    def test_int_field_adds_integer_check(self) -> None:
        decl = int_field(min=0)
        assert decl.type is not None and decl.type() is float
        assert [v(1.5) for v in decl.validators][-1][0].message.startswith("Expected an integer")

    def test_array_field(self) -> None:
        decl = array_field(lambda: str, min_length=1, sparse=True)
        assert decl.cardinality is Cardinality.ARRAY
        assert decl.is_array and decl.sparse
        assert len(decl.array_validators) == 1

    def test_bigint_field(self) -> None:
        decl = bigint_field()
        assert decl.type is not None and decl.type() is BigInt

    def test_passthrough_field_needs_no_type(self) -> None:
        assert passthrough_field().passthrough

    def test_injected_field(self) -> None:
        decl = injected_field("db")
        assert decl.is_injected
        assert decl.inject == "db"

    def test_discriminated_field_uses_configured_key_by_default(self) -> None:
        decl = discriminated_field()
        assert decl.is_discriminated
        assert decl.discriminator == ""

    def test_defaults(self) -> None:
        assert not field(lambda: datetime).has_default
        assert field(lambda: str, default=None).has_default
        assert field(lambda: str).default is MISSING

    def test_named_copies(self) -> None:
        decl = string_field()
        named = decl.named("title")
        assert named.name == "title"
        assert decl.name == ""


class TestSchemaField:
    def test_deserialize_applies_schema(self) -> None:
        decl = schema_field(int)
        assert decl.deserialize is not None
        assert decl.deserialize("5") == 5

    def test_deserialize_raises_validation_error(self) -> None:
        decl = schema_field(int)
        assert decl.deserialize is not None
        with pytest.raises(ValidationError):
            decl.deserialize("five")

    def test_serialize_dumps_json_mode(self) -> None:
        decl = schema_field(datetime)
        assert decl.serialize is not None
        assert decl.serialize(datetime(2024, 1, 1)) == "2024-01-01T00:00:00"
