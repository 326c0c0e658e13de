"""Tests for SafeResult and PartialRecord."""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from entitykit import PartialRecord, Problem, SafeResult, get_problems, set_problems


class TestSafeResult:
    def test_success_construction(self) -> None:
        result = SafeResult(success=True, data={"name": "John"})
        assert result.success is True
        assert result.data == {"name": "John"}
        assert result.problems == []

    def test_failure_construction(self) -> None:
        result = SafeResult(success=False, problems=[Problem(path="name", message="Required")])
        assert result.success is False
        assert result.data is None
        assert result.problems[0].path == "name"

    def test_arbitrary_data(self) -> None:
        marker = object()
        assert SafeResult(success=True, data=marker).data is marker

    def test_json_serialization(self) -> None:
        result = SafeResult(
            success=False,
            problems=[Problem(path="scores[1]", message="Expects a number but received string")],
        )
        parsed = json.loads(result.model_dump_json())
        assert parsed["success"] is False
        assert parsed["data"] is None
        assert parsed["problems"] == [
            {"path": "scores[1]", "message": "Expects a number but received string"}
        ]

    def test_frozen(self) -> None:
        result = SafeResult(success=True)
        with pytest.raises(PydanticValidationError):
            result.success = False  # type: ignore[misc]


class TestPartialRecord:
    def test_is_a_plain_dict(self) -> None:
        record = PartialRecord(name="John")
        assert isinstance(record, dict)
        assert record == {"name": "John"}

    def test_problems_are_attached_not_stored_as_keys(self) -> None:
        record = PartialRecord(name="John")
        set_problems(record, [Problem(path="age", message="Expects a number")])
        assert list(record) == ["name"]
        assert get_problems(record)[0].path == "age"

    def test_no_problems_by_default(self) -> None:
        assert get_problems(PartialRecord()) == []
