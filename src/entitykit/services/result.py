"""SafeResult: the non-throwing contract of the ``safe_*`` operations.

INVARIANT: ``safe_*`` operations never raise for problem-shaped failures;
they return a SafeResult instead. Any other exception still propagates.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from entitykit.domain.problem import Problem


class SafeResult(BaseModel):
    """Outcome of a ``safe_parse`` / ``safe_partial_parse`` / ``safe_update``.

    Attributes:
        success: Whether the wrapped operation succeeded.
        data: The parsed instance or record on success. For a failed
            ``safe_update`` it holds the unmodified original instance;
            otherwise ``None`` on failure.
        problems: SOFT problems attached on success, or every problem of
            the ValidationError on failure.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    success: bool
    data: Any = None
    problems: list[Problem] = Field(default_factory=list)


class PartialRecord(dict[str, Any]):
    """Plain ``dict`` returned by ``partial_parse``.

    It holds only the fields that parsed cleanly; the problems recorded for
    excluded or invalid fields are attached the same way they are on
    instances (see :func:`entitykit.get_problems`).
    """
