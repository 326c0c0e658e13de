"""Problem records, the ValidationError aggregate, and path helpers.

A Problem is a single path-addressed finding. Paths are dotted for nested
fields and bracket-indexed for array elements (``address.street``,
``scores[2]``). An empty path means "the value as a whole"; callers re-root
it at the field or element they are processing.

INVARIANT: Problems are immutable. Re-rooting always builds new Problems.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel


class EntityError(Exception):
    """Root of every error raised by entitykit."""


class Problem(BaseModel):
    """A single path-addressed validation finding."""

    model_config = {"frozen": True}

    path: str = ""
    message: str

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{self.path}: {self.message}"


class ValidationError(EntityError):
    """Aggregate failure carrying one or more Problems.

    The message is ``"<n> error(s)"`` followed by one ``path: message``
    line per problem.
    """

    def __init__(self, problems: Iterable[Problem]) -> None:
        self.problems: list[Problem] = list(problems)
        if not self.problems:
            msg = "ValidationError requires at least one problem"
            raise ValueError(msg)
        lines = [f"{len(self.problems)} error(s)"]
        lines.extend(str(p) for p in self.problems)
        super().__init__("\n".join(lines))


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def combine_paths(prefix: str, suffix: str) -> str:
    """Join two path segments.

    Examples:
        >>> combine_paths("user", "")
        'user'
        >>> combine_paths("user", "name")
        'user.name'
        >>> combine_paths("items", "[0]")
        'items[0]'
        >>> combine_paths("", "name")
        'name'
    """
    if not suffix:
        return prefix
    if not prefix:
        return suffix
    if suffix.startswith("["):
        return f"{prefix}{suffix}"
    return f"{prefix}.{suffix}"


def index_path(prefix: str, index: int) -> str:
    """Path of element *index* under *prefix* (``scores[2]``)."""
    return f"{prefix}[{index}]"


def prepend_path(prefix: str, problems: Iterable[Problem]) -> list[Problem]:
    """Re-root *problems* under *prefix*."""
    return [Problem(path=combine_paths(prefix, p.path), message=p.message) for p in problems]


def prepend_index(index: int, problems: Iterable[Problem]) -> list[Problem]:
    """Re-root *problems* under array index *index* (``[0].name``)."""
    return prepend_path(f"[{index}]", problems)


def validation_error(message: str) -> ValidationError:
    """A ValidationError with one path-less problem; the caller supplies context."""
    return ValidationError([Problem(message=message)])
