"""Shared pytest fixtures and test helpers for entitykit tests."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from entitykit.config.settings import reset_settings
from entitykit.domain.problem import Problem
from entitykit.services.dependencies import DEPENDENCIES


@pytest.fixture(autouse=True)
def _isolated_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset the dependency registry and cached settings around every test.

    ``ENTITYKIT_*`` variables from the surrounding shell are cleared so the
    code defaults apply unless a test sets them.
    """
    import os

    for key in list(os.environ):
        if key.startswith("ENTITYKIT_"):
            monkeypatch.delenv(key)
    DEPENDENCIES.reset()
    reset_settings()
    yield
    DEPENDENCIES.reset()
    reset_settings()


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def paths(problems: list[Problem]) -> list[str]:
    """Problem paths, in order."""
    return [p.path for p in problems]


def messages(problems: list[Problem]) -> list[str]:
    """Problem messages, in order."""
    return [p.message for p in problems]


def problem_map(problems: list[Problem]) -> dict[str, str]:
    """``{path: message}`` for assertions that do not care about order."""
    return {p.path: p.message for p in problems}


def soft(message: str, path: str = "") -> list[Problem]:
    """A single-problem validator result."""
    return [Problem(path=path, message=message)]


def state(instance: Any) -> dict[str, Any]:
    """Set fields of *instance* (no private engine keys)."""
    return {k: v for k, v in vars(instance).items() if not k.startswith("_entitykit_")}
