"""Instance construction and the state every instance carries.

Engines build instances without calling ``__init__``: ``cls.__new__`` and
plain attribute assignment. A field that was never assigned is *unset*
(absent from the instance ``__dict__``), which is distinct from ``None``.

Attached problems and the raw-input reference are stored in the instance
``__dict__`` under private keys so they never collide with declared fields.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from entitykit.domain.problem import Problem

PROBLEMS_ATTR = "_entitykit_problems"
RAW_INPUT_ATTR = "_entitykit_raw_input"


def construct(cls: type, values: Mapping[str, Any]) -> Any:
    """Build an instance of *cls* holding exactly *values*."""
    instance = cls.__new__(cls)
    for name, value in values.items():
        object.__setattr__(instance, name, value)
    return instance


def is_set(instance: object, name: str) -> bool:
    return name in vars(instance)


def field_values(instance: object, names: Iterable[str]) -> dict[str, Any]:
    """The set fields among *names*, in the order given."""
    state = vars(instance)
    return {name: state[name] for name in names if name in state}


def get_problems(instance: object) -> list[Problem]:
    """Problems currently attached to *instance* (empty when none)."""
    return list(vars(instance).get(PROBLEMS_ATTR, ()))


def set_problems(instance: object, problems: Iterable[Problem]) -> None:
    """Replace the attached problem list wholesale."""
    object.__setattr__(instance, PROBLEMS_ATTR, list(problems))


def get_raw_input(instance: object) -> Any:
    """The plain data *instance* was parsed from, or ``None``."""
    return vars(instance).get(RAW_INPUT_ATTR)


def set_raw_input(instance: object, raw_input: Any) -> None:
    object.__setattr__(instance, RAW_INPUT_ATTR, raw_input)
