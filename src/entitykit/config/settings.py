"""Process-wide settings for the engines.

Priority chain (highest to lowest):
  1. Per-call arguments: ``parse(..., strict=True)``
  2. Init kwargs:        ``get_settings(strict=True)`` on first use
  3. Env vars:           ``ENTITYKIT_*`` prefix
  4. Code defaults:      baked into :class:`EntitySettings`

The resolved object is cached by :func:`get_settings`; call
:func:`reset_settings` after changing the environment (tests do this
between cases).
"""

from __future__ import annotations

import threading
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings

from entitykit.domain.fields import DEFAULT_DISCRIMINATOR_KEY


class EntitySettings(BaseSettings):
    """Engine defaults, read once from the environment.

    Attributes:
        strict: Strict mode used when an operation's ``strict`` is ``None``.
        discriminator_key: Key naming the concrete type of a discriminated
            field whose declaration leaves the key empty.
        verbose: DEBUG-level engine logging in :func:`configure_logging`.
        log_json: JSON-lines log output instead of the console renderer.
        load_plugins: Discover ``entitykit.plugins`` entry points.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ENTITYKIT_",
    }

    strict: bool = False
    discriminator_key: str = Field(default=DEFAULT_DISCRIMINATOR_KEY, min_length=1)
    verbose: bool = False
    log_json: bool = False
    load_plugins: bool = True


_lock = threading.Lock()
_settings: EntitySettings | None = None


def get_settings(**overrides: Any) -> EntitySettings:
    """Return the cached settings, building them on first use.

    *overrides* only apply when the cache is empty.
    """
    global _settings
    with _lock:
        if _settings is None:
            _settings = EntitySettings(**overrides)
        return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next read re-reads the environment."""
    global _settings
    with _lock:
        _settings = None


def resolve_strict(strict: bool | None) -> bool:
    """Per-call *strict*, falling back to the configured default."""
    return get_settings().strict if strict is None else strict


def resolve_discriminator_key(key: str | None) -> str:
    """Per-field discriminator key, falling back to the configured default."""
    return key or get_settings().discriminator_key
