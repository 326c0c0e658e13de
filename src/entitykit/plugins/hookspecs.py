"""Pluggy hook specifications for entitykit extensions.

Two hooks: one setup-time hook lets plugins declare types into the metadata
registry, one resolution hook lets plugins act as the dependency fallback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from entitykit.domain.registry import MetadataRegistry

hookspec = pluggy.HookspecMarker("entitykit")
hookimpl = pluggy.HookimplMarker("entitykit")


class EntitykitHookSpec:
    """Hook specifications for the entitykit plugin system."""

    @hookspec
    def register_entities(self, registry: MetadataRegistry) -> None:
        """Register declared types. Called once per plugin at load time."""

    @hookspec(firstresult=True)
    def resolve_dependency(self, token: Any) -> Any:
        """Return a value for *token*, or ``None`` to defer to the next plugin.

        May return an awaitable; it is awaited by the dependency registry.
        """
