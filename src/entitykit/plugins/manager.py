"""Plugin discovery, loading, and hook dispatch.

Discovery: entry points (pip-installed) in the ``entitykit.plugins`` group
via pluggy's setuptools entry-point loader.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

import pluggy

from entitykit.domain.registry import REGISTRY, MetadataRegistry
from entitykit.plugins.hookspecs import EntitykitHookSpec
from entitykit.services.dependencies import DEPENDENCIES, DependencyRegistry, Fallback

PROJECT_NAME = "entitykit"
ENTRY_POINT_GROUP = "entitykit.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self, registry: MetadataRegistry | None = None) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(EntitykitHookSpec)
        self._registry = registry if registry is not None else REGISTRY
        self._loaded: bool = False

    def discover_and_load(self) -> list[str]:
        """Load entry-point plugins and let each one register its types.

        Returns a list of loaded plugin names.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        for plugin in self._pm.get_plugins():
            self._register_plugin_entities(plugin, self._name_of(plugin))
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        if self._loaded:
            self._register_plugin_entities(plugin, resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister a plugin instance."""
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching."""
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        """Return all registered plugins."""
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        """Return names of all registered plugins."""
        return [self._name_of(p) for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Dependency fallback
    # ------------------------------------------------------------------

    def dependency_fallback(self) -> Fallback:
        """Fallback resolver that asks plugins via ``resolve_dependency``."""

        async def fallback(token: Any) -> Any:
            result = self._pm.hook.resolve_dependency(token=token)
            if inspect.isawaitable(result):
                result = await result
            return result

        return fallback

    def install_dependency_fallback(self, dependencies: DependencyRegistry | None = None) -> None:
        """Make plugins the fallback of *dependencies* (the process-wide one by default)."""
        target = dependencies if dependencies is not None else DEPENDENCIES
        target.configure(fallback=self.dependency_fallback())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _name_of(self, plugin: object) -> str:
        return self._pm.get_name(plugin) or plugin.__class__.__name__

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue
            if not self._has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            self._pm.unregister(plugin)
            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

    def _register_plugin_entities(self, plugin: object, plugin_name: str) -> None:
        """Run a single plugin's ``register_entities`` hook.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        hook = getattr(plugin, "register_entities", None)
        if hook is None:
            return
        try:
            hook(registry=self._registry)
        except Exception:
            logger.warning(
                "Failed to register entities from plugin %s",
                plugin_name,
                exc_info=True,
            )

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Check whether *cls* has any methods decorated with ``@hookimpl``.

        Pluggy's ``HookimplMarker("entitykit")`` sets an ``entitykit_impl``
        attribute on decorated methods.
        """
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, "entitykit_impl", None):
                return True
        return False
