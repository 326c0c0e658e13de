"""Extension layer: plugin system via pluggy.

Discovery: entry points (pip-installed) in the ``entitykit.plugins`` group.
INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

from entitykit.config.settings import get_settings
from entitykit.plugins.hookspecs import hookimpl
from entitykit.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl", "setup_plugins"]


def setup_plugins() -> PluginManager:
    """Create a manager, load entry-point plugins when enabled, and install
    plugins as the dependency fallback."""
    manager = PluginManager()
    if get_settings().load_plugins:
        manager.discover_and_load()
    manager.install_dependency_fallback()
    return manager
