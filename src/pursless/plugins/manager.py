"""Plugin manager -- discovery, loading, and lifecycle management.

This module contains :class:`PluginManager`, the central coordinator for the
plugin system. It discovers plugins registered as Python entry points,
filters them against the service file's ``plugins`` list, and provides a
lazily-cached :class:`~pursless.plugins.hooks.LifecycleRunner` for firing
lifecycle hooks across all loaded plugins.

The entry-point group used for discovery is ``pursless.plugins``.
Third-party packages register plugins by declaring an entry point under this
group in their ``pyproject.toml``::

    [project.entry-points."pursless.plugins"]
    my-plugin = "my_package.plugin:MyPlugin"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Optional

from pursless.exceptions import PluginError
from pursless.plugins.base import Plugin
from pursless.plugins.hooks import LifecycleRunner, ServiceContext

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "pursless.plugins"
"""The entry-point group name used for plugin discovery."""


class PluginManager:
    """Discovers, loads, and manages the lifecycle of pursless plugins.

    The service file's ``plugins`` list acts as an allowlist, the same way
    the host framework treats it: when it is non-empty only the entry points
    it names are loaded; otherwise every discovered plugin is loaded. Names
    in the list with no matching entry point (plugins implemented in the
    host's own ecosystem) are skipped.

    Example:
        Typical usage::

            manager = PluginManager()
            manager.discover(context)
            runner = manager.get_lifecycle_runner()
            await runner.run_event("deploy:createDeploymentArtifacts")
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._runner: Optional[LifecycleRunner] = None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, context: ServiceContext) -> list[str]:
        """Discover and load available plugins via Python entry points.

        Args:
            context: The service context; its ``service.plugins`` list
                controls which plugins are loaded.

        Returns:
            A list of plugin names that were successfully loaded.

        Raises:
            PluginError: If a selected plugin cannot be imported or
                initialised. A broken plugin would leave its hooks unbound,
                so the run is aborted rather than continued without them.
        """
        loaded_names: list[str] = []
        wanted = set(context.service.plugins)

        entry_points = importlib.metadata.entry_points()
        if hasattr(entry_points, "select"):
            eps = entry_points.select(group=ENTRY_POINT_GROUP)
        else:
            eps = entry_points.get(ENTRY_POINT_GROUP, [])  # type: ignore[union-attr]

        for ep in eps:
            name = ep.name
            if wanted and name not in wanted:
                logger.debug("Plugin '%s' not listed in service plugins, skipping", name)
                continue

            try:
                plugin_cls = ep.load()
                plugin: Plugin = plugin_cls()
            except Exception as exc:
                raise PluginError(f"Failed to load plugin '{name}': {exc}") from exc
            self.load_plugin(name, plugin, context)
            loaded_names.append(name)

        return loaded_names

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_plugin(self, name: str, plugin: Plugin, context: ServiceContext) -> None:
        """Load and initialize a single plugin instance.

        Calls :meth:`~pursless.plugins.base.Plugin.on_init`, registers the
        plugin, and invalidates the cached runner so it picks up the new
        plugin on next access.

        Raises:
            PluginError: If a plugin with the same *name* is already loaded.
        """
        if name in self._plugins:
            raise PluginError(f"Plugin '{name}' is already loaded")

        plugin.on_init(context)
        self._plugins[name] = plugin
        self._runner = None
        logger.info("Loaded plugin '%s' v%s", name, plugin.version)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def list_plugins(self) -> list[dict[str, str]]:
        """List all loaded plugins with their metadata, for ``--verbose``."""
        return [
            {
                "name": plugin.name,
                "version": plugin.version,
                "description": plugin.description,
            }
            for plugin in self._plugins.values()
        ]

    # ------------------------------------------------------------------
    # Lifecycle runner
    # ------------------------------------------------------------------

    def get_lifecycle_runner(self) -> LifecycleRunner:
        """Return the cached :class:`LifecycleRunner` for all loaded plugins."""
        if self._runner is None:
            self._runner = LifecycleRunner(list(self._plugins.values()))
        return self._runner

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def teardown(self) -> None:
        """Tear down all loaded plugins and reset internal state.

        Exceptions from individual plugins are logged and swallowed so that
        one plugin's failure does not prevent the others from tearing down.
        """
        for name, plugin in self._plugins.items():
            try:
                plugin.teardown()
            except Exception as exc:
                logger.warning("Error tearing down plugin '%s': %s", name, exc)
        self._plugins.clear()
        self._runner = None
