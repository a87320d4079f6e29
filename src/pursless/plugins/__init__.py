"""Plugin system for pursless -- discovery, loading, and lifecycle hooks.

Plugins bind callables to named lifecycle hooks of the host deployment
framework. Third-party packages register plugins by declaring an entry point
in the ``pursless.plugins`` group. At runtime, :class:`PluginManager`
discovers and loads those entry points, and the :class:`LifecycleRunner`
fires hooks across all active plugins.

Key classes:

* :class:`Plugin` -- Abstract base class that all plugins must extend.
* :class:`PluginManager` -- Discovers, loads, and manages plugin lifecycle.
* :class:`LifecycleRunner` -- Fires hooks across loaded plugins in order.
* :class:`ServiceContext` -- The host object graph handed to every plugin.

Example:
    Typical usage from the CLI::

        from pursless.plugins import PluginManager, ServiceContext

        manager = PluginManager()
        manager.discover(ServiceContext(service=config, service_path=root))
        runner = manager.get_lifecycle_runner()
        asyncio.run(runner.run_event("deploy:createDeploymentArtifacts"))
"""

from pursless.plugins.base import Plugin
from pursless.plugins.hooks import LifecycleRunner, ServiceContext
from pursless.plugins.manager import PluginManager

__all__ = ["Plugin", "LifecycleRunner", "ServiceContext", "PluginManager"]
