"""Abstract base class for pursless plugins.

Every plugin must subclass :class:`Plugin` and implement the :attr:`name`
property. A plugin takes part in the host lifecycle by returning a mapping
from lifecycle hook names (e.g. ``"before:deploy:createDeploymentArtifacts"``)
to zero-argument callables from :attr:`Plugin.hooks`. Callables may be plain
functions or coroutine functions; the
:class:`~pursless.plugins.hooks.LifecycleRunner` awaits whatever they return.

Plugins are registered as entry points in the ``pursless.plugins`` group
and discovered at runtime by :class:`~pursless.plugins.manager.PluginManager`.

Example:
    Minimal plugin implementation::

        class TouchPlugin(Plugin):
            @property
            def name(self) -> str:
                return "touch"

            @property
            def hooks(self):
                return {"before:deploy:createDeploymentArtifacts": self.touch}

            def touch(self) -> None:
                (self.context.service_path / "touched").write_text("")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional

from pursless.exceptions import PluginError
from pursless.plugins.hooks import ServiceContext

HookCallback = Callable[[], Any]
"""A lifecycle hook callable: no arguments, result awaited if awaitable."""


class Plugin(ABC):
    """Base class for all pursless plugins.

    The plugin lifecycle is:

    1. Instantiation -- the :class:`PluginManager` calls the no-arg constructor.
    2. :meth:`on_init` -- called once with the :class:`ServiceContext`.
    3. Hook callables -- fired zero or more times by the lifecycle runner.
    4. :meth:`teardown` -- called once during shutdown.
    """

    def __init__(self) -> None:
        self._context: Optional[ServiceContext] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique plugin name used for discovery and logging."""
        ...

    @property
    def version(self) -> str:
        """Return the plugin version string. Defaults to ``"0.1.0"``."""
        return "0.1.0"

    @property
    def description(self) -> str:
        """Return a brief description of what the plugin does."""
        return ""

    @property
    def hooks(self) -> Mapping[str, HookCallback]:
        """Return the lifecycle hooks this plugin binds, keyed by hook name."""
        return {}

    @property
    def context(self) -> ServiceContext:
        """The service context handed over in :meth:`on_init`.

        Raises:
            PluginError: If the plugin has not been initialised yet.
        """
        if self._context is None:
            raise PluginError(f"Plugin '{self.name}' used before on_init()")
        return self._context

    def on_init(self, context: ServiceContext) -> None:
        """Called once when the plugin is loaded by the :class:`PluginManager`.

        Subclasses overriding this must call ``super().on_init(context)``.

        Args:
            context: The host object graph: service config, service root,
                CLI options and the logging facility.
        """
        self._context = context

    def teardown(self) -> None:
        """Called once during shutdown to release plugin resources."""
