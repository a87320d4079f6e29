"""Service context and lifecycle runner for the plugin hook chain.

This module provides two core components:

* :class:`ServiceContext` -- A mutable dataclass that carries the host object
  graph (service config, service root, CLI options, logger) to every plugin.
  Plugins replace :attr:`ServiceContext.service` rather than mutating the
  models inside it.
* :class:`LifecycleRunner` -- Fires a named lifecycle hook across all loaded
  plugins in registration order, and wraps a packaging action in its
  ``before:`` / ``after:`` hook pair.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional

from pursless.models import ServiceConfig
from pursless.output import OutputManager, get_output

if TYPE_CHECKING:
    from pursless.plugins.base import Plugin

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    """Host object graph threaded through every plugin.

    Attributes:
        service: The current service configuration. Plugins that need to
            retarget handlers install a patched copy here.
        service_path: Absolute path of the service root.
        options: CLI options for the current run (e.g. ``{"function": "hello"}``).
        log: The logging facility plugins report progress through.
    """

    service: ServiceConfig
    service_path: Path
    options: dict[str, Any] = field(default_factory=dict)
    log: OutputManager = field(default_factory=get_output)


class LifecycleRunner:
    """Fires lifecycle hooks across loaded plugins in registration order.

    The runner is created by
    :meth:`~pursless.plugins.manager.PluginManager.get_lifecycle_runner`
    and holds an immutable snapshot of the plugin list at creation time.
    Hooks run strictly one at a time; an exception from any callback stops
    the chain and propagates to the caller.
    """

    def __init__(self, plugins: list[Plugin]) -> None:
        self._plugins = list(plugins)

    def bound_hooks(self) -> list[str]:
        """Return every hook name bound by at least one plugin, first-seen order."""
        names: dict[str, None] = {}
        for plugin in self._plugins:
            for hook_name in plugin.hooks:
                names.setdefault(hook_name, None)
        return list(names)

    async def run_hook(self, hook_name: str) -> int:
        """Run every plugin callback bound to *hook_name*.

        Args:
            hook_name: Full hook name, e.g. ``"before:offline:start:end"``.

        Returns:
            The number of callbacks that ran.
        """
        count = 0
        for plugin in self._plugins:
            callback = plugin.hooks.get(hook_name)
            if callback is None:
                continue
            logger.debug("Running %s for plugin '%s'", hook_name, plugin.name)
            await _maybe_await(callback())
            count += 1
        return count

    async def run_event(
        self,
        event: str,
        action: Optional[Callable[[], Any]] = None,
    ) -> None:
        """Fire ``before:<event>``, run *action*, then fire ``after:<event>``.

        The ``after:`` hooks run even when *action* fails, so artifacts
        generated in ``before:`` never outlive the event. A failure in a
        ``before:`` hook aborts the event without running *action* or the
        ``after:`` hooks.

        Args:
            event: Event name without prefix, e.g.
                ``"deploy:createDeploymentArtifacts"``.
            action: Optional callable standing in for the host's own work
                (the packaging step). Its result is awaited if awaitable.
        """
        await self.run_hook(f"before:{event}")
        try:
            if action is not None:
                await _maybe_await(action())
        finally:
            await self.run_hook(f"after:{event}")


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result
