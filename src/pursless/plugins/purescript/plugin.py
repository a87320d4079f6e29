"""PureScript plugin -- compile PureScript Lambda handlers around packaging.

The plugin binds its callables to the host framework's lifecycle hooks:

* ``before:`` packaging (whole service or single function) -- extract the
  PureScript-backed functions, retarget their handlers at the generated
  adapter, and build it.
* ``after:`` packaging -- delete the adapter again.
* ``before:offline:start`` / ``before:offline:start:init`` -- install a
  SIGINT handler that forces cleanup, then build. A dev server is stopped
  with Ctrl-C rather than reaching an ``after:`` hook.
* ``before:offline:start:end`` -- delete the adapter.

Settings come from the service's ``custom`` section, overridden by the
environment and by the CLI options carried on the
:class:`~pursless.plugins.hooks.ServiceContext` (see
:func:`~pursless.config.resolve_purescript_settings`).
"""

from __future__ import annotations

import signal
import sys
import threading
from typing import Any, Mapping, Optional

from pursless import __version__
from pursless.config import resolve_purescript_settings
from pursless.models import BuildConfig, PurescriptSettings
from pursless.plugins.base import HookCallback, Plugin
from pursless.plugins.purescript.builder import BuildOrchestrator
from pursless.plugins.purescript.extractor import (
    compute_module_set,
    extract_functions,
    handler_patch,
)


class PurescriptPlugin(Plugin):
    """Builds ``purescript.js`` before packaging and removes it afterwards."""

    def __init__(self) -> None:
        super().__init__()
        self._settings: Optional[PurescriptSettings] = None
        self._builder: Optional[BuildOrchestrator] = None
        self._previous_sigint: Any = None
        self._sigint_installed = False

    @property
    def name(self) -> str:
        return "serverless-purescript"

    @property
    def version(self) -> str:
        return __version__

    @property
    def description(self) -> str:
        return "Compile PureScript Lambda handlers during packaging"

    @property
    def hooks(self) -> Mapping[str, HookCallback]:
        return {
            # Normal deploy.
            "before:deploy:createDeploymentArtifacts": self.compile,
            "after:deploy:createDeploymentArtifacts": self.cleanup,
            # Single-function deploy.
            "before:deploy:function:packageFunction": self.compile,
            "after:deploy:function:packageFunction": self.cleanup,
            # Dev server.
            "before:offline:start": self.offline_compile,
            "before:offline:start:init": self.offline_compile,
            "before:offline:start:end": self.cleanup,
        }

    @property
    def settings(self) -> PurescriptSettings:
        """Plugin settings, resolved on first use."""
        if self._settings is None:
            ctx = self.context
            self._settings = resolve_purescript_settings(
                ctx.service,
                cli_debug=ctx.options.get("debug"),
                cli_build_command=ctx.options.get("build_command"),
            )
        return self._settings

    @property
    def builder(self) -> BuildOrchestrator:
        """The orchestrator for this service, created on first use."""
        if self._builder is None:
            self._builder = BuildOrchestrator(
                self.context.service_path,
                self.context.log,
                build_command=self.settings.build_command,
                compile_timeout=self.settings.compile_timeout,
            )
        return self._builder

    # ------------------------------------------------------------------ #
    # Hooks
    # ------------------------------------------------------------------ #

    async def compile(self) -> None:
        """Build the adapter for every PureScript-backed function.

        Does nothing when no function carries a ``purescript`` reference.
        Otherwise the context's service config is replaced with one whose
        matched handlers point at ``purescript.<function key>`` before the
        build starts.
        """
        ctx = self.context
        functions = extract_functions(ctx.service.functions)
        if not functions:
            ctx.log.debug("No PureScript functions declared; skipping build.")
            return

        ctx.service = ctx.service.with_handlers(handler_patch(functions))

        config = BuildConfig(
            modules=compute_module_set(functions),
            functions=tuple(functions),
            debug_mode=self.settings.debug,
        )
        await self.builder.compile(config)

    async def cleanup(self) -> None:
        """Delete the adapter; a missing file counts as success.

        Settings are not resolved here, so a bad ``custom`` value or
        environment variable cannot keep a stale adapter on disk.
        """
        builder = self._builder
        if builder is None:
            builder = BuildOrchestrator(self.context.service_path, self.context.log)
        await builder.cleanup()

    async def offline_compile(self) -> None:
        """Install the interrupt handler, then :meth:`compile`."""
        self._install_interrupt_handler()
        await self.compile()

    def teardown(self) -> None:
        """Restore the SIGINT handler replaced by :meth:`offline_compile`."""
        if self._sigint_installed:
            previous = self._previous_sigint
            signal.signal(signal.SIGINT, signal.SIG_DFL if previous is None else previous)
            self._sigint_installed = False
            self._previous_sigint = None

    # ------------------------------------------------------------------ #
    # Interrupt handling
    # ------------------------------------------------------------------ #

    def _install_interrupt_handler(self) -> None:
        if self._sigint_installed:
            return
        if threading.current_thread() is not threading.main_thread():
            self.context.log.debug("Not on the main thread; SIGINT cleanup not installed.")
            return

        builder = self.builder
        previous = signal.getsignal(signal.SIGINT)

        def _on_interrupt(signum: int, frame: Any) -> None:  # noqa: ANN401
            builder.cancel()
            # Bypass the Rich console; it may be mid-write when the signal lands.
            builder.remove_adapter(warn=_signal_safe_warning)
            if callable(previous):
                previous(signum, frame)
            elif previous != signal.SIG_IGN:
                raise KeyboardInterrupt

        signal.signal(signal.SIGINT, _on_interrupt)
        self._previous_sigint = previous
        self._sigint_installed = True


def _signal_safe_warning(message: str) -> None:
    sys.stderr.write(f"Warning: {message}\n")
    sys.stderr.flush()
