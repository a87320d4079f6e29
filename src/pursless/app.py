"""Typer application and CLI entry point for pursless.

pursless plays the host framework's part for the lifecycle events the
PureScript plugin binds to. Every command loads the service file, discovers
plugins, and fires hooks through a
:class:`~pursless.plugins.hooks.LifecycleRunner`:

* ``package`` -- ``before:`` packaging, the packaging command, ``after:``
  packaging.
* ``compile`` / ``clean`` -- only the ``before:`` / ``after:`` half, for
  inspecting the generated adapter by hand.
* ``offline`` -- the dev-server hooks around a long-running command.
* ``functions`` -- list the PureScript-backed functions without building.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.

See Also:
    :mod:`pursless.config`: Service file and settings resolution.
    :mod:`pursless.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any, Awaitable, Callable, Optional

import typer

from pursless import __version__
from pursless.exceptions import CompileError, InvalidUsageError, PurslessError
from pursless.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="pursless",
    help="Compile PureScript Lambda handlers around serverless packaging.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

DEPLOY_EVENT = "deploy:createDeploymentArtifacts"
FUNCTION_DEPLOY_EVENT = "deploy:function:packageFunction"
OFFLINE_START_HOOK = "before:offline:start:init"
OFFLINE_END_HOOK = "before:offline:start:end"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pursless {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~pursless.output.OutputManager` from
    CLI flags. With ``--verbose`` the standard :mod:`logging` tree is also
    routed to stderr through Rich so plugin-manager diagnostics show up.
    """
    from pursless.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    )

    if verbose:
        from rich.console import Console
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# ------------------------------------------------------------------ #
# Shared plumbing
# ------------------------------------------------------------------ #


_SERVICE_PATH_OPTION = typer.Option(
    None, "--service-path", "-s",
    help="Service root holding serverless.yml. [default: current directory]",
)
_DEBUG_OPTION = typer.Option(
    None, "--debug/--no-debug",
    help="Log incoming payloads from generated handlers (overrides custom.purescriptDebug).",
)
_BUILD_COMMAND_OPTION = typer.Option(
    None, "--build-command",
    help="PureScript build command (overrides custom.purescriptBuildCommand).",
)


def _load_context(
    service_path: Optional[str],
    options: dict[str, Any],
):  # noqa: ANN202
    """Load the service and build a :class:`ServiceContext` for it."""
    from pursless.config import load_service_config, resolve_service_path
    from pursless.output import get_output
    from pursless.plugins import ServiceContext

    path = resolve_service_path(service_path)
    service = load_service_config(path)
    return ServiceContext(
        service=service,
        service_path=path,
        options={key: value for key, value in options.items() if value is not None},
        log=get_output(),
    )


def _run_lifecycle(
    service_path: Optional[str],
    options: dict[str, Any],
    body: Callable[[Any, Any], Awaitable[None]],
) -> None:
    """Load the service and plugins, then run *body* on a fresh event loop.

    *body* receives the :class:`LifecycleRunner` and the
    :class:`ServiceContext`. Plugins are torn down inside the loop so any
    signal handlers they installed are restored before it closes.

    Raises:
        typer.Exit: With the error's exit code on any :class:`PurslessError`.
    """
    from pursless.output import debug, error, suggest
    from pursless.plugins import PluginManager

    async def _main() -> None:
        context = _load_context(service_path, options)
        manager = PluginManager()
        try:
            manager.discover(context)
            for meta in manager.list_plugins():
                debug(f"Plugin {meta['name']} v{meta['version']}: {meta['description']}")
            runner = manager.get_lifecycle_runner()
            debug(f"Bound hooks: {', '.join(runner.bound_hooks()) or '(none)'}")
            await body(runner, context)
        finally:
            manager.teardown()

    try:
        asyncio.run(_main())
    except PurslessError as exc:
        error(str(exc))
        if isinstance(exc, CompileError) and exc.returncode == 127:
            suggest("Install the PureScript toolchain or set custom.purescriptBuildCommand.")
        raise typer.Exit(code=exc.exit_code)


async def _run_command(command: list[str], cwd: Any) -> None:
    """Run *command* in *cwd* with inherited stdio and wait for it.

    Raises:
        PurslessError: If the command cannot be started or exits non-zero.
    """
    from pursless.output import info

    info(f"Running: {' '.join(command)}")
    try:
        proc = await asyncio.create_subprocess_exec(*command, cwd=str(cwd))
    except FileNotFoundError as exc:
        raise PurslessError(f"Command not found: {command[0]}") from exc

    try:
        returncode = await proc.wait()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.terminate()
            await proc.wait()
        raise

    if returncode != 0:
        raise PurslessError(f"Command exited with status {returncode}: {' '.join(command)}")


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("package")
def package_command(
    command: Optional[list[str]] = typer.Argument(
        None, help="Packaging command to run between the build and the cleanup.",
    ),
    function: Optional[str] = typer.Option(
        None, "--function", "-f",
        help="Package a single function (fires the function-deploy hooks).",
    ),
    service_path: Optional[str] = _SERVICE_PATH_OPTION,
    debug_mode: Optional[bool] = _DEBUG_OPTION,
    build_command: Optional[str] = _BUILD_COMMAND_OPTION,
) -> None:
    """Build the PureScript adapter, run the packaging command, then clean up.

    The adapter is removed even when the packaging command fails.

    Example::

        pursless package -- zip -r build.zip .
        pursless package --function listUsers -- ./package-one.sh listUsers
    """
    event = FUNCTION_DEPLOY_EVENT if function else DEPLOY_EVENT

    async def _body(runner: Any, context: Any) -> None:
        if function and function not in context.service.functions:
            raise InvalidUsageError(f"Function '{function}' is not declared in the service")
        action = (lambda: _run_command(command, context.service_path)) if command else None
        await runner.run_event(event, action)

    _run_lifecycle(
        service_path,
        {"function": function, "debug": debug_mode, "build_command": build_command},
        _body,
    )

    from pursless.output import success

    success("Packaging complete.")


@app.command("compile")
def compile_command(
    service_path: Optional[str] = _SERVICE_PATH_OPTION,
    debug_mode: Optional[bool] = _DEBUG_OPTION,
    build_command: Optional[str] = _BUILD_COMMAND_OPTION,
) -> None:
    """Build the PureScript adapter and leave it in place.

    Example::

        pursless compile --debug
    """

    async def _body(runner: Any, context: Any) -> None:
        await runner.run_hook(f"before:{DEPLOY_EVENT}")

    _run_lifecycle(
        service_path, {"debug": debug_mode, "build_command": build_command}, _body
    )

    from pursless.output import suggest

    suggest("Remove the generated adapter with: pursless clean")


@app.command("clean")
def clean_command(
    service_path: Optional[str] = _SERVICE_PATH_OPTION,
) -> None:
    """Remove the generated adapter. Succeeds when there is nothing to remove."""

    async def _body(runner: Any, context: Any) -> None:
        await runner.run_hook(f"after:{DEPLOY_EVENT}")

    _run_lifecycle(service_path, {}, _body)


@app.command("offline")
def offline_command(
    command: Optional[list[str]] = typer.Argument(
        None, help="Dev-server command to run until it exits or Ctrl-C.",
    ),
    service_path: Optional[str] = _SERVICE_PATH_OPTION,
    debug_mode: Optional[bool] = _DEBUG_OPTION,
    build_command: Optional[str] = _BUILD_COMMAND_OPTION,
) -> None:
    """Build the adapter, run a dev server, and clean up when it stops.

    Ctrl-C removes the adapter immediately, even mid-build.

    Example::

        pursless offline -- node local-server.js
    """

    async def _body(runner: Any, context: Any) -> None:
        await runner.run_hook(OFFLINE_START_HOOK)
        try:
            if command:
                await _run_command(command, context.service_path)
        finally:
            await runner.run_hook(OFFLINE_END_HOOK)

    _run_lifecycle(
        service_path, {"debug": debug_mode, "build_command": build_command}, _body
    )


@app.command("functions")
def functions_command(
    service_path: Optional[str] = _SERVICE_PATH_OPTION,
) -> None:
    """List PureScript-backed functions and the handler each will be given.

    Example::

        pursless functions --json
    """
    from pursless.output import error, get_output
    from pursless.plugins.purescript.extractor import adapter_handler, extract_functions

    try:
        context = _load_context(service_path, {})
    except PurslessError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    functions = extract_functions(context.service.functions)
    rows = [
        [fn.name, fn.qualified_name, fn.module or "-", adapter_handler(fn.name)]
        for fn in functions
    ]
    title = context.service.service_name or context.service_path.name
    get_output().print_table(
        ["Function", "PureScript", "Module", "Handler"],
        rows,
        title=f"{title} -- PureScript functions ({len(rows)})",
    )


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``pursless`` console script.

    Unhandled :class:`~pursless.exceptions.PurslessError` instances cause a
    clean exit with the error's ``exit_code``; anything else is reported
    as an unexpected error.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from pursless.output import error

        if isinstance(exc, PurslessError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        error("Re-run with --verbose for details.")
        sys.exit(EXIT_GENERIC_FAILURE)
