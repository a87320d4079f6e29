"""Build orchestration -- render glue source, run the compiler, write the adapter.

A compile run is a strict sequence:

1. Create ``<service-root>/.serverless/purescript/gen``.
2. Render ``handlers.purs.j2`` into ``gen/handlers.purs``: one import per
   module, one ``exposeLambda`` binding per function.
3. Run the PureScript build command with ``-I <gen dir>`` from the service
   root and wait for it.
4. Render ``purescript.js.j2`` into ``<service-root>/purescript.js``: one
   exported wrapper per function, reordering the Lambda arguments into the
   compiled calling convention.

:meth:`BuildOrchestrator.cleanup` removes the adapter again and is safe to
call any number of times. :meth:`BuildOrchestrator.cancel` asks an in-flight
compile to stop before its next step.

Templates are rendered with Jinja2 from ``plugins/purescript/templates/``.
"""

from __future__ import annotations

import asyncio
import shlex
from pathlib import Path
from typing import Callable, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from pursless.exceptions import BuildCancelled, CompileError, ConfigError, FilesystemError
from pursless.models import BuildConfig
from pursless.output import OutputManager


TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``plugins/purescript/templates/``)."""

WORK_DIR = Path(".serverless") / "purescript"
"""Scratch directory for compiler input, relative to the service root."""

SOURCE_FILENAME = "handlers.purs"
ADAPTER_FILENAME = "purescript.js"

_COMPILER_NOT_FOUND = 127
_STDERR_TAIL_LINES = 20


# ------------------------------------------------------------------ #
# Rendering
# ------------------------------------------------------------------ #


def _create_jinja_env() -> Environment:
    """Create the Jinja2 environment for the generated-source templates.

    Autoescape is off for both templates (PureScript and JavaScript, not
    HTML). Block trimming keeps the generated files free of blank lines left
    behind by ``{% for %}`` tags.
    """
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("purs.j2", "js.j2")),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def render_source(config: BuildConfig) -> str:
    """Render the compiler-input module for *config*."""
    template = _create_jinja_env().get_template(f"{SOURCE_FILENAME}.j2")
    return template.render(modules=config.modules, functions=config.functions)


def render_adapter(config: BuildConfig) -> str:
    """Render the JavaScript adapter exporting one wrapper per function."""
    template = _create_jinja_env().get_template(f"{ADAPTER_FILENAME}.j2")
    return template.render(functions=config.functions, debug_mode=config.debug_mode)


# ------------------------------------------------------------------ #
# Orchestration
# ------------------------------------------------------------------ #


class BuildOrchestrator:
    """Generates, compiles and removes the PureScript entrypoints of one service.

    Args:
        service_path: Absolute path of the service root.
        log: Logging facility for progress lines and compiler output.
        build_command: Compiler command line; ``-I <gen dir>`` is appended.
        compile_timeout: Seconds to wait for the compiler.

    Example::

        builder = BuildOrchestrator(root, get_output())
        await builder.compile(BuildConfig(modules=("Api",), functions=(fn,)))
        await builder.cleanup()
    """

    def __init__(
        self,
        service_path: Path,
        log: OutputManager,
        build_command: str = "pulp build",
        compile_timeout: float = 300.0,
    ) -> None:
        self._service_path = Path(service_path)
        self._log = log
        self._build_command = build_command
        self._compile_timeout = compile_timeout
        self._cancelled = False

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #

    @property
    def work_dir(self) -> Path:
        return self._service_path / WORK_DIR

    @property
    def gen_dir(self) -> Path:
        return self.work_dir / "gen"

    @property
    def source_path(self) -> Path:
        return self.gen_dir / SOURCE_FILENAME

    @property
    def adapter_path(self) -> Path:
        return self._service_path / ADAPTER_FILENAME

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def cancel(self) -> None:
        """Ask an in-flight :meth:`compile` to stop before its next step.

        Safe to call from a signal handler.
        """
        self._cancelled = True

    async def compile(self, config: BuildConfig) -> Path:
        """Generate the entrypoints for *config* and compile them.

        Returns:
            The path of the written adapter file.

        Raises:
            FilesystemError: If a directory or file cannot be written.
            CompileError: If the compiler fails, is missing, or times out.
                The adapter is not written in that case.
            BuildCancelled: If :meth:`cancel` was called mid-run.
        """
        self._cancelled = False

        await asyncio.to_thread(self._ensure_work_dirs)
        self._check_cancelled()

        self._log.info("Building entrypoints.")
        await asyncio.to_thread(_write_text, self.source_path, render_source(config))
        self._check_cancelled()

        self._log.info("Compiling Purescript.")
        await self._run_compiler()
        self._check_cancelled()

        self._log.info("Writing purescript entrypoints file.")
        await asyncio.to_thread(_write_text, self.adapter_path, render_adapter(config))

        self._log.success("PureScript built.")
        return self.adapter_path

    async def cleanup(self) -> bool:
        """Delete the adapter file.

        Returns:
            ``True`` if a file was removed, ``False`` if there was nothing
            to remove or removal failed (reported as a warning).
        """
        self._log.info("Cleaning up purescript.")
        return await asyncio.to_thread(self.remove_adapter)

    def remove_adapter(self, warn: Optional[Callable[[str], None]] = None) -> bool:
        """Synchronous core of :meth:`cleanup`, usable from a signal handler.

        Args:
            warn: Where to report a failed removal. Defaults to the log's
                ``warning``; signal handlers pass a plain stderr writer.
        """
        try:
            self.adapter_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            (warn or self._log.warning)(f"Could not remove {self.adapter_path}: {exc}")
            return False
        return True

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise BuildCancelled("PureScript build cancelled.")

    def _ensure_work_dirs(self) -> None:
        try:
            self.gen_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot create working directory {self.gen_dir}: {exc}"
            ) from exc

    def _compiler_argv(self) -> list[str]:
        argv = shlex.split(self._build_command)
        if not argv:
            raise ConfigError("PureScript build command is empty.")
        return [*argv, "-I", str(self.gen_dir)]

    async def _run_compiler(self) -> None:
        """Run the build command from the service root and wait for it."""
        argv = self._compiler_argv()
        self._log.debug(f"Running: {shlex.join(argv)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(self._service_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            self._log.error(f"PureScript compiler not found: {argv[0]}")
            raise CompileError(
                f"Compiler not found: {argv[0]}",
                stderr=str(exc),
                returncode=_COMPILER_NOT_FOUND,
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._compile_timeout
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            self._log.error(
                f"PureScript compilation timed out after {self._compile_timeout:g}s."
            )
            raise CompileError(
                f"Compiler timed out after {self._compile_timeout:g} seconds"
            ) from None

        out_text = stdout.decode("utf-8", errors="replace")
        err_text = stderr.decode("utf-8", errors="replace")
        for line in out_text.splitlines():
            self._log.debug(line)

        if proc.returncode != 0:
            self._log.error("PureScript compilation failed:")
            for line in err_text.splitlines()[-_STDERR_TAIL_LINES:]:
                self._log.error(f"  {line}")
            raise CompileError(
                f"Compiler exited with status {proc.returncode}",
                stderr=err_text,
                returncode=proc.returncode,
            )


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Cannot write {path}: {exc}") from exc
