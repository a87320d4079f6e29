"""Shared test fixtures for pursless.

Provides reusable fixtures for writing service directories, building service
contexts, faking the PureScript compiler, and managing output state. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import shlex
import sys
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from pursless.models import ServiceConfig
from pursless.output import OutputFormat, OutputManager, reset_output, set_output
from pursless.plugins.hooks import ServiceContext


SAMPLE_SERVICE: dict[str, Any] = {
    "service": "users-api",
    "provider": {"name": "aws", "runtime": "nodejs18.x"},
    "plugins": ["serverless-purescript", "serverless-offline"],
    "custom": {"purescriptDebug": False},
    "functions": {
        "listUsers": {
            "purescript": "Api.Users.list",
            "events": [{"http": {"path": "users", "method": "get"}}],
        },
        "getUser": {"purescript": "Api.Users.get"},
        "health": {"handler": "health.handler"},
        "createOrder": {"purescript": "Api.Orders.create", "memorySize": 256},
    },
}


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PURSLESS_* variables from the developer's shell out of tests."""
    for var in ["PURSLESS_DEBUG", "PURSLESS_BUILD_COMMAND", "PURSLESS_SERVICE_PATH"]:
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless OutputManager (diagnostics visible)."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def service_dir(tmp_path: Path) -> Path:
    """A service root holding ``serverless.yml`` built from SAMPLE_SERVICE."""
    root = tmp_path / "service"
    root.mkdir()
    (root / "serverless.yml").write_text(yaml.safe_dump(SAMPLE_SERVICE, sort_keys=False))
    return root


@pytest.fixture
def make_context(
    service_dir: Path, quiet_output: OutputManager
) -> Callable[..., ServiceContext]:
    """Factory for a :class:`ServiceContext` over ``service_dir``.

    Keyword arguments override the service dict (``functions=...``,
    ``custom=...``); ``options`` sets the CLI options.
    """

    def _make(options: dict[str, Any] | None = None, **overrides: Any) -> ServiceContext:
        data = {**SAMPLE_SERVICE, **overrides}
        return ServiceContext(
            service=ServiceConfig.model_validate(data),
            service_path=service_dir,
            options=options or {},
            log=quiet_output,
        )

    return _make


# ---------------------------------------------------------------------------
# Fake compiler
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_compiler(tmp_path: Path) -> Callable[..., str]:
    """Factory returning a build command that stands in for ``pulp build``.

    The fake compiler records its working directory and arguments to
    ``tmp_path / "compiler-calls.txt"`` (one call per line), writes
    *stderr*, sleeps *sleep* seconds and exits with *exit_code*.

    Returns:
        A shell-quoted command string suitable for ``purescriptBuildCommand``.
    """

    def _make(exit_code: int = 0, stderr: str = "", sleep: float = 0.0) -> str:
        script = tmp_path / f"fake_pulp_{exit_code}_{abs(hash((stderr, sleep)))}.py"
        record = tmp_path / "compiler-calls.txt"
        script.write_text(
            textwrap.dedent(
                f"""\
                import os
                import sys
                import time

                with open({str(record)!r}, "a", encoding="utf-8") as fh:
                    fh.write(os.getcwd() + "\\t" + "\\t".join(sys.argv[1:]) + "\\n")
                time.sleep({sleep!r})
                sys.stderr.write({stderr!r})
                sys.exit({exit_code!r})
                """
            )
        )
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"

    return _make


@pytest.fixture
def compiler_calls(tmp_path: Path) -> Callable[[], list[list[str]]]:
    """Read back the calls recorded by :func:`fake_compiler`.

    Each call is ``[cwd, *args]``.
    """

    def _read() -> list[list[str]]:
        record = tmp_path / "compiler-calls.txt"
        if not record.is_file():
            return []
        return [line.split("\t") for line in record.read_text().splitlines()]

    return _read
