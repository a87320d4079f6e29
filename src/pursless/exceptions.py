"""Exception hierarchy for pursless.

All exceptions inherit from :class:`PurslessError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pursless.exit_codes`.
The top-level error handler in :func:`pursless.app.main` catches
``PurslessError`` and exits with the appropriate code.

Subclass hierarchy::

    PurslessError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 1)
    +-- FilesystemError     (exit 8)
    +-- CompileError        (exit 9)
    +-- PluginError         (exit 10)
    +-- BuildCancelled      (exit 130)
"""

from __future__ import annotations

from typing import Optional

from pursless.exit_codes import (
    EXIT_COMPILE_ERROR,
    EXIT_FILESYSTEM_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_INVALID_USAGE,
    EXIT_PLUGIN_ERROR,
)


class PurslessError(Exception):
    """Base exception for all pursless errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`pursless.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(PurslessError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(PurslessError):
    """Raised when the service file is missing, unreadable, or fails validation."""

    exit_code = EXIT_GENERIC_FAILURE


class FilesystemError(PurslessError):
    """Raised when a generated directory or file cannot be created, written, or deleted.

    A missing adapter file during cleanup is not an error and never raises this.
    """

    exit_code = EXIT_FILESYSTEM_ERROR


class CompileError(PurslessError):
    """Raised when the external PureScript compiler reports failure.

    Args:
        message: Human-readable summary.
        stderr: Captured standard error of the compiler process.
        returncode: The compiler's exit status (``127`` when the binary
            could not be found, ``None`` when the process timed out).
    """

    exit_code = EXIT_COMPILE_ERROR

    def __init__(
        self,
        message: str,
        stderr: str = "",
        returncode: Optional[int] = None,
    ):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class PluginError(PurslessError):
    """Raised when a plugin fails to load, initialise, or register its hooks."""

    exit_code = EXIT_PLUGIN_ERROR


class BuildCancelled(PurslessError):
    """Raised when an interrupt cancels a compile between two of its steps."""

    exit_code = EXIT_INTERRUPTED
