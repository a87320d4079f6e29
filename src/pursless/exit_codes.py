"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pursless.exceptions.PurslessError` subclass.
CI scripts wrapping ``pursless package`` can inspect the exit code to tell a
compiler failure apart from a broken service file without parsing stderr.

Example::

    $ pursless package -- zip -r build.zip .
    $ echo $?
    9   # EXIT_COMPILE_ERROR -- the PureScript build failed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_FILESYSTEM_ERROR = 8
"""A generated file or directory could not be created, written, or removed."""

EXIT_COMPILE_ERROR = 9
"""The external PureScript compiler exited with a non-zero status."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load, initialise, or execute."""

EXIT_INTERRUPTED = 130
"""The run was interrupted by the user (SIGINT)."""
