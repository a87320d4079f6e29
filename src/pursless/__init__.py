"""pursless -- compile PureScript Lambda handlers around serverless packaging.

Functions declared in a ``serverless.yml`` may point at a compiled PureScript
value instead of a JavaScript handler. pursless generates the glue module
and the JavaScript adapter for those functions before packaging, runs the
PureScript compiler, and removes the adapter once packaging is done.

Typical workflow::

    pursless package -- zip -r build.zip .   # build, package, clean up
    pursless offline -- node dev-server.js   # build, serve, clean up on Ctrl-C

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for the service file and build inputs.
    config: Service file loading and settings precedence.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    plugins: Plugin discovery and lifecycle hooks, plus the PureScript plugin.
"""

__version__ = "0.3.0"
