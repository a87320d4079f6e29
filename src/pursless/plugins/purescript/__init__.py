"""PureScript plugin -- build Lambda entrypoints from PureScript modules.

Functions in the service file opt in with a ``purescript`` key holding a
qualified reference to a compiled value::

    functions:
      listUsers:
        purescript: Api.Users.list

Before packaging, the plugin generates a PureScript module exposing every
referenced value, compiles it, and writes ``purescript.js`` at the service
root with one exported wrapper per function. Each function's ``handler`` is
retargeted to ``purescript.<function key>``. After packaging the adapter is
removed again.

The main export is :class:`PurescriptPlugin`, registered under the
``pursless.plugins`` entry-point group as ``serverless-purescript``.
"""

from pursless.plugins.purescript.plugin import PurescriptPlugin

__all__ = ["PurescriptPlugin"]
