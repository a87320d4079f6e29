"""Extract PureScript-backed functions from the service's function table.

A function is PureScript-backed when its definition carries a ``purescript``
field holding a qualified reference such as ``"Api.Users.list"``. This module
turns those entries into :class:`~pursless.models.FunctionDescriptor`
objects, collects the modules they live in, and computes the handler patch
that points each function at the generated adapter.

Nothing here touches the filesystem or mutates its inputs; the plugin applies
the returned patch through :meth:`~pursless.models.ServiceConfig.with_handlers`.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from pursless.models import FunctionDefinition, FunctionDescriptor

ADAPTER_MODULE = "purescript"
"""Module name of the generated adapter, as the host resolves handlers."""


def extract_functions(
    function_table: Mapping[str, FunctionDefinition],
) -> list[FunctionDescriptor]:
    """Build a descriptor for every function that carries a qualified reference.

    Functions without a ``purescript`` field are not written in PureScript
    and are skipped. A reference without a dot yields an empty module path
    rather than an error.

    Args:
        function_table: The service's ``functions`` mapping, in declaration
            order.

    Returns:
        Descriptors in the table's iteration order.

    Example::

        >>> table = {"listUsers": FunctionDefinition(purescript="Api.Users.list")}
        >>> extract_functions(table)[0].module
        'Api.Users'
    """
    functions: list[FunctionDescriptor] = []
    for key, definition in function_table.items():
        qualified_name = definition.purescript
        if not qualified_name:
            continue
        module = ".".join(qualified_name.split(".")[:-1])
        functions.append(
            FunctionDescriptor(name=key, qualified_name=qualified_name, module=module)
        )
    return functions


def compute_module_set(functions: Iterable[FunctionDescriptor]) -> tuple[str, ...]:
    """Return the distinct modules of *functions*, in first-seen order."""
    return tuple(dict.fromkeys(fn.module for fn in functions))


def adapter_handler(name: str) -> str:
    """Return the handler string resolving to the adapter export for *name*."""
    return f"{ADAPTER_MODULE}.{name}"


def handler_patch(functions: Iterable[FunctionDescriptor]) -> dict[str, str]:
    """Map every function key to its adapter handler."""
    return {fn.name: adapter_handler(fn.name) for fn in functions}
