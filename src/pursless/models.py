"""Canonical Pydantic models shared across all pursless modules.

The models fall into two groups:

**Service models** -- deserialised from the service file
(``serverless.yml`` / ``serverless.json``):
    :class:`FunctionDefinition`, :class:`ServiceConfig`, and
    :class:`PurescriptSettings`.

**Build models** -- produced by the function extractor and consumed by the
build orchestrator:
    :class:`FunctionDescriptor` and :class:`BuildConfig`.

Service models use ``extra="allow"`` so that keys belonging to the host
framework or to other plugins survive a load/patch cycle untouched. Build
models are frozen: they are created fresh for every compile and never
mutated afterwards.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Service config ---


class FunctionDefinition(BaseModel):
    """One entry of the service's ``functions`` table.

    Only two keys matter to the PureScript plugin: ``handler`` (the
    invocation target the host resolves by string lookup) and
    ``purescript`` (the qualified reference to a compiled value, e.g.
    ``"Api.Users.list"``). Everything else (events, memory size, timeout)
    is preserved in ``model_extra``.

    Example::

        FunctionDefinition(purescript="Api.Users.list")
    """

    model_config = ConfigDict(extra="allow")

    handler: Optional[str] = Field(
        default=None, description="Invocation target, e.g. 'purescript.listUsers'"
    )
    purescript: Optional[str] = Field(
        default=None, description="Qualified reference: Module.Path.value"
    )


class ServiceConfig(BaseModel):
    """The parsed service file.

    ``service`` may be either a bare name or a mapping with a ``name`` key,
    matching both shapes accepted by the host framework; use
    :attr:`service_name` to read it.
    """

    model_config = ConfigDict(extra="allow")

    service: Any = Field(default="", description="Service name or {name: ...} mapping")
    functions: dict[str, FunctionDefinition] = Field(default_factory=dict)
    custom: dict[str, Any] = Field(default_factory=dict)
    plugins: list[str] = Field(default_factory=list)

    @field_validator("functions", "custom", mode="before")
    @classmethod
    def _none_as_empty_dict(cls, value: Any) -> Any:
        # An empty YAML section ("functions:") parses as None.
        return {} if value is None else value

    @field_validator("plugins", mode="before")
    @classmethod
    def _normalise_plugins(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return value.get("modules") or []
        return value

    @property
    def service_name(self) -> str:
        """The service name regardless of which shape the file used."""
        if isinstance(self.service, dict):
            return str(self.service.get("name", ""))
        return str(self.service or "")

    def with_handlers(self, patch: Mapping[str, str]) -> ServiceConfig:
        """Return a copy of this config with the given handlers applied.

        Args:
            patch: Mapping of function key to its new ``handler`` value.
                Keys that do not name a declared function are ignored.

        Returns:
            A new :class:`ServiceConfig`. ``self`` is left untouched.
        """
        functions = {
            key: (
                fn.model_copy(update={"handler": patch[key]}) if key in patch else fn
            )
            for key, fn in self.functions.items()
        }
        return self.model_copy(update={"functions": functions})


class PurescriptSettings(BaseModel):
    """PureScript plugin settings read from the service's ``custom`` section.

    Keys use the host framework's camelCase spelling in the file and
    snake_case in Python; both are accepted on construction.
    """

    model_config = ConfigDict(populate_by_name=True)

    debug: bool = Field(
        default=False,
        alias="purescriptDebug",
        description="Log every incoming payload from the generated wrappers",
    )
    build_command: str = Field(
        default="pulp build",
        alias="purescriptBuildCommand",
        description="Compiler command; '-I <gen dir>' is appended",
    )
    compile_timeout: float = Field(
        default=300.0,
        alias="purescriptCompileTimeout",
        description="Seconds to wait for the compiler before giving up",
    )


# --- Build models ---


class FunctionDescriptor(BaseModel):
    """A host function backed by a compiled PureScript value.

    Attributes:
        name: The host function key. The generated adapter exports a
            wrapper under this name.
        qualified_name: Fully-qualified reference, e.g. ``"Foo.Bar.baz"``.
        module: ``qualified_name`` without its last segment
            (``"Foo.Bar"``). Empty when the reference has no dot.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    qualified_name: str
    module: str


class BuildConfig(BaseModel):
    """Parameter bundle for a single compile run."""

    model_config = ConfigDict(frozen=True)

    modules: tuple[str, ...] = ()
    functions: tuple[FunctionDescriptor, ...] = ()
    debug_mode: bool = False
