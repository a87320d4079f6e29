"""Service file loading and settings precedence resolution.

This module handles everything pursless reads from disk or the environment
before a lifecycle event fires:

* **Service root** -- :func:`resolve_service_path` picks the directory that
  holds the service file (CLI flag, ``PURSLESS_SERVICE_PATH``, or the
  current directory).
* **Service file** -- :func:`find_service_file` locates ``serverless.yml``,
  ``serverless.yaml`` or ``serverless.json``; :func:`load_service_config`
  parses it (JSON first, then YAML) into a
  :class:`~pursless.models.ServiceConfig`.
* **Plugin settings** -- :func:`resolve_purescript_settings` merges CLI
  flags, environment variables and the service's ``custom`` section into
  :class:`~pursless.models.PurescriptSettings`.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from pursless.exceptions import ConfigError
from pursless.models import PurescriptSettings, ServiceConfig

SERVICE_FILENAMES = ("serverless.yml", "serverless.yaml", "serverless.json")
"""Service file names, in lookup order."""

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


# --- Service root ---


def resolve_service_path(cli_path: Optional[str] = None) -> Path:
    """Resolve the service root directory.

    Precedence (high to low):
        1. ``cli_path`` (the ``--service-path`` flag)
        2. ``PURSLESS_SERVICE_PATH`` environment variable
        3. The current working directory

    Returns:
        The absolute service root.

    Raises:
        ConfigError: If the resolved path is not a directory.
    """
    raw = cli_path or os.environ.get("PURSLESS_SERVICE_PATH") or os.getcwd()
    path = Path(raw).expanduser().resolve()
    if not path.is_dir():
        raise ConfigError(f"Service path is not a directory: {path}")
    return path


def find_service_file(service_path: Path) -> Path:
    """Return the first service file found in *service_path*.

    Raises:
        ConfigError: If none of :data:`SERVICE_FILENAMES` exists.
    """
    for name in SERVICE_FILENAMES:
        candidate = service_path / name
        if candidate.is_file():
            return candidate
    raise ConfigError(
        f"No service file found in {service_path} "
        f"(looked for {', '.join(SERVICE_FILENAMES)})"
    )


def load_service_config(service_path: Path) -> ServiceConfig:
    """Load and validate the service file under *service_path*.

    Returns:
        The deserialised :class:`~pursless.models.ServiceConfig`.

    Raises:
        ConfigError: If the file is missing, empty, cannot be parsed as JSON
            or YAML, or fails Pydantic validation.
    """
    path = find_service_file(service_path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read service file {path}: {exc}") from exc

    if not content.strip():
        raise ConfigError(f"Service file is empty: {path}")

    hint = "json" if path.suffix == ".json" else "yaml"
    data = _parse_content(content, hint=hint, source=path)
    try:
        return ServiceConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid service file {path}: {exc}") from exc


def _parse_content(content: str, hint: str, source: Path) -> dict[str, Any]:
    """Parse *content* as JSON or YAML.

    Tries JSON first unless *hint* is ``"yaml"``, then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise ConfigError(f"Invalid JSON in {source}: {exc}") from exc
        else:
            return _require_mapping(result, source)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        yaml_error = exc
    else:
        return _require_mapping(result, source)

    msg = f"Failed to parse {source} as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise ConfigError(msg)


def _require_mapping(result: Any, source: Path) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise ConfigError(f"Service file {source} must be a mapping (got {kind})")
    return result


# --- Settings precedence ---


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean (got {value!r})")


def resolve_purescript_settings(
    service: ServiceConfig,
    cli_debug: Optional[bool] = None,
    cli_build_command: Optional[str] = None,
) -> PurescriptSettings:
    """Resolve PureScript settings with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_debug``, ``cli_build_command``)
        2. Environment variables (``PURSLESS_DEBUG``,
           ``PURSLESS_BUILD_COMMAND``)
        3. The service's ``custom`` section (``purescriptDebug``,
           ``purescriptBuildCommand``, ``purescriptCompileTimeout``)
        4. Defaults

    Raises:
        ConfigError: If a value has the wrong type.
    """
    known = {
        field.alias for field in PurescriptSettings.model_fields.values() if field.alias
    }
    # 4 + 3. Defaults, then the custom section.
    data = {key: value for key, value in service.custom.items() if key in known}
    if data.get("purescriptDebug") is None:
        data.pop("purescriptDebug", None)

    # 2. Environment.
    env_debug = os.environ.get("PURSLESS_DEBUG")
    if env_debug is not None:
        data["purescriptDebug"] = _parse_bool(env_debug, "PURSLESS_DEBUG")
    env_command = os.environ.get("PURSLESS_BUILD_COMMAND")
    if env_command:
        data["purescriptBuildCommand"] = env_command

    # 1. CLI flags.
    if cli_debug is not None:
        data["purescriptDebug"] = cli_debug
    if cli_build_command:
        data["purescriptBuildCommand"] = cli_build_command

    try:
        return PurescriptSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid PureScript settings: {exc}") from exc
