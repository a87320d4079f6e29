"""Tests for pursless.config -- service file lookup, parsing, precedence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pursless.config import (
    find_service_file,
    load_service_config,
    resolve_purescript_settings,
    resolve_service_path,
)
from pursless.exceptions import ConfigError
from pursless.models import ServiceConfig


# ---------------------------------------------------------------------------
# Service root
# ---------------------------------------------------------------------------


class TestResolveServicePath:
    def test_cli_flag_wins(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        other = tmp_path / "other"
        other.mkdir()
        monkeypatch.setenv("PURSLESS_SERVICE_PATH", str(other))
        assert resolve_service_path(str(tmp_path)) == tmp_path.resolve()

    def test_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PURSLESS_SERVICE_PATH", str(tmp_path))
        assert resolve_service_path() == tmp_path.resolve()

    def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert resolve_service_path() == tmp_path.resolve()

    def test_not_a_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not a directory"):
            resolve_service_path(str(tmp_path / "missing"))


# ---------------------------------------------------------------------------
# Service file
# ---------------------------------------------------------------------------


class TestFindServiceFile:
    def test_prefers_yml(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.json").write_text("{}")
        (tmp_path / "serverless.yml").write_text("service: a\n")
        assert find_service_file(tmp_path).name == "serverless.yml"

    def test_falls_back_to_json(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.json").write_text("{}")
        assert find_service_file(tmp_path).name == "serverless.json"

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="No service file found"):
            find_service_file(tmp_path)


class TestLoadServiceConfig:
    def test_yaml(self, service_dir: Path) -> None:
        service = load_service_config(service_dir)
        assert service.service_name == "users-api"
        assert service.functions["listUsers"].purescript == "Api.Users.list"
        assert service.functions["health"].handler == "health.handler"
        assert service.plugins == ["serverless-purescript", "serverless-offline"]

    def test_unknown_keys_are_kept(self, service_dir: Path) -> None:
        service = load_service_config(service_dir)
        assert service.model_extra["provider"] == {"name": "aws", "runtime": "nodejs18.x"}
        assert service.functions["createOrder"].model_extra == {"memorySize": 256}

    def test_json(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.json").write_text(
            json.dumps({
                "service": {"name": "orders"},
                "functions": {"create": {"purescript": "Orders.create"}},
            })
        )
        service = load_service_config(tmp_path)
        assert service.service_name == "orders"
        assert service.functions["create"].purescript == "Orders.create"

    def test_empty_file(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.yml").write_text("  \n")
        with pytest.raises(ConfigError, match="empty"):
            load_service_config(tmp_path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_service_config(tmp_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.yml").write_text("service: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_service_config(tmp_path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.yml").write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_service_config(tmp_path)

    def test_wrong_shape(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.yml").write_text("functions: [a, b]\n")
        with pytest.raises(ConfigError, match="Invalid service file"):
            load_service_config(tmp_path)

    def test_empty_sections(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.yml").write_text("service: s\nfunctions:\ncustom:\nplugins:\n")
        service = load_service_config(tmp_path)
        assert service.functions == {}
        assert service.custom == {}
        assert service.plugins == []

    def test_plugins_with_modules_key(self, tmp_path: Path) -> None:
        (tmp_path / "serverless.yml").write_text(
            "service: s\nplugins:\n  localPath: ./plugins\n  modules:\n    - serverless-purescript\n"
        )
        assert load_service_config(tmp_path).plugins == ["serverless-purescript"]


# ---------------------------------------------------------------------------
# Settings precedence
# ---------------------------------------------------------------------------


def _service(**custom: object) -> ServiceConfig:
    return ServiceConfig(service="s", custom=custom)


class TestResolvePurescriptSettings:
    def test_defaults(self) -> None:
        settings = resolve_purescript_settings(_service())
        assert settings.debug is False
        assert settings.build_command == "pulp build"
        assert settings.compile_timeout == 300.0

    def test_custom_section(self) -> None:
        settings = resolve_purescript_settings(
            _service(
                purescriptDebug=True,
                purescriptBuildCommand="spago build",
                purescriptCompileTimeout=60,
            )
        )
        assert settings.debug is True
        assert settings.build_command == "spago build"
        assert settings.compile_timeout == 60.0

    def test_null_debug_means_default(self) -> None:
        assert resolve_purescript_settings(_service(purescriptDebug=None)).debug is False

    def test_unrelated_custom_keys_are_ignored(self) -> None:
        settings = resolve_purescript_settings(_service(webpack={"x": 1}))
        assert settings.build_command == "pulp build"

    def test_env_overrides_custom(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PURSLESS_DEBUG", "yes")
        monkeypatch.setenv("PURSLESS_BUILD_COMMAND", "spago build")
        settings = resolve_purescript_settings(
            _service(purescriptDebug=False, purescriptBuildCommand="pulp build")
        )
        assert settings.debug is True
        assert settings.build_command == "spago build"

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PURSLESS_DEBUG", "1")
        monkeypatch.setenv("PURSLESS_BUILD_COMMAND", "spago build")
        settings = resolve_purescript_settings(
            _service(), cli_debug=False, cli_build_command="make purs"
        )
        assert settings.debug is False
        assert settings.build_command == "make purs"

    def test_invalid_env_debug(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PURSLESS_DEBUG", "maybe")
        with pytest.raises(ConfigError, match="PURSLESS_DEBUG"):
            resolve_purescript_settings(_service())

    def test_invalid_custom_value(self) -> None:
        with pytest.raises(ConfigError, match="Invalid PureScript settings"):
            resolve_purescript_settings(_service(purescriptCompileTimeout="soon"))
