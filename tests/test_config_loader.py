"""Tests for the config loader module."""

from pathlib import Path

import pytest
import yaml

from sparkproxy.config_loader import (
    _substitute_env_vars,
    load_config,
    resolve_env_path,
)
from sparkproxy.core.upstream import DEFAULT_REQUEST_TIMEOUT, UpstreamSettings
from sparkproxy.main import resolve_server_address


class TestLoadConfig:
    """Tests for loading configuration from YAML files."""

    def test_loads_simple_config(self, tmp_path):
        """Test loading a simple configuration."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"model_list": ["gpt-4o"]}), encoding="utf-8")

        assert load_config(str(path))["model_list"] == ["gpt-4o"]

    def test_raises_error_for_missing_config(self):
        """Test that error is raised for missing config file."""
        with pytest.raises(RuntimeError, match="Config file not found"):
            load_config("/nonexistent/path/config.yaml")

    def test_raises_error_for_non_mapping(self, tmp_path):
        """Test that a YAML list at top level is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(RuntimeError, match="must contain a mapping"):
            load_config(str(path))

    def test_raises_error_for_invalid_yaml(self, tmp_path):
        """Test that a YAML syntax error names the file."""
        path = tmp_path / "config.yaml"
        path.write_text("upstream: [unclosed\n", encoding="utf-8")
        with pytest.raises(RuntimeError, match="not valid YAML"):
            load_config(str(path))

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        """Test that SPARKPROXY_CONFIG is read when no path is given."""
        path = tmp_path / "config_env.yaml"
        path.write_text(yaml.safe_dump({"model_list": ["from-env"]}), encoding="utf-8")
        monkeypatch.setenv("SPARKPROXY_CONFIG", str(path))

        assert load_config()["model_list"] == ["from-env"]

    def test_substitutes_from_paired_env_file(self, tmp_path, monkeypatch):
        """Test that config_X.yaml reads ${VAR} values from .env_X."""
        monkeypatch.delenv("GS_COOKIE", raising=False)
        path = tmp_path / "config_local.yaml"
        path.write_text(
            yaml.safe_dump({"upstream": {"cookies": "${GS_COOKIE}"}}), encoding="utf-8"
        )
        (tmp_path / ".env_local").write_text("GS_COOKIE=session_id=xyz\n", encoding="utf-8")

        config = load_config(str(path))

        assert config["upstream"]["cookies"] == "session_id=xyz"

    def test_default_config_is_valid(self, monkeypatch):
        """Test that the shipped default config loads and parses."""
        monkeypatch.setenv("GS_COOKIE", "session_id=env")
        config = load_config("configs/config_default.yaml")

        settings = UpstreamSettings.from_config(config)
        assert settings.base_url == "https://www.genspark.ai"
        assert settings.auto_delete_chat is True
        assert config["upstream"]["cookies"] == "session_id=env"
        assert "gpt-4o" in config["model_list"]


class TestSubstituteEnvVars:
    """Tests for ${VAR} substitution."""

    def test_env_file_values_win(self, monkeypatch):
        """Test that .env values take priority over the process environment."""
        monkeypatch.setenv("TOKEN", "from-process")
        result = _substitute_env_vars({"a": ["${TOKEN}", "$TOKEN"]}, {"TOKEN": "from-file"})
        assert result == {"a": ["from-file", "from-file"]}

    def test_unset_variable_is_left_in_place(self, monkeypatch):
        """Test that unknown variables keep their placeholder."""
        monkeypatch.delenv("SPARKPROXY_UNSET_VAR", raising=False)
        assert _substitute_env_vars("x-${SPARKPROXY_UNSET_VAR}") == "x-${SPARKPROXY_UNSET_VAR}"

    def test_unset_variable_warns_once(self, monkeypatch, caplog):
        """Test that a repeated missing variable is reported a single time."""
        monkeypatch.delenv("SPARKPROXY_UNSET_VAR", raising=False)
        with caplog.at_level("WARNING", logger="sparkproxy"):
            _substitute_env_vars(["$SPARKPROXY_UNSET_VAR", "${SPARKPROXY_UNSET_VAR}"])

        warnings = [r for r in caplog.records if "SPARKPROXY_UNSET_VAR" in r.getMessage()]
        assert len(warnings) == 1

    def test_non_strings_pass_through(self):
        """Test that numbers and booleans are untouched."""
        assert _substitute_env_vars({"port": 7055, "on": True}) == {"port": 7055, "on": True}


class TestResolveEnvPath:
    """Tests for pairing config files with env files."""

    def test_named_config(self):
        assert resolve_env_path(Path("/x/config_prod.yaml")) == Path("/x/.env_prod")

    def test_other_name(self):
        assert resolve_env_path(Path("/x/settings.yaml")) == Path("/x/.env")


class TestUpstreamSettings:
    """Tests for the upstream section."""

    def test_defaults(self):
        """Test defaults when the section is missing."""
        settings = UpstreamSettings.from_config({})
        assert settings.request_timeout == DEFAULT_REQUEST_TIMEOUT
        assert settings.upload_timeout == 30
        assert settings.auto_delete_chat is True

    def test_parses_strings(self):
        """Test that env-substituted strings are coerced."""
        settings = UpstreamSettings.from_config(
            {"upstream": {"auto_delete_chat": "false", "request_timeout": "12", "base_url": "http://h/"}}
        )
        assert settings.auto_delete_chat is False
        assert settings.request_timeout == 12.0
        assert settings.ask_url == "http://h/api/copilot/ask"
        assert settings.delete_url("p 1") == "http://h/api/project/delete?project_id=p%201"


class TestServerAddress:
    """Tests for bind address resolution."""

    def test_env_overrides_config(self, monkeypatch):
        """Test that SPARKPROXY_HOST/PORT win over the config."""
        monkeypatch.setenv("SPARKPROXY_HOST", "127.0.0.2")
        monkeypatch.setenv("SPARKPROXY_PORT", "8123")
        config = {"proxy_settings": {"server": {"host": "0.0.0.0", "port": 1}}}
        assert resolve_server_address(config) == ("127.0.0.2", 8123)

    def test_config_then_defaults(self, monkeypatch):
        """Test config values, then defaults."""
        monkeypatch.delenv("SPARKPROXY_HOST", raising=False)
        monkeypatch.delenv("SPARKPROXY_PORT", raising=False)
        assert resolve_server_address({"proxy_settings": {"server": {"port": "9000"}}}) == (
            "0.0.0.0",
            9000,
        )
        assert resolve_server_address({}) == ("0.0.0.0", 7055)
