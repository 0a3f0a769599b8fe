"""
Unit tests for configuration loading.

Tests multi-layer config merging, environment variable overrides,
caching, XDG directory handling and layered .env loading.
"""

import json
import logging
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from taskmirror.core.config import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
    load_layered_env,
)
from taskmirror.core.config.env import read_env_file
from taskmirror.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_default_config,
    get_xdg_config_home,
    load_json_file,
)
from taskmirror.core.config.models import LoggingConfig, TaskMirrorConfig

# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_simple_merge(self):
        """Test merging two simple dicts."""
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        """Test merging nested dicts."""
        base = {"a": 1, "b": {"x": 10, "y": 20}}
        override = {"b": {"y": 30, "z": 40}, "c": 3}
        assert deep_merge(base, override) == {"a": 1, "b": {"x": 10, "y": 30, "z": 40}, "c": 3}

    def test_override_replaces_non_dict(self):
        """Test that non-dict values are replaced, not merged."""
        assert deep_merge({"a": [1, 2, 3]}, {"a": [4, 5]}) == {"a": [4, 5]}

    def test_base_not_mutated(self):
        base = {"a": {"x": 1}}
        deep_merge(base, {"a": {"x": 2}})
        assert base == {"a": {"x": 1}}


class TestLoadJsonFile:
    """Test JSON file loading."""

    def test_load_existing_file(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"key": "value"}))
        assert load_json_file(config_file) == {"key": "value"}

    def test_load_nonexistent_file(self, tmp_path):
        assert load_json_file(tmp_path / "nonexistent.json") is None

    def test_load_invalid_json_logs_warning(self, tmp_path, caplog):
        """Test loading invalid JSON returns None and logs a warning."""
        config_file = tmp_path / "invalid.json"
        config_file.write_text("{ invalid json }")

        with caplog.at_level(logging.WARNING):
            assert load_json_file(config_file) is None
        assert "Failed to parse config" in caplog.text

    def test_non_object_ignored(self, tmp_path):
        config_file = tmp_path / "list.json"
        config_file.write_text("[1, 2]")
        assert load_json_file(config_file) is None


class TestApplyEnvOverrides:
    """Test environment variable override logic."""

    def test_no_env_overrides(self):
        config = {"store": {"backend": "sqlite"}}
        assert apply_env_overrides(config) == config

    def test_backend_override(self, monkeypatch):
        monkeypatch.setenv("TASKMIRROR_STORE_BACKEND", "Memory")
        assert apply_env_overrides({})["store"]["backend"] == "memory"

    def test_backend_invalid_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("TASKMIRROR_STORE_BACKEND", "mongo")
        with caplog.at_level(logging.WARNING):
            result = apply_env_overrides({"store": {"backend": "sqlite"}})
        assert result["store"]["backend"] == "sqlite"
        assert "TASKMIRROR_STORE_BACKEND" in caplog.text

    def test_db_path_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TASKMIRROR_DB_PATH", str(tmp_path / "x.db"))
        assert apply_env_overrides({})["store"]["path"] == str(tmp_path / "x.db")

    def test_port_override(self, monkeypatch):
        monkeypatch.setenv("TASKMIRROR_PORT", "9000")
        assert apply_env_overrides({})["api"]["port"] == 9000

    @pytest.mark.parametrize("value", ["abc", "0", "70000"])
    def test_port_invalid_ignored(self, monkeypatch, value):
        monkeypatch.setenv("TASKMIRROR_PORT", value)
        assert "api" not in apply_env_overrides({})

    def test_host_and_level(self, monkeypatch):
        monkeypatch.setenv("TASKMIRROR_HOST", "0.0.0.0")
        monkeypatch.setenv("TASKMIRROR_LOG_LEVEL", "debug")
        result = apply_env_overrides({})
        assert result["api"]["host"] == "0.0.0.0"
        assert result["logging"]["level"] == "DEBUG"

    def test_log_level_invalid_ignored(self, monkeypatch, caplog):
        """Test an unknown TASKMIRROR_LOG_LEVEL is dropped with a warning."""
        monkeypatch.setenv("TASKMIRROR_LOG_LEVEL", "verbose")
        with caplog.at_level(logging.WARNING):
            result = apply_env_overrides({"logging": {"level": "INFO"}})
        assert result["logging"]["level"] == "INFO"
        assert "TASKMIRROR_LOG_LEVEL" in caplog.text

    def test_input_not_mutated(self, monkeypatch):
        monkeypatch.setenv("TASKMIRROR_HOST", "0.0.0.0")
        config = {"api": {"host": "127.0.0.1"}}
        apply_env_overrides(config)
        assert config == {"api": {"host": "127.0.0.1"}}


class TestGetDefaultConfig:
    def test_default_config_structure(self):
        config = get_default_config()
        assert config["store"]["backend"] == "sqlite"
        assert config["api"]["default_task_limit"] == 100
        assert config["logging"]["level"] == "INFO"


class TestXdgDirectories:
    """Test XDG directory handling."""

    def test_get_xdg_config_home_default(self, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        assert get_xdg_config_home() == Path.home() / ".config"

    def test_get_user_config_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_user_config_path() == tmp_path / "taskmirror" / "config.json"

    def test_get_project_config_path_custom(self, tmp_path):
        assert get_project_config_path(tmp_path) == tmp_path / ".taskmirror.json"


# ==============================================================================
# load_config Tests
# ==============================================================================


class TestLoadConfig:
    """Test the full precedence chain."""

    def _write_user_config(self, data):
        path = get_user_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data))

    def test_defaults_only(self, tmp_path):
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert isinstance(config, TaskMirrorConfig)
        assert config.store.backend == "sqlite"
        assert config.api.port == 8080

    def test_user_overrides_defaults(self, tmp_path):
        self._write_user_config({"api": {"port": 9100}})
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config.api.port == 9100
        assert config.api.host == "127.0.0.1"

    def test_project_overrides_user(self, tmp_path):
        self._write_user_config({"api": {"port": 9100}, "store": {"backend": "memory"}})
        (tmp_path / ".taskmirror.json").write_text(json.dumps({"api": {"port": 9200}}))

        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config.api.port == 9200
        assert config.store.backend == "memory"

    def test_env_overrides_all(self, tmp_path, monkeypatch):
        (tmp_path / ".taskmirror.json").write_text(json.dumps({"api": {"port": 9200}}))
        monkeypatch.setenv("TASKMIRROR_PORT", "9300")
        assert load_config(project_dir=tmp_path, use_cache=False).api.port == 9300

    def test_invalid_env_log_level_keeps_file_value(self, tmp_path, monkeypatch):
        """Test a bad TASKMIRROR_LOG_LEVEL does not break loading."""
        (tmp_path / ".taskmirror.json").write_text(json.dumps({"logging": {"level": "ERROR"}}))
        monkeypatch.setenv("TASKMIRROR_LOG_LEVEL", "verbose")
        assert load_config(project_dir=tmp_path, use_cache=False).logging.level == "ERROR"

    def test_caching(self, tmp_path):
        first = load_config(project_dir=tmp_path)
        (tmp_path / ".taskmirror.json").write_text(json.dumps({"api": {"port": 9999}}))
        assert load_config(project_dir=tmp_path) is first

        clear_cache()
        assert load_config(project_dir=tmp_path).api.port == 9999

    def test_validation_error(self, tmp_path):
        (tmp_path / ".taskmirror.json").write_text(json.dumps({"store": {"backend": "mongo"}}))
        with pytest.raises(ValidationError):
            load_config(project_dir=tmp_path, use_cache=False)

    def test_log_level_normalized(self):
        assert LoggingConfig(level="warning").level == "WARNING"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")


class TestLayeredEnv:
    """Test .env loading precedence."""

    def test_project_overrides_user_but_not_os(self, tmp_path, monkeypatch):
        user_env = tmp_path / "user.env"
        user_env.write_text("TM_A=user\nTM_B=user\n")
        project_env = tmp_path / ".env"
        project_env.write_text("TM_B=project\nTM_C=project\n")
        monkeypatch.setenv("TM_C", "os")
        for name in ("TM_A", "TM_B"):
            monkeypatch.delenv(name, raising=False)

        try:
            loaded = load_layered_env(
                project_dir=tmp_path,
                user_env_paths=[user_env],
                project_env_paths=[project_env],
            )
            assert os.environ["TM_A"] == "user"
            assert os.environ["TM_B"] == "project"
            assert os.environ["TM_C"] == "os"
            assert loaded == {"TM_A", "TM_B"}
        finally:
            for name in ("TM_A", "TM_B"):
                os.environ.pop(name, None)

    def test_missing_files_are_fine(self, tmp_path):
        assert load_layered_env(project_dir=tmp_path, user_env_paths=[]) == set()

    def test_local_file_overrides_env_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("TM_D=base\n")
        (tmp_path / ".env.local").write_text("TM_D=local\n")
        monkeypatch.delenv("TM_D", raising=False)

        try:
            assert load_layered_env(project_dir=tmp_path, user_env_paths=[]) == {"TM_D"}
            assert os.environ["TM_D"] == "local"
        finally:
            os.environ.pop("TM_D", None)


class TestReadEnvFile:
    def test_reads_values(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("TM_X=1\n# comment\nTM_Y='two words'\n")
        assert read_env_file(path) == {"TM_X": "1", "TM_Y": "two words"}

    def test_missing_file(self, tmp_path):
        assert read_env_file(tmp_path / "nope.env") == {}

    def test_directory_skipped(self, tmp_path):
        assert read_env_file(tmp_path) == {}
