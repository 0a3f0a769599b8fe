"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import LOG_LEVELS, TaskMirrorConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: TaskMirrorConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/taskmirror/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "taskmirror" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .taskmirror.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".taskmirror.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> base = {"a": 1, "b": {"x": 10, "y": 20}}
        >>> override = {"b": {"y": 30, "z": 40}, "c": 3}
        >>> deep_merge(base, override)
        {'a': 1, 'b': {'x': 10, 'y': 30, 'z': 40}, 'c': 3}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken file
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _set(config_dict: dict[str, Any], section: str, key: str, value: Any) -> None:
    config_dict.setdefault(section, {})
    config_dict[section][key] = value


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        TASKMIRROR_STORE_BACKEND - overrides store.backend
        TASKMIRROR_DB_PATH - overrides store.path
        TASKMIRROR_HOST - overrides api.host
        TASKMIRROR_PORT - overrides api.port
        TASKMIRROR_LOG_LEVEL - overrides logging.level

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = {k: (v.copy() if isinstance(v, dict) else v) for k, v in config_dict.items()}

    if backend := os.environ.get("TASKMIRROR_STORE_BACKEND"):
        backend = backend.strip().lower()
        if backend in ("sqlite", "memory"):
            _set(result, "store", "backend", backend)
        else:
            logger.warning("Invalid TASKMIRROR_STORE_BACKEND value '%s', ignoring", backend)

    if db_path := os.environ.get("TASKMIRROR_DB_PATH"):
        _set(result, "store", "path", str(Path(db_path).expanduser()))

    if host := os.environ.get("TASKMIRROR_HOST"):
        _set(result, "api", "host", host.strip())

    if port_str := os.environ.get("TASKMIRROR_PORT"):
        try:
            port = int(port_str)
            if not 1 <= port <= 65535:
                logger.warning("TASKMIRROR_PORT must be in 1..65535, got %s, ignoring", port)
            else:
                _set(result, "api", "port", port)
        except ValueError:
            logger.warning("Invalid TASKMIRROR_PORT value '%s', ignoring", port_str)

    if level := os.environ.get("TASKMIRROR_LOG_LEVEL"):
        level = level.strip().upper()
        if level in LOG_LEVELS:
            _set(result, "logging", "level", level)
        else:
            logger.warning("Invalid TASKMIRROR_LOG_LEVEL value '%s', ignoring", level)

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "store": {"backend": "sqlite", "path": ".taskmirror/taskmirror.db"},
        "api": {"host": "127.0.0.1", "port": 8080, "default_task_limit": 100},
        "logging": {"level": "INFO"},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> TaskMirrorConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TASKMIRROR_*)
        2. Project config (.taskmirror.json)
        3. User config (~/.config/taskmirror/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .taskmirror.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated TaskMirrorConfig instance

    Raises:
        pydantic.ValidationError: If the merged config fails validation

    Example:
        >>> config = load_config()
        >>> config.api.default_task_limit
        100
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = TaskMirrorConfig(**merged)

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
