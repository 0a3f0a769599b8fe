"""
``.env`` file support for taskmirror settings.

``TASKMIRROR_*`` variables may live in dotenv files instead of the shell.
Two layers are read before the config loader runs:

    ~/.config/taskmirror/.env      shared by every project
    ./.env, ./.env.local           the project being served

A variable already exported by the shell always wins. Between the files,
the project layer replaces values that came from the user layer.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values


def read_env_file(path: Path) -> dict[str, str]:
    """Parse one dotenv file; a missing file or a key without a value is skipped."""
    if not path.is_file():
        return {}
    return {
        str(key): str(value)
        for key, value in dotenv_values(path).items()
        if key is not None and value is not None
    }


def _default_user_env_paths() -> list[Path]:
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return [Path(config_home) / "taskmirror" / ".env"]


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> set[str]:
    """
    Export variables from the user and project dotenv files into ``os.environ``.

    Args:
        project_dir: Directory holding the project's ``.env`` (defaults to cwd)
        user_env_paths: Override the user-level files
        project_env_paths: Override the project-level files

    Returns:
        Names of the variables this call set
    """
    base = project_dir or Path.cwd()
    user_files = _default_user_env_paths() if user_env_paths is None else user_env_paths
    project_files = (
        [base / ".env", base / ".env.local"] if project_env_paths is None else project_env_paths
    )

    shell_vars = set(os.environ)
    applied: set[str] = set()

    # Later layers overwrite earlier ones, never the shell
    for files in (user_files, project_files):
        for path in files:
            for key, value in read_env_file(Path(path)).items():
                if key in shell_vars:
                    continue
                os.environ[key] = value
                applied.add(key)
    return applied
