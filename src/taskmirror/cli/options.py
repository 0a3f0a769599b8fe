"""
Shared CLI helpers: config overrides and logging setup.
"""

import logging
import sys
from pathlib import Path

import typer

from taskmirror.core.config import StoreConfig, TaskMirrorConfig, load_config


def resolve_config(backend: str | None = None, db: Path | None = None) -> TaskMirrorConfig:
    """
    Load layered config and apply command-line store overrides.

    Command-line flags win over env vars and config files.
    """
    config = load_config().model_copy(deep=True)
    if backend is None and db is None:
        return config
    try:
        config.store = StoreConfig(
            backend=backend or config.store.backend,
            path=db or config.store.path,
        )
    except ValueError as e:
        raise typer.BadParameter(f"Invalid store settings: {e}") from e
    return config


def setup_logging(config: TaskMirrorConfig, debug: bool = False) -> None:
    """Configure root logging from ``logging.level`` (``--debug`` forces DEBUG)."""
    level = logging.DEBUG if debug else getattr(logging, config.logging.level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
