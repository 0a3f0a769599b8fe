"""
FastAPI dependencies shared by the route modules.

The engine and config live on ``app.state`` so each app instance (one per
server, or one per test) carries its own store.
"""

import logging

from fastapi import Request

from taskmirror.core.config.models import TaskMirrorConfig
from taskmirror.core.store import get_backend
from taskmirror.core.sync import SyncEngine

logger = logging.getLogger(__name__)


def get_config(request: Request) -> TaskMirrorConfig:
    """Configuration the app was created with."""
    config: TaskMirrorConfig = request.app.state.config
    return config


def get_engine(request: Request) -> SyncEngine:
    """
    Sync engine bound to the app's store.

    The store is opened lazily on first use, from ``config.store``.
    """
    engine: SyncEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        config = get_config(request)
        store = get_backend(config.store)
        logger.info("Opened %s store", store.backend_name)
        engine = SyncEngine(store)
        request.app.state.engine = engine
    return engine
