"""
Pytest configuration and shared fixtures.

Provides stores (memory and SQLite), a sync engine, an API test client and
small helpers for building users and tasks.
"""

import pytest
from fastapi.testclient import TestClient

from taskmirror.api.app import create_app
from taskmirror.core.config import TaskMirrorConfig, clear_cache
from taskmirror.core.models import Task, User
from taskmirror.core.store import MemoryStore, SqliteStore
from taskmirror.core.sync import SyncEngine

# ==============================================================================
# Store Fixtures
# ==============================================================================


@pytest.fixture
def memory_store():
    """Provide an empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    """Provide an empty SQLite store in a temporary directory."""
    store = SqliteStore(tmp_path / "test.db")
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    """Run the test once per backend."""
    if request.param == "memory":
        return MemoryStore()
    return SqliteStore(tmp_path / "param.db")


# ==============================================================================
# Engine Fixtures
# ==============================================================================


@pytest.fixture
def engine(memory_store):
    """Provide a sync engine over an in-memory store."""
    return SyncEngine(memory_store)


@pytest.fixture
def store(engine):
    """The store behind the ``engine`` fixture."""
    return engine.store


@pytest.fixture
def make_user(engine):
    """Factory creating users through the engine."""
    counter = {"n": 0}

    def _make(name: str | None = None, email: str | None = None, pending=None) -> User:
        counter["n"] += 1
        n = counter["n"]
        result = engine.create_user(
            name or f"User {n}",
            email or f"user{n}@example.com",
            pending,
        )
        return result.entity

    return _make


@pytest.fixture
def make_task(engine):
    """Factory creating tasks through the engine."""
    counter = {"n": 0}

    def _make(
        name: str | None = None,
        deadline: str = "2025-06-30",
        completed: bool = False,
        assigned_user: str = "",
    ) -> Task:
        counter["n"] += 1
        result = engine.create_task(
            name or f"Task {counter['n']}",
            deadline,
            completed=completed,
            assigned_user=assigned_user,
        )
        return result.entity

    return _make


# ==============================================================================
# API Fixtures
# ==============================================================================


@pytest.fixture
def client(engine):
    """Test client for an app bound to the ``engine`` fixture."""
    app = create_app(TaskMirrorConfig(), engine=engine)
    with TestClient(app) as test_client:
        yield test_client


# ==============================================================================
# Config Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config, env vars and the config cache out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "TASKMIRROR_STORE_BACKEND",
        "TASKMIRROR_DB_PATH",
        "TASKMIRROR_HOST",
        "TASKMIRROR_PORT",
        "TASKMIRROR_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()
