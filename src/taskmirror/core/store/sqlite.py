"""
SQLite document store.

All collections live in a single ``documents`` table holding JSON bodies.
Filtering, sorting and projection are evaluated in Python with the shared
query module, so both backends answer queries identically.

Connection handling:
- WAL mode for better concurrency
- One short-lived connection per call (safe across threads)
- Driver errors surface as StorageError

Usage:
    from taskmirror.core.store.sqlite import SqliteStore

    store = SqliteStore(Path(".taskmirror/taskmirror.db"))
    user = store.save(User(name="Ada", email="ada@example.com"))
"""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from taskmirror.core.exceptions import StorageError
from taskmirror.core.models import Document

from .backend import register_backend, stamp_new
from .query import Filter, Projection, SortSpec, matches, run_query

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=Document)

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA_DDL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

-- One row per document; rowid keeps insertion order
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    body TEXT NOT NULL,
    created_at TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (collection, id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
"""


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """
    Row factory that returns rows as dictionaries.

    Args:
        cursor: SQLite cursor
        row: Raw row tuple from database

    Returns:
        Dictionary mapping column names to values
    """
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def configure_connection(conn: sqlite3.Connection) -> None:
    """
    Configure a SQLite connection.

    Settings applied:
    - WAL mode: Better concurrency for reads/writes
    - dict_factory: Enable dict-like row access
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = dict_factory


def create_schema(conn: sqlite3.Connection) -> None:
    """Create tables and record the schema version."""
    conn.executescript(SCHEMA_DDL)
    conn.execute(
        "INSERT OR IGNORE INTO schema_info (version, description) VALUES (?, ?)",
        (SCHEMA_VERSION, "documents table"),
    )


@register_backend("sqlite")
class SqliteStore:
    """
    Document store persisted in a SQLite file.

    Example:
        >>> import tempfile
        >>> from taskmirror.core.models import Task
        >>> with tempfile.TemporaryDirectory() as tmpdir:
        ...     store = SqliteStore(Path(tmpdir) / "test.db")
        ...     task = store.save(Task(name="Ship", deadline="2025-02-01"))
        ...     assert store.count(Task) == 1
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            create_schema(conn)
        logger.info("SqliteStore ready db=%s", self.db_path)

    @property
    def backend_name(self) -> str:
        return "sqlite"

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """
        Open a configured connection, commit on success, always close.

        Raises:
            StorageError: If SQLite reports any error
        """
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e

        try:
            configure_connection(conn)
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("SQLite error on %s: %s", self.db_path, e)
            raise StorageError(f"Database operation failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _decode(body: str) -> dict[str, Any]:
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupted document body: {e}") from e
        if not isinstance(data, dict):
            raise StorageError("Corrupted document body: not a JSON object")
        return data

    def _load_collection(self, model: type[Document]) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT body FROM documents WHERE collection = ? ORDER BY rowid",
                (model.collection,),
            ).fetchall()
        return [self._decode(row["body"]) for row in rows]

    def find_by_id(self, model: type[D], doc_id: str) -> D | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (model.collection, str(doc_id)),
            ).fetchone()
        if row is None:
            return None
        return model.model_validate(self._decode(row["body"]))

    def find_one(self, model: type[D], filter_: Filter) -> D | None:
        for doc in self._load_collection(model):
            if matches(doc, filter_):
                return model.model_validate(doc)
        return None

    def find(
        self,
        model: type[D],
        filter_: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[D]:
        docs = run_query(
            self._load_collection(model), filter_, sort=sort, skip=skip, limit=limit
        )
        return [model.model_validate(d) for d in docs]

    def find_documents(
        self,
        model: type[Document],
        filter_: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        select: Projection | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        return run_query(
            self._load_collection(model),
            filter_,
            sort=sort,
            select=select,
            skip=skip,
            limit=limit,
        )

    def save(self, entity: D) -> D:
        stamp_new(entity)
        doc = entity.to_document()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO documents (collection, id, body, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(collection, id) DO UPDATE SET
                    body = excluded.body,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    entity.collection,
                    entity.id,
                    json.dumps(doc, ensure_ascii=False),
                    doc.get("dateCreated"),
                ),
            )
        logger.debug("Saved %s id=%s", entity.collection, entity.id)
        return entity

    def delete(self, entity: Document) -> None:
        if entity.id is None:
            return
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (entity.collection, entity.id),
            )
        logger.debug("Deleted %s id=%s", entity.collection, entity.id)

    def count(self, model: type[Document], filter_: Filter | None = None) -> int:
        if filter_ is None:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM documents WHERE collection = ?",
                    (model.collection,),
                ).fetchone()
            return int(row["n"])
        return sum(1 for doc in self._load_collection(model) if matches(doc, filter_))

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return
