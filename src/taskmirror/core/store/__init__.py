"""
Document store protocol, query evaluation and backends.

Importing this package registers the built-in backends.
"""

from .backend import (
    DocumentStore,
    get_backend,
    list_backends,
    new_document_id,
    register_backend,
)

# Import backend implementations to trigger registration
from . import memory, sqlite  # noqa: F401
from .memory import MemoryStore
from .sqlite import SqliteStore

__all__ = [
    "DocumentStore",
    "MemoryStore",
    "SqliteStore",
    "get_backend",
    "list_backends",
    "new_document_id",
    "register_backend",
]
