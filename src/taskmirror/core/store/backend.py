"""
Document store protocol and backend registry.

This module defines the DocumentStore protocol that all storage backends
must implement, enabling pluggable storage (SQLite, in-memory, etc.).
The sync engine only ever talks to this protocol.
"""

import secrets
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol, TypeVar, runtime_checkable

from taskmirror.core.config.models import StoreConfig
from taskmirror.core.models import Document

from .query import Filter, Projection, SortSpec

D = TypeVar("D", bound=Document)


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for document store implementations.

    Backends are responsible for:
    - Persisting documents per collection (``Document.collection``)
    - Assigning ids and creation timestamps on first save
    - Evaluating filters, sorting, projection and pagination

    Every call either completes or raises ``StorageError``; there is no
    transaction spanning several calls.
    """

    def find_by_id(self, model: type[D], doc_id: str) -> D | None:
        """
        Get a document by id.

        Args:
            model: Document class (selects the collection)
            doc_id: Document id

        Returns:
            Parsed document if found, None otherwise
        """
        ...

    def find_one(self, model: type[D], filter_: Filter) -> D | None:
        """
        Get the first document matching a filter.

        Args:
            model: Document class
            filter_: Mongo-style filter

        Returns:
            Parsed document if any matches, None otherwise
        """
        ...

    def find(
        self,
        model: type[D],
        filter_: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[D]:
        """
        List documents matching a filter.

        Args:
            model: Document class
            filter_: Mongo-style filter (None matches everything)
            sort: ``{field: 1 | -1}`` sort spec
            skip: Leading results to drop
            limit: Maximum results (0 means no limit)

        Returns:
            Parsed documents in store order (or sort order)
        """
        ...

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
        """
        Like ``find`` but returns raw (optionally projected) documents.

        Projected documents may lack required fields, so they are not
        parsed into models.
        """
        ...

    def save(self, entity: D) -> D:
        """
        Insert or replace a document.

        Assigns ``id`` and ``created_at`` when they are not set yet.

        Returns:
            The saved entity (same object, with id populated)
        """
        ...

    def delete(self, entity: Document) -> None:
        """Delete a document. Deleting an unknown document is a no-op."""
        ...

    def count(self, model: type[Document], filter_: Filter | None = None) -> int:
        """Count documents matching a filter."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...

    @property
    def backend_name(self) -> str:
        """
        Get the name of this backend.

        Returns:
            Backend name (e.g., 'sqlite', 'memory')
        """
        ...


def new_document_id() -> str:
    """Generate a 24-hex-character id (same shape as a Mongo ObjectId)."""
    return secrets.token_hex(12)


def stamp_new(entity: Document) -> None:
    """Fill in id and creation time for a document that has never been saved."""
    if not entity.id:
        entity.id = new_document_id()
    if entity.created_at is None:
        entity.created_at = datetime.now(timezone.utc)


# Backend registry
_backends: dict[str, Callable[..., DocumentStore]] = {}


def register_backend(name: str) -> Callable[[type], type]:
    """
    Decorator to register a document store implementation.

    Usage:
        @register_backend('memory')
        class MemoryStore:
            def find_by_id(self, model, doc_id):
                ...

    Args:
        name: Backend name (e.g., 'sqlite', 'memory')

    Returns:
        Decorator function
    """

    def decorator(backend_class: type) -> type:
        _backends[name] = backend_class
        return backend_class

    return decorator


def get_backend(config: StoreConfig | None = None) -> DocumentStore:
    """
    Instantiate the configured store backend.

    Args:
        config: Store configuration (defaults to StoreConfig())

    Returns:
        DocumentStore instance

    Raises:
        ValueError: If the backend name is not registered
    """
    if config is None:
        config = StoreConfig()

    backend_class = _backends.get(config.backend)
    if backend_class is None:
        raise ValueError(
            f"Backend '{config.backend}' not registered. "
            f"Available backends: {', '.join(_backends.keys())}"
        )

    if config.backend == "sqlite":
        return backend_class(config.path)
    return backend_class()


def list_backends() -> list[str]:
    """
    List all registered backend names.

    Returns:
        List of backend names
    """
    return list(_backends.keys())
