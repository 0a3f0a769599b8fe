"""
In-memory document store.

Keeps one dict of JSON documents per collection. Documents are copied on
the way in and out so callers never share state with the store, which
mirrors how a real document database behaves.
"""

import copy
from typing import Any, TypeVar

from taskmirror.core.models import Document

from .backend import register_backend, stamp_new
from .query import Filter, Projection, SortSpec, matches, run_query

D = TypeVar("D", bound=Document)


@register_backend("memory")
class MemoryStore:
    """
    Document store backed by plain dictionaries.

    Useful for tests and throwaway servers. Insertion order is the
    natural order of ``find`` results.

    Example:
        >>> from taskmirror.core.models import User
        >>> store = MemoryStore()
        >>> user = store.save(User(name="Ada", email="ada@example.com"))
        >>> store.find_by_id(User, user.id).email
        'ada@example.com'
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    def _collection(self, model: type[Document]) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(model.collection, {})

    def find_by_id(self, model: type[D], doc_id: str) -> D | None:
        raw = self._collection(model).get(str(doc_id))
        if raw is None:
            return None
        return model.model_validate(copy.deepcopy(raw))

    def find_one(self, model: type[D], filter_: Filter) -> D | None:
        for raw in self._collection(model).values():
            if matches(raw, filter_):
                return model.model_validate(copy.deepcopy(raw))
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
            self._collection(model).values(), filter_, sort=sort, skip=skip, limit=limit
        )
        return [model.model_validate(d) for d in copy.deepcopy(docs)]

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
        docs = run_query(
            self._collection(model).values(),
            filter_,
            sort=sort,
            select=select,
            skip=skip,
            limit=limit,
        )
        return copy.deepcopy(docs)

    def save(self, entity: D) -> D:
        stamp_new(entity)
        assert entity.id is not None
        self._collection(type(entity))[entity.id] = entity.to_document()
        return entity

    def delete(self, entity: Document) -> None:
        if entity.id is None:
            return
        self._collection(type(entity)).pop(entity.id, None)

    def count(self, model: type[Document], filter_: Filter | None = None) -> int:
        return sum(1 for raw in self._collection(model).values() if matches(raw, filter_))

    def close(self) -> None:
        """Nothing to release."""
        return
