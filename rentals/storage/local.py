"""
Local storage implementation for development and tests.

Everything lives in process memory and is lost on restart. No method
awaits in the middle of a write, so each write is atomic with respect
to other requests on the same event loop.
"""

from __future__ import annotations

import copy
import operator
from typing import Any, Callable

from rentals.storage.base import DuplicateKeyError, MetadataStorage


# =============================================================================
# Filter Matching
# =============================================================================


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    """Ordering comparisons never match a missing or incomparable value."""

    def check(value: Any, target: Any) -> bool:
        if value is None:
            return False
        try:
            return op(value, target)
        except TypeError:
            return False

    return check


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": _compare(operator.gt),
    "$gte": _compare(operator.ge),
    "$lt": _compare(operator.lt),
    "$lte": _compare(operator.le),
    "$in": lambda value, options: value in options,
}


def matches(document: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Check a document against a Mongo-style filter."""
    if not filters:
        return True

    for key, expected in filters.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in expected):
                return False
            continue

        value = document.get(key)

        if isinstance(expected, dict) and expected and all(k.startswith("$") for k in expected):
            for op_name, target in expected.items():
                if op_name not in OPERATORS:
                    raise ValueError(f"Unsupported filter operator: {op_name}")
                if not OPERATORS[op_name](value, target):
                    return False
        elif value != expected:
            return False

    return True


# =============================================================================
# In-Memory Metadata Storage
# =============================================================================


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._unique: dict[str, set[str]] = {}

    def _collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(collection, {})

    def _check_unique(
        self,
        collection: str,
        data: dict[str, Any],
        exclude_id: str | None = None,
    ) -> None:
        for field in self._unique.get(collection, ()):
            if field not in data:
                continue
            for doc_id, doc in self._collection(collection).items():
                if doc_id != exclude_id and doc.get(field) == data[field]:
                    raise DuplicateKeyError(collection, field)

    async def ensure_unique(self, collection: str, field: str) -> None:
        self._unique.setdefault(collection, set()).add(field)

    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if id in docs:
            raise DuplicateKeyError(collection, "id")
        self._check_unique(collection, data)
        docs[id] = {**copy.deepcopy(data), "id": id}

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._collection(collection).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        for doc in self._collection(collection).values():
            if matches(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        results = [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if matches(doc, filters)
        ]
        end = offset + limit if limit is not None else None
        return results[offset:end]

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        docs = self._collection(collection)
        if id not in docs:
            return False
        self._check_unique(collection, updates, exclude_id=id)
        docs[id].update(copy.deepcopy(updates))
        return True

    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        count = 0
        for doc in self._collection(collection).values():
            if matches(doc, filters):
                doc.update(copy.deepcopy(updates))
                count += 1
        return count

    async def delete(self, collection: str, id: str) -> bool:
        docs = self._collection(collection)
        if id in docs:
            del docs[id]
            return True
        return False
