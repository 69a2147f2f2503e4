"""
In-memory storage implementation for development and tests.

Every method runs to completion without awaiting, so under asyncio each
call is atomic with respect to other requests.
"""

from __future__ import annotations

import copy
from typing import Any, Iterator

from projecthub.storage.base import (
    DuplicateKeyError,
    MetadataStorage,
    StorageProvider,
    UniqueIndex,
)


_MISSING = object()


def _values_at(doc: Any, path: list[str]) -> Iterator[Any]:
    """Yield every value reachable along a dotted path, fanning out over lists."""
    if not path:
        yield doc
        return
    if isinstance(doc, list):
        for item in doc:
            yield from _values_at(item, path)
        return
    if isinstance(doc, dict):
        value = doc.get(path[0], _MISSING)
        if value is not _MISSING:
            yield from _values_at(value, path[1:])
        return
    value = getattr(doc, path[0], _MISSING)
    if value is not _MISSING:
        yield from _values_at(value, path[1:])


def _field_matches(doc: dict[str, Any], key: str, expected: Any) -> bool:
    values = list(_values_at(doc, key.split(".")))
    if not values:
        return expected is None
    return any(v == expected for v in values)


def matches(
    doc: dict[str, Any],
    filters: dict[str, Any] | None = None,
    any_of: list[dict[str, Any]] | None = None,
) -> bool:
    """Mongo-style equality matching used by the in-memory store."""
    if filters and not all(_field_matches(doc, k, v) for k, v in filters.items()):
        return False
    if any_of and not any(matches(doc, f) for f in any_of):
        return False
    return True


def _sort_key(field: str):
    def key(doc: dict[str, Any]):
        value = doc.get(field)
        # None sorts first ascending
        return (value is not None, value)
    return key


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._indexes: dict[str, list[UniqueIndex]] = {}

    # -------------------------------------------------------------------------
    # Indexes
    # -------------------------------------------------------------------------

    async def create_unique_index(
        self,
        collection: str,
        fields: tuple[str, ...],
        where: dict[str, Any] | None = None,
    ) -> None:
        index = UniqueIndex(fields=tuple(fields), where=tuple(sorted((where or {}).items())))
        indexes = self._indexes.setdefault(collection, [])
        if index not in indexes:
            indexes.append(index)

    def _check_unique(self, collection: str, id: str, candidate: dict[str, Any]) -> None:
        for index in self._indexes.get(collection, []):
            if not matches(candidate, index.partial_filter):
                continue
            key = tuple(candidate.get(f) for f in index.fields)
            for other_id, other in self._data.get(collection, {}).items():
                if other_id == id or not matches(other, index.partial_filter):
                    continue
                if tuple(other.get(f) for f in index.fields) == key:
                    raise DuplicateKeyError(collection, index.fields)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        docs = self._data.setdefault(collection, {})
        if id in docs:
            raise DuplicateKeyError(collection, ("id",))
        doc = copy.deepcopy({**data, "id": id})
        self._check_unique(collection, id, doc)
        docs[id] = doc

    async def update(
        self,
        collection: str,
        id: str,
        updates: dict[str, Any],
        where: dict[str, Any] | None = None,
    ) -> bool:
        current = self._data.get(collection, {}).get(id)
        if current is None:
            return False
        if where and not matches(current, where):
            return False
        merged = {**current, **copy.deepcopy(updates)}
        self._check_unique(collection, id, merged)
        self._data[collection][id] = merged
        return True

    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        docs = self._data.get(collection, {})
        targets = [doc_id for doc_id, doc in docs.items() if matches(doc, filters)]
        # Validate all before writing any, so the batch is all-or-nothing
        merged = {doc_id: {**docs[doc_id], **copy.deepcopy(updates)} for doc_id in targets}
        for doc_id, doc in merged.items():
            self._check_unique(collection, doc_id, doc)
        docs.update(merged)
        return len(targets)

    async def delete(self, collection: str, id: str) -> bool:
        if collection in self._data and id in self._data[collection]:
            del self._data[collection][id]
            return True
        return False

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self._data.get(collection, {}).values():
            if matches(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        any_of: list[dict[str, Any]] | None = None,
        sort_by: str | None = None,
        descending: bool = False,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        results = [
            doc for doc in self._data.get(collection, {}).values()
            if matches(doc, filters, any_of)
        ]

        if sort_by:
            results.sort(key=_sort_key(sort_by), reverse=descending)

        end = None if limit is None else offset + limit
        return copy.deepcopy(results[offset:end])

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        any_of: list[dict[str, Any]] | None = None,
    ) -> int:
        return sum(1 for doc in self._data.get(collection, {}).values() if matches(doc, filters, any_of))


# =============================================================================
# Factory
# =============================================================================


def create_memory_storage() -> StorageProvider:
    """Create a StorageProvider backed by in-memory collections."""
    return StorageProvider(metadata=InMemoryMetadataStorage())
