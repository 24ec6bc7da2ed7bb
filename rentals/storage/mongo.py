"""
MongoDB storage implementation.

Uses pymongo's native asyncio client. Documents are stored with the
record id as `_id`; callers always see it back as `id`.
"""

from __future__ import annotations

import logging
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from rentals.storage.base import DuplicateKeyError, MetadataStorage

logger = logging.getLogger(__name__)


def _to_mongo_filters(filters: dict[str, Any] | None) -> dict[str, Any]:
    """Rename `id` to `_id`, including inside `$and` clauses."""
    if not filters:
        return {}
    translated: dict[str, Any] = {}
    for key, value in filters.items():
        if key == "$and":
            translated[key] = [_to_mongo_filters(sub) for sub in value]
        elif key == "id":
            translated["_id"] = value
        else:
            translated[key] = value
    return translated


def _from_mongo(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return doc


def _duplicate_field(collection: str, error: MongoDuplicateKeyError) -> DuplicateKeyError:
    key_pattern = (error.details or {}).get("keyPattern") or {}
    field = next(iter(key_pattern), "id")
    return DuplicateKeyError(collection, "id" if field == "_id" else field)


class MongoMetadataStorage(MetadataStorage):
    """Document storage backed by a MongoDB database."""

    def __init__(self, url: str, database: str):
        self._client: AsyncMongoClient = AsyncMongoClient(url)
        self._db = self._client[database]

    async def ensure_unique(self, collection: str, field: str) -> None:
        await self._db[collection].create_index(field, unique=True)
        logger.info(f"Ensured unique index on {collection}.{field}")

    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        doc = {k: v for k, v in data.items() if k != "id"}
        try:
            await self._db[collection].insert_one({"_id": id, **doc})
        except MongoDuplicateKeyError as e:
            raise _duplicate_field(collection, e) from e

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        return _from_mongo(await self._db[collection].find_one({"_id": id}))

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        doc = await self._db[collection].find_one(_to_mongo_filters(filters))
        return _from_mongo(doc)

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        cursor = self._db[collection].find(_to_mongo_filters(filters)).skip(offset)
        if limit is not None:
            cursor = cursor.limit(limit)
        return [_from_mongo(doc) async for doc in cursor]

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        updates = {k: v for k, v in updates.items() if k != "id"}
        if not updates:
            return await self._db[collection].count_documents({"_id": id}, limit=1) > 0
        try:
            result = await self._db[collection].update_one({"_id": id}, {"$set": updates})
        except MongoDuplicateKeyError as e:
            raise _duplicate_field(collection, e) from e
        return result.matched_count > 0

    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        result = await self._db[collection].update_many(
            _to_mongo_filters(filters), {"$set": updates}
        )
        return result.modified_count

    async def delete(self, collection: str, id: str) -> bool:
        result = await self._db[collection].delete_one({"_id": id})
        return result.deleted_count > 0

    async def close(self) -> None:
        await self._client.close()
