"""
Storage abstraction layer.

All persistence goes through this interface. This allows swapping
implementations (in-memory → MongoDB) without changing application code.

Filters use the Mongo operator vocabulary:
    {"role": {"$in": ["realtor", "client"]}, "verified": True}
Supported operators: $eq, $ne, $gt, $gte, $lt, $lte, $in, and a top-level
$and list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StorageError(Exception):
    """Base exception for storage failures."""
    pass


class DuplicateKeyError(StorageError):
    """A write would break a unique field."""

    def __init__(self, collection: str, field: str):
        self.collection = collection
        self.field = field
        super().__init__(f"Duplicate value for {collection}.{field}")


# =============================================================================
# Storage Interface
# =============================================================================


class MetadataStorage(ABC):
    """
    Storage for structured documents (users, apartments).

    Each write is atomic for a single document. No multi-document
    transactions are offered or needed.

    Production Implementation: MongoDB
    Local Implementation: in-memory
    """

    @abstractmethod
    async def ensure_unique(self, collection: str, field: str) -> None:
        """Declare that `field` must be unique within `collection`."""
        pass

    @abstractmethod
    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """
        Insert a new document.

        Raises:
            DuplicateKeyError: the id or a unique field is already taken
        """
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Get the first document matching the filters."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents with optional filters."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        """
        Partial update of a document. Returns False if it does not exist.

        Raises:
            DuplicateKeyError: the update would break a unique field
        """
        pass

    @abstractmethod
    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        """Apply the same partial update to every match. Returns the count."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document. Returns False if it does not exist."""
        pass

    async def close(self) -> None:
        """Release connections. Nothing to do by default."""
        return None


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    APARTMENTS = "apartments"
