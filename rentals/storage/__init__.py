"""
Storage abstractions.

- MetadataStorage → MongoDB in production, in-memory for development
"""

from rentals.storage.base import (
    MetadataStorage,
    StorageError,
    DuplicateKeyError,
    Collections,
)
from rentals.storage.local import InMemoryMetadataStorage
from rentals.config import Settings


def create_storage(settings: Settings) -> MetadataStorage:
    """Pick a storage backend from DATABASE_URL (empty means in-memory)."""
    if settings.database_url.startswith(("mongodb://", "mongodb+srv://")):
        from rentals.storage.mongo import MongoMetadataStorage
        return MongoMetadataStorage(settings.database_url, settings.database_name)
    return InMemoryMetadataStorage()


__all__ = [
    "MetadataStorage",
    "StorageError",
    "DuplicateKeyError",
    "Collections",
    "InMemoryMetadataStorage",
    "create_storage",
]
