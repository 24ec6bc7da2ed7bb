"""
Directories - typed CRUD over the metadata storage.

Handlers talk to directories, never to storage directly. A directory turns
documents into records and storage failures into API errors:

- DuplicateKeyError → ConflictError ("Already exists")
- missing id on update/delete → NotFoundError
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from rentals.core.errors import ConflictError, NotFoundError
from rentals.core.models import Apartment, Record, User
from rentals.storage import Collections, DuplicateKeyError, MetadataStorage

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


class Directory(Generic[R]):
    """CRUD for one collection of records."""

    collection: str
    model: type[R]
    not_found_message: str = "Not found"

    def __init__(self, storage: MetadataStorage):
        self.storage = storage

    async def setup(self) -> None:
        """Declare indexes. Called once at startup."""
        return None

    async def create(self, record: R) -> R:
        try:
            await self.storage.insert(self.collection, record.id, record.to_document())
        except DuplicateKeyError as e:
            logger.info(f"Rejected duplicate {e.collection}.{e.field}")
            raise ConflictError() from e
        return record

    async def get(self, id: str) -> R | None:
        document = await self.storage.get(self.collection, id)
        return self.model.from_document(document) if document else None

    async def find_one(self, filters: dict[str, Any]) -> R | None:
        document = await self.storage.find_one(self.collection, filters)
        return self.model.from_document(document) if document else None

    async def find(self, filters: dict[str, Any] | None = None) -> list[R]:
        documents = await self.storage.query(self.collection, filters)
        return [self.model.from_document(d) for d in documents]

    async def update(self, id: str, changes: dict[str, Any]) -> R:
        """
        Merge `changes` into the record and return the result.

        Raises:
            NotFoundError: no record with this id
            ConflictError: a unique field is already taken
        """
        if changes:
            try:
                found = await self.storage.update(self.collection, id, changes)
            except DuplicateKeyError as e:
                logger.info(f"Rejected duplicate {e.collection}.{e.field}")
                raise ConflictError() from e
            if not found:
                raise NotFoundError(self.not_found_message)

        record = await self.get(id)
        if record is None:
            raise NotFoundError(self.not_found_message)
        return record

    async def delete(self, id: str) -> None:
        """
        Raises:
            NotFoundError: no record with this id
        """
        if not await self.storage.delete(self.collection, id):
            raise NotFoundError(self.not_found_message)


class UserDirectory(Directory[User]):
    """Accounts. Email is unique across all users."""

    collection = Collections.USERS
    model = User
    not_found_message = "Can't find the user"

    async def setup(self) -> None:
        await self.storage.ensure_unique(self.collection, "email")

    async def find_by_email(self, email: str) -> User | None:
        return await self.find_one({"email": email})


class ApartmentDirectory(Directory[Apartment]):
    """Listings, optionally owned by a realtor."""

    collection = Collections.APARTMENTS
    model = Apartment
    not_found_message = "Can't find the apartment"

    async def unassign_realtor(self, realtor_id: str) -> int:
        """Clear the owner of every listing held by `realtor_id`."""
        count = await self.storage.update_many(
            self.collection, {"realtor": realtor_id}, {"realtor": None}
        )
        if count:
            logger.info(f"Unassigned {count} apartment(s) from {realtor_id}")
        return count
