"""
Core data models: User and Apartment.

Records are stored as snake_case documents and served as camelCase JSON.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rentals.auth.capabilities import Role
from rentals.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class ApartmentStatus(str, Enum):
    """Whether a listing can still be rented."""

    AVAILABLE = "Available"
    RENTED = "Rented"


# =============================================================================
# Base
# =============================================================================


class Record(BaseModel):
    """A stored document with a camelCase wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Fields that never leave the server
    private_fields: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Record:
        """Build a record from a storage document."""
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        """Serialize for storage (snake_case keys, JSON-safe values)."""
        return self.model_dump(mode="json")

    def to_response(self) -> dict[str, Any]:
        """Serialize for the API (camelCase keys, private fields removed)."""
        return self.model_dump(mode="json", by_alias=True, exclude=set(self.private_fields))


# =============================================================================
# User
# =============================================================================


class User(Record):
    """
    A registered account.

    `password_hash` is a PBKDF2 digest and is never serialized to clients.
    """

    private_fields = frozenset({"password_hash"})

    id: str = Field(default_factory=lambda: generate_id("usr"))
    email: str
    password_hash: str
    firstname: str
    lastname: str
    role: Role = Role.CLIENT
    verified: bool = False
    created: datetime = Field(default_factory=utc_now)


# =============================================================================
# Apartment
# =============================================================================


class Apartment(Record):
    """A rental listing, optionally owned by a realtor."""

    id: str = Field(default_factory=lambda: generate_id("apt"))
    name: str
    description: str = ""
    floor_area_size: float
    price_per_month: float
    number_of_rooms: int
    address: str
    latitude: float
    longitude: float
    status: ApartmentStatus = ApartmentStatus.AVAILABLE
    realtor: str | None = None
    created: datetime = Field(default_factory=utc_now)
