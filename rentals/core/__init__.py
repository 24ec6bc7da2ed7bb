"""
Core domain: records, request schemas, errors, query building, directories.
"""

from rentals.core.directory import ApartmentDirectory, UserDirectory
from rentals.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RentalsError,
    UnclassifiedError,
    UnverifiedAccountError,
    ValidationError,
)
from rentals.core.models import Apartment, ApartmentStatus, User
from rentals.core.query import build_condition, combine
from rentals.core.schemas import parse

__all__ = [
    # Records
    "User",
    "Apartment",
    "ApartmentStatus",
    # Directories
    "UserDirectory",
    "ApartmentDirectory",
    # Queries
    "build_condition",
    "combine",
    "parse",
    # Errors
    "RentalsError",
    "ValidationError",
    "AuthenticationError",
    "UnverifiedAccountError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "UnclassifiedError",
]
