"""
Error taxonomy.

Handlers and services raise these; the API layer maps each kind to an
HTTP status code and the `{success, data}` envelope. Nothing below the
API layer decides a status code on its own.
"""

from __future__ import annotations


class RentalsError(Exception):
    """Base exception for the rentals API."""

    status_code: int = 500
    default_message: str = "Server side error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RentalsError):
    """Malformed or missing input. The message names the field and rule."""

    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(RentalsError):
    """Missing, invalid, or expired credentials."""

    status_code = 401
    default_message = "Unauthorized"


class UnverifiedAccountError(AuthenticationError):
    """Credentials are fine but the email address was never verified."""

    default_message = "Please verify your email"


class PermissionDeniedError(RentalsError):
    """Role or ownership check failed."""

    status_code = 403
    default_message = "Permission denied"


class NotFoundError(RentalsError):
    """An id did not resolve to a record."""

    status_code = 404
    default_message = "Not found"


class ConflictError(RentalsError):
    """Uniqueness violation."""

    status_code = 422
    default_message = "Already exists"


class UnclassifiedError(RentalsError):
    """Anything else. The message never carries internal detail."""

    status_code = 500
