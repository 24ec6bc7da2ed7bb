"""
Request schemas and validation.

Every endpoint has an explicit request model. Unknown fields are rejected,
so a client can never smuggle extra keys into a partial update. Pydantic
errors are reduced to one human-readable message naming the first failing
field, e.g. `"priceOp" must be one of [gt, lt, eq]`.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from rentals.core.errors import ValidationError
from rentals.core.models import ApartmentStatus

M = TypeVar("M", bound=BaseModel)

FilterOp = Literal["gt", "lt", "eq"]
AssignableRole = Literal["realtor", "client"]

Password = Annotated[str, Field(min_length=8, max_length=255)]
Name = Annotated[str, Field(max_length=255)]
Positive = Annotated[float, Field(gt=0)]
PositiveInt = Annotated[int, Field(gt=0)]


class RequestModel(BaseModel):
    """Base for request bodies: camelCase aliases, no unknown keys, finite numbers."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
    )

    def changes(self) -> dict[str, Any]:
        """Only the fields the client actually sent, keyed by field name."""
        return self.model_dump(mode="json", exclude_unset=True)


# =============================================================================
# Accounts
# =============================================================================


class LoginRequest(RequestModel):
    email: EmailStr
    password: Password


class RegisterRequest(RequestModel):
    email: EmailStr
    password: Password
    firstname: Name
    lastname: Name


class VerifyRequest(RequestModel):
    token: str


class ResendRequest(RequestModel):
    email: EmailStr


class ProfileUpdate(RequestModel):
    email: EmailStr = None
    firstname: Name = None
    lastname: Name = None


class ChangePasswordRequest(RequestModel):
    old_password: Password
    new_password: Password


class UserCreate(RequestModel):
    """Admin invite. Roles are limited to realtor and client."""

    email: EmailStr
    password: Password
    firstname: Name
    lastname: Name
    role: AssignableRole
    verified: bool = False


class UserUpdate(RequestModel):
    email: EmailStr = None
    firstname: Name = None
    lastname: Name = None
    password: Password = None
    role: AssignableRole = None
    verified: bool = None


# =============================================================================
# Apartments
# =============================================================================


class ApartmentCreate(RequestModel):
    name: str
    description: str = ""
    floor_area_size: Positive
    price_per_month: Positive
    number_of_rooms: PositiveInt
    address: str
    latitude: float
    longitude: float
    realtor: str | None = None
    status: ApartmentStatus


class ApartmentUpdate(RequestModel):
    """Update allowed to an owning realtor: the owner cannot be changed."""

    name: str = None
    description: str = None
    floor_area_size: Positive = None
    price_per_month: Positive = None
    number_of_rooms: PositiveInt = None
    address: str = None
    latitude: float = None
    longitude: float = None
    status: ApartmentStatus = None


class ApartmentAdminUpdate(ApartmentUpdate):
    """Update allowed to an admin, who may reassign the listing."""

    realtor: str = Field(default=None, min_length=1)


class ApartmentFilter(RequestModel):
    """Query-string filters for the listing endpoint."""

    size_op: FilterOp | None = None
    size_val: float | None = None
    price_op: FilterOp | None = None
    price_val: float | None = None
    rooms_op: FilterOp | None = None
    rooms_val: int | None = None


# =============================================================================
# Parsing
# =============================================================================


_LOCATION_PARTS = {"body", "query", "path"}


def _field_name(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc if p not in _LOCATION_PARTS]
    return ".".join(parts) or "value"


def describe(error: dict[str, Any]) -> str:
    """Turn one pydantic error into a message like `"latitude" is required`."""
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}
    name = f'"{_field_name(tuple(error.get("loc", ())))}"'

    if kind == "json_invalid":
        return "Invalid JSON body"
    if kind == "missing":
        return f"{name} is required"
    if kind == "extra_forbidden":
        return f"{name} is not allowed"
    if kind in ("literal_error", "enum"):
        allowed = re.findall(r"'([^']*)'", str(ctx.get("expected", "")))
        return f"{name} must be one of [{', '.join(allowed)}]"
    if kind in ("int_parsing", "int_from_float", "int_type"):
        return f"{name} must be an integer"
    if kind in ("float_parsing", "float_type", "finite_number"):
        return f"{name} must be a number"
    if kind == "greater_than":
        if ctx.get("gt") == 0:
            return f"{name} must be a positive number"
        return f"{name} must be greater than {ctx.get('gt')}"
    if kind == "string_too_short":
        return f"{name} length must be at least {ctx.get('min_length')} characters long"
    if kind == "string_too_long":
        return f"{name} length must be less than or equal to {ctx.get('max_length')} characters long"
    if kind in ("bool_parsing", "bool_type"):
        return f"{name} must be a boolean"
    if kind == "string_type":
        return f"{name} must be a string"
    if kind in ("model_type", "model_attributes_type", "dict_type"):
        return f"{name} must be an object"
    if kind == "value_error" and "email" in str(error.get("msg", "")).lower():
        return f"{name} must be a valid email"
    return f"{name} {error.get('msg', 'is invalid')}"


def parse(model: type[M], data: Any) -> M:
    """
    Validate `data` against `model`.

    Raises:
        ValidationError: with the message for the first failing field
    """
    try:
        return model.model_validate(data if data is not None else {})
    except pydantic.ValidationError as e:
        raise ValidationError(describe(e.errors()[0])) from e
