"""
Apartment listings.

Reads are open to every authenticated role and scoped by the policy engine:
clients see available listings, realtors their own, admins everything.
Writes need `apartment.create` / `apartment.edit`, plus ownership unless the
caller may edit any listing.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from rentals.api.deps import get_apartments, get_users
from rentals.api.responses import ok
from rentals.auth.capabilities import Capability
from rentals.auth.context import AuthContext
from rentals.auth.policies import (
    Action,
    apartment_update_schema,
    authorize_apartment,
    can_own_listings,
    enforce,
    require,
)
from rentals.core.directory import ApartmentDirectory, UserDirectory
from rentals.core.errors import NotFoundError, ValidationError
from rentals.core.models import Apartment
from rentals.core.query import build_condition, combine
from rentals.core.schemas import ApartmentCreate, ApartmentFilter, parse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/apartments", tags=["apartments"])

NOT_FOUND = "Can't find the apartment"


async def load_apartment(apartments: ApartmentDirectory, apartment_id: str) -> Apartment:
    apartment = await apartments.get(apartment_id)
    if apartment is None:
        raise NotFoundError(NOT_FOUND)
    return apartment


async def ensure_realtor(users: UserDirectory, realtor_id: str) -> None:
    """An explicitly assigned owner must be an existing realtor."""
    realtor = await users.get(realtor_id)
    if realtor is None or not can_own_listings(realtor):
        raise ValidationError('"realtor" must reference an existing realtor')


async def with_realtors(users: UserDirectory, listings: list[Apartment]) -> list[dict[str, Any]]:
    """Serialize listings with the owner record embedded in place of its id."""
    owner_ids = sorted({a.realtor for a in listings if a.realtor})
    owners = {}
    if owner_ids:
        found = await users.find({"id": {"$in": owner_ids}})
        owners = {u.id: u.to_response() for u in found}
    return [{**a.to_response(), "realtor": owners.get(a.realtor)} for a in listings]


@router.get("")
async def list_apartments(
    request: Request,
    ctx: AuthContext = Depends(require(Capability.APARTMENT_READ)),
    apartments: ApartmentDirectory = Depends(get_apartments),
    users: UserDirectory = Depends(get_users),
):
    """
    List listings visible to the caller.

    Query: sizeOp/sizeVal, priceOp/priceVal, roomsOp/roomsVal where each
    operator is one of gt, lt, eq.
    """
    filters = parse(ApartmentFilter, dict(request.query_params))
    permit = enforce(authorize_apartment(ctx, Action.LIST), ctx)

    found = await apartments.find(combine(permit.scope, build_condition(filters)))
    return ok(await with_realtors(users, found))


@router.post("", status_code=201)
async def create_apartment(
    data: ApartmentCreate,
    ctx: AuthContext = Depends(require(Capability.APARTMENT_CREATE)),
    apartments: ApartmentDirectory = Depends(get_apartments),
    users: UserDirectory = Depends(get_users),
):
    permit = enforce(authorize_apartment(ctx, Action.CREATE, changes=data.changes()), ctx)

    if not ctx.owns(permit.changes["realtor"]):
        await ensure_realtor(users, permit.changes["realtor"])

    apartment = await apartments.create(Apartment(**permit.changes))
    logger.info(f"{ctx.user_id} created {apartment.id}")
    return ok(apartment.to_response(), status_code=201)


@router.get("/{apartment_id}")
async def get_apartment(
    apartment_id: str,
    ctx: AuthContext = Depends(require(Capability.APARTMENT_READ)),
    apartments: ApartmentDirectory = Depends(get_apartments),
    users: UserDirectory = Depends(get_users),
):
    apartment = await load_apartment(apartments, apartment_id)
    enforce(authorize_apartment(ctx, Action.READ, apartment), ctx)
    [data] = await with_realtors(users, [apartment])
    return ok(data)


@router.put("/{apartment_id}")
async def update_apartment(
    apartment_id: str,
    body: dict[str, Any] | None = Body(default=None),
    ctx: AuthContext = Depends(require(Capability.APARTMENT_EDIT)),
    apartments: ApartmentDirectory = Depends(get_apartments),
    users: UserDirectory = Depends(get_users),
):
    """
    Partial update.

    The body must be a JSON object. Then, in order: the listing exists (404),
    the caller may edit it (403), the body fits the caller's schema (400).
    """
    apartment = await load_apartment(apartments, apartment_id)
    enforce(authorize_apartment(ctx, Action.UPDATE, apartment), ctx)

    data = parse(apartment_update_schema(ctx), body or {})
    permit = enforce(
        authorize_apartment(ctx, Action.UPDATE, apartment, data.changes()), ctx
    )

    if "realtor" in permit.changes:
        await ensure_realtor(users, permit.changes["realtor"])

    await apartments.update(apartment_id, permit.changes)
    logger.info(f"{ctx.user_id} updated {apartment_id}: {sorted(permit.changes)}")
    return ok("Apartment updated successfully")


@router.delete("/{apartment_id}")
async def delete_apartment(
    apartment_id: str,
    ctx: AuthContext = Depends(require(Capability.APARTMENT_EDIT)),
    apartments: ApartmentDirectory = Depends(get_apartments),
):
    apartment = await load_apartment(apartments, apartment_id)
    enforce(authorize_apartment(ctx, Action.DELETE, apartment), ctx)

    await apartments.delete(apartment_id)
    logger.info(f"{ctx.user_id} deleted {apartment_id}")
    return ok("Apartment deleted successfully")
