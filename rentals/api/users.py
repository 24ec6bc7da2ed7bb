"""
Account management for user managers (admins).

Every route requires `user.manage`. Admin accounts are never listed and
cannot be read, edited, or deleted here.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from rentals.api.deps import get_apartments, get_app_settings, get_credentials, get_email, get_users
from rentals.api.responses import ok
from rentals.auth.capabilities import ASSIGNABLE_ROLES, Capability
from rentals.auth.context import AuthContext
from rentals.auth.jwt import CredentialService
from rentals.auth.policies import Action, authorize_user, can_own_listings, enforce, require
from rentals.config import Settings
from rentals.core.directory import ApartmentDirectory, UserDirectory
from rentals.core.errors import NotFoundError, ValidationError
from rentals.core.models import User
from rentals.core.schemas import UserCreate, UserUpdate
from rentals.integrations.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

manage_users = require(Capability.USER_MANAGE)


async def load_user(users: UserDirectory, user_id: str, missing: str) -> User:
    user = await users.get(user_id)
    if user is None:
        raise NotFoundError(missing)
    return user


@router.get("")
async def list_users(
    role: str | None = None,
    ctx: AuthContext = Depends(manage_users),
    users: UserDirectory = Depends(get_users),
):
    """List realtors and clients, optionally only one of the two."""
    if role is not None and role not in {r.value for r in ASSIGNABLE_ROLES}:
        raise ValidationError("Invalid role")

    permit = enforce(authorize_user(ctx, Action.LIST, role=role), ctx)
    found = await users.find(permit.scope)
    return ok([u.to_response() for u in found])


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    background: BackgroundTasks,
    ctx: AuthContext = Depends(manage_users),
    users: UserDirectory = Depends(get_users),
    credentials: CredentialService = Depends(get_credentials),
    email: EmailService = Depends(get_email),
    settings: Settings = Depends(get_app_settings),
):
    """Invite a realtor or client. The new account is emailed a link."""
    permit = enforce(authorize_user(ctx, Action.CREATE, changes=data.changes()), ctx)

    fields = dict(permit.changes)
    password = fields.pop("password")
    user = await users.create(User(**fields, password_hash=credentials.hash_password(password)))
    logger.info(f"{ctx.user_id} created {user.role.value} {user.id}")

    token = None if user.verified else credentials.create_verification_token(user.email)
    if token and not settings.is_production:
        logger.debug(f"Verification token for {user.email}: {token}")
    background.add_task(email.send_invite, user.email, user.firstname, user.role.value, token)

    return ok(user.to_response(), status_code=201)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    ctx: AuthContext = Depends(manage_users),
    users: UserDirectory = Depends(get_users),
):
    target = await load_user(users, user_id, "User does not exist")
    enforce(authorize_user(ctx, Action.READ, target=target), ctx)
    return ok(target.to_response())


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: UserUpdate,
    ctx: AuthContext = Depends(manage_users),
    users: UserDirectory = Depends(get_users),
    apartments: ApartmentDirectory = Depends(get_apartments),
    credentials: CredentialService = Depends(get_credentials),
):
    """
    Partial update of any field but the id.

    Demoting a realtor to client releases their listings.
    """
    target = await load_user(users, user_id, "Can't find the user")
    permit = enforce(
        authorize_user(ctx, Action.UPDATE, target=target, changes=data.changes()), ctx
    )

    changes = dict(permit.changes)
    if "password" in changes:
        changes["password_hash"] = credentials.hash_password(changes.pop("password"))

    updated = await users.update(user_id, changes)
    if can_own_listings(target) and not can_own_listings(updated):
        await apartments.unassign_realtor(user_id)

    logger.info(f"{ctx.user_id} updated {user_id}: {sorted(permit.changes)}")
    return ok("User updated successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    ctx: AuthContext = Depends(manage_users),
    users: UserDirectory = Depends(get_users),
    apartments: ApartmentDirectory = Depends(get_apartments),
):
    target = await load_user(users, user_id, "Can't find the user")
    enforce(authorize_user(ctx, Action.DELETE, target=target), ctx)

    await users.delete(user_id)
    if can_own_listings(target):
        await apartments.unassign_realtor(user_id)

    logger.info(f"{ctx.user_id} deleted {user_id}")
    return ok("User deleted successfully")
