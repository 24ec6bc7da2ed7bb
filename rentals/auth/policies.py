"""
Policies - the single place where access decisions are made.

Two layers live here:

1. Pure decision functions. Given an AuthContext, the resource being acted
   on, and the requested changes, they return `Permit(scope, changes)` or
   `Deny(reason)`. No I/O, no exceptions for ordinary denials.
   - `scope` is a predicate that MUST be merged into the directory query.
   - `changes` is the allow-listed set of fields the caller may write.

2. FastAPI dependencies. `require()` resolves the caller from the
   `Authorization: JWT <token>` header and checks route-level capabilities:

       @router.post("/apartments")
       async def create(ctx: AuthContext = Depends(require(Capability.APARTMENT_CREATE))):
           ...

Handlers never compare roles themselves; they ask this module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Union

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from rentals.auth.capabilities import ASSIGNABLE_ROLES, Capability, get_capabilities
from rentals.auth.context import AuthContext
from rentals.core.errors import AuthenticationError, PermissionDeniedError
from rentals.core.models import Apartment, ApartmentStatus, User
from rentals.core.schemas import ApartmentAdminUpdate, ApartmentUpdate, UserUpdate
from rentals.integrations.sentry import set_user

logger = logging.getLogger(__name__)


# =============================================================================
# Decisions
# =============================================================================


class Action(str, Enum):
    """Operations a policy can be asked about."""

    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SELF = "self"  # Profile, change-password, GET /profile


@dataclass(frozen=True)
class Permit:
    """The action may proceed, restricted to `scope` and `changes`."""

    scope: dict[str, Any] = field(default_factory=dict)
    changes: dict[str, Any] = field(default_factory=dict)

    allowed: ClassVar[bool] = True


@dataclass(frozen=True)
class Deny:
    """The action must stop before touching the data layer."""

    reason: str = "Permission denied"

    allowed: ClassVar[bool] = False


Decision = Union[Permit, Deny]


def enforce(decision: Decision, ctx: AuthContext | None = None) -> Permit:
    """
    Turn a decision into a Permit or raise.

    Raises:
        PermissionDeniedError: the decision was a Deny
    """
    if isinstance(decision, Deny):
        logger.warning(
            f"Permission denied for {ctx.user_id if ctx else 'anonymous'}: {decision.reason}"
        )
        raise PermissionDeniedError()
    return decision


# =============================================================================
# Apartments
# =============================================================================


def apartment_scope(ctx: AuthContext) -> dict[str, Any]:
    """The predicate every listing query by this actor is restricted to."""
    if ctx.can(Capability.APARTMENT_READ_ALL):
        return {}
    if ctx.can(Capability.APARTMENT_READ_OWN):
        return {"realtor": ctx.user_id}
    return {"status": ApartmentStatus.AVAILABLE.value}


def apartment_update_schema(ctx: AuthContext) -> type[ApartmentUpdate]:
    """
    Pick the update schema for this actor.

    Without `apartment.assign_realtor` the schema has no `realtor` field and
    forbids unknown keys, so submitting one is a validation error.
    """
    if ctx.can(Capability.APARTMENT_ASSIGN_REALTOR):
        return ApartmentAdminUpdate
    return ApartmentUpdate


def authorize_apartment(
    ctx: AuthContext,
    action: Action,
    apartment: Apartment | None = None,
    changes: dict[str, Any] | None = None,
) -> Decision:
    """
    Decide whether `ctx` may perform `action` on listings.

    - LIST: always permitted, scoped by role
    - READ: any authenticated actor, no ownership filter
    - CREATE: creators only; `realtor` is forced to the actor unless they
      may assign listings and actually named someone
    - UPDATE/DELETE: editors only, and only their own listing unless they
      may edit any
    """
    if not ctx.can(Capability.APARTMENT_READ):
        return Deny("Cannot access apartments")

    if action == Action.LIST:
        return Permit(scope=apartment_scope(ctx))

    if action == Action.READ:
        return Permit()

    if action == Action.CREATE:
        if not ctx.can(Capability.APARTMENT_CREATE):
            return Deny("Cannot create apartments")
        data = dict(changes or {})
        if not data.get("realtor") or not ctx.can(Capability.APARTMENT_ASSIGN_REALTOR):
            data["realtor"] = ctx.user_id
        return Permit(changes=data)

    if action in (Action.UPDATE, Action.DELETE):
        if apartment is None:
            raise ValueError(f"{action.value} needs the target apartment")
        if not ctx.can(Capability.APARTMENT_EDIT):
            return Deny("Cannot edit apartments")
        if not (ctx.can(Capability.APARTMENT_EDIT_ANY) or ctx.owns(apartment.realtor)):
            return Deny(f"Apartment {apartment.id} belongs to another realtor")
        if action == Action.DELETE:
            return Permit()
        allowed = apartment_update_schema(ctx).model_fields
        return Permit(changes={k: v for k, v in (changes or {}).items() if k in allowed})

    return Deny(f"Unsupported apartment action: {action.value}")


# =============================================================================
# Users
# =============================================================================


def user_scope(ctx: AuthContext, role: str | None = None) -> dict[str, Any]:
    """Accounts visible to a user manager: never other managers."""
    if role is not None:
        return {"role": role}
    return {"role": {"$in": [r.value for r in ASSIGNABLE_ROLES]}}


def is_manageable(target: User) -> bool:
    """Accounts that can themselves manage users are opaque to each other."""
    return Capability.USER_MANAGE not in get_capabilities(target.role)


def can_own_listings(user: User) -> bool:
    """Whether listings may be assigned to this account (realtors)."""
    return Capability.APARTMENT_READ_OWN in get_capabilities(user.role)


def authorize_user(
    ctx: AuthContext,
    action: Action,
    target: User | None = None,
    changes: dict[str, Any] | None = None,
    role: str | None = None,
) -> Decision:
    """
    Decide whether `ctx` may perform `action` on accounts.

    - SELF: any authenticated actor, on their own record only
    - everything else: user managers only, never on another manager
    """
    if action == Action.SELF:
        if not ctx.can(Capability.PROFILE_EDIT):
            return Deny("Cannot edit profile")
        return Permit(scope={"id": ctx.user_id}, changes=dict(changes or {}))

    if not ctx.can(Capability.USER_MANAGE):
        return Deny("Cannot manage users")

    if action == Action.LIST:
        return Permit(scope=user_scope(ctx, role))

    if action == Action.CREATE:
        return Permit(changes=dict(changes or {}))

    if action in (Action.READ, Action.UPDATE, Action.DELETE):
        if target is None:
            raise ValueError(f"{action.value} needs the target user")
        if not is_manageable(target):
            return Deny(f"User {target.id} cannot be managed")
        if action == Action.UPDATE:
            allowed = UserUpdate.model_fields
            return Permit(changes={k: v for k, v in (changes or {}).items() if k in allowed})
        return Permit()

    return Deny(f"Unsupported user action: {action.value}")


# =============================================================================
# FastAPI Dependencies
# =============================================================================


authorization_header = APIKeyHeader(
    name="Authorization",
    scheme_name="JWT",
    description="JWT <token>",
    auto_error=False,
)


def extract_token(header: str | None) -> str | None:
    """Pull the token out of an `Authorization: JWT <token>` header."""
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme != "JWT" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    request: Request,
    authorization: str | None = Depends(authorization_header),
) -> User:
    """
    Resolve the caller from their session token.

    Raises:
        AuthenticationError: no token, bad token, or the user is gone
    """
    token = extract_token(authorization)
    if token is None:
        raise AuthenticationError()

    user_id = request.app.state.credentials.validate_session_token(token)
    if user_id is None:
        raise AuthenticationError()

    user = await request.app.state.users.get(user_id)
    if user is None:
        raise AuthenticationError()

    set_user(user.id)
    return user


def require(*capabilities: Capability | str) -> Callable:
    """
    Require authentication plus every listed capability.

    Returns:
        FastAPI Depends that resolves to AuthContext
    """

    async def dependency(user: User = Depends(get_current_user)) -> AuthContext:
        ctx = AuthContext(user=user)
        if not ctx.can_all(*capabilities):
            missing = [str(Capability(c).value) for c in capabilities if not ctx.can(c)]
            enforce(Deny(f"Missing permissions: {missing}"), ctx)
        return ctx

    return dependency


def require_auth() -> Callable:
    """Just require authentication, no specific capability."""
    return require()
