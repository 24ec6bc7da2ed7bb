# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints (under API_PREFIX):
#   POST /users/register        - Create a client account, email a verify link
#   POST /users/login           - Get a session token
#   POST /users/verify          - Redeem a verification token
#   POST /users/resend          - Send the verification link again
#   POST /users/profile         - Update own email / names
#   POST /users/change-password - Change own password
#
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from rentals.api.deps import get_app_settings, get_credentials, get_email, get_users
from rentals.api.responses import ok
from rentals.auth.capabilities import Capability, Role
from rentals.auth.context import AuthContext
from rentals.auth.jwt import CredentialService
from rentals.auth.policies import Action, authorize_user, enforce, require
from rentals.config import Settings
from rentals.core.directory import UserDirectory
from rentals.core.errors import (
    AuthenticationError,
    NotFoundError,
    UnverifiedAccountError,
    ValidationError,
)
from rentals.core.models import User
from rentals.core.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    ResendRequest,
    VerifyRequest,
)
from rentals.integrations.email import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["auth"])


def issue_verification(
    user: User,
    background: BackgroundTasks,
    credentials: CredentialService,
    email: EmailService,
    settings: Settings,
) -> None:
    """Create a verification token and mail it after the response is sent."""
    token = credentials.create_verification_token(user.email)
    if not settings.is_production:
        logger.debug(f"Verification token for {user.email}: {token}")
    background.add_task(email.send_verification, user.email, token)


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    background: BackgroundTasks,
    users: UserDirectory = Depends(get_users),
    credentials: CredentialService = Depends(get_credentials),
    email: EmailService = Depends(get_email),
    settings: Settings = Depends(get_app_settings),
):
    """
    Create a client account.

    The account cannot sign in until the emailed link is redeemed.
    """
    user = await users.create(User(
        email=data.email,
        password_hash=credentials.hash_password(data.password),
        firstname=data.firstname,
        lastname=data.lastname,
        role=Role.CLIENT,
        verified=False,
    ))
    logger.info(f"Registered {user.id}")

    issue_verification(user, background, credentials, email, settings)
    return ok("User registered successfully", status_code=201)


@router.post("/login")
async def login(
    data: LoginRequest,
    users: UserDirectory = Depends(get_users),
    credentials: CredentialService = Depends(get_credentials),
):
    """Exchange email and password for a session token."""
    user = await users.find_by_email(data.email)
    if user is None or not credentials.verify_password(data.password, user.password_hash):
        logger.warning(f"Failed login for {data.email}")
        raise AuthenticationError("Invalid email or password")

    if not user.verified:
        raise UnverifiedAccountError()

    return ok({
        "user": user.to_response(),
        "token": credentials.create_access_token(user.id),
    })


@router.post("/verify")
async def verify(
    data: VerifyRequest,
    users: UserDirectory = Depends(get_users),
    credentials: CredentialService = Depends(get_credentials),
):
    """Mark the account verified and sign it in."""
    address = credentials.redeem_verification_token(data.token)
    user = await users.find_by_email(address) if address else None
    if user is None:
        raise ValidationError("Token is invalid or expired")

    if user.verified:
        raise ValidationError("The user is already verified")

    user = await users.update(user.id, {"verified": True})
    logger.info(f"Verified {user.id}")

    return ok({
        "user": user.to_response(),
        "token": credentials.create_access_token(user.id),
    })


@router.post("/resend")
async def resend(
    data: ResendRequest,
    background: BackgroundTasks,
    users: UserDirectory = Depends(get_users),
    credentials: CredentialService = Depends(get_credentials),
    email: EmailService = Depends(get_email),
    settings: Settings = Depends(get_app_settings),
):
    """Send a fresh verification link."""
    user = await users.find_by_email(data.email)
    if user is None:
        raise NotFoundError("You are not registered yet")

    if user.verified:
        raise ValidationError("You have already verified email")

    issue_verification(user, background, credentials, email, settings)
    return ok("Email sent successfully")


# =============================================================================
# Self-service
# =============================================================================

@router.post("/profile")
async def update_profile(
    data: ProfileUpdate,
    ctx: AuthContext = Depends(require(Capability.PROFILE_EDIT)),
    users: UserDirectory = Depends(get_users),
):
    """Update own email, first name, or last name."""
    permit = enforce(authorize_user(ctx, Action.SELF, changes=data.changes()), ctx)
    await users.update(ctx.user_id, permit.changes)
    return ok("Profile updated successfully")


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    ctx: AuthContext = Depends(require(Capability.PROFILE_EDIT)),
    users: UserDirectory = Depends(get_users),
    credentials: CredentialService = Depends(get_credentials),
):
    """Replace own password after checking the current one."""
    enforce(authorize_user(ctx, Action.SELF), ctx)

    if not credentials.verify_password(data.old_password, ctx.user.password_hash):
        raise ValidationError("Wrong password")

    await users.update(
        ctx.user_id,
        {"password_hash": credentials.hash_password(data.new_password)},
    )
    logger.info(f"Password changed for {ctx.user_id}")
    return ok("Password changed successfully")
