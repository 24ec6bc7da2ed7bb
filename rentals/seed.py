"""
Startup seeding: make sure an admin account exists.
"""

from __future__ import annotations

import logging

from rentals.auth.capabilities import Role
from rentals.auth.jwt import CredentialService
from rentals.config import Settings
from rentals.core.directory import UserDirectory
from rentals.core.models import User

logger = logging.getLogger(__name__)


async def ensure_admin(
    users: UserDirectory,
    credentials: CredentialService,
    settings: Settings,
) -> User | None:
    """
    Create the admin from ADMIN_EMAIL / ADMIN_PASSWORD if there is none.

    Returns the new account, or None when an admin already exists.
    """
    if await users.find_one({"role": Role.ADMIN.value}) is not None:
        logger.debug("Admin account present, skipping seed")
        return None

    admin = await users.create(User(
        email=settings.admin_email,
        password_hash=credentials.hash_password(settings.admin_password),
        firstname="Admin",
        lastname="User",
        role=Role.ADMIN,
        verified=True,
    ))
    logger.info(f"Seeded admin account {admin.email}")
    return admin
