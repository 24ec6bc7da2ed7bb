"""
Roles and capabilities.

This defines WHAT each role can do, not HOW we check it.
The actual checking happens in policies.py.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Platform-wide account role."""

    ADMIN = "admin"        # Manages every account and listing
    REALTOR = "realtor"    # Manages their own listings
    CLIENT = "client"      # Browses available listings


# Roles an admin may hand out through the API. Admin accounts are seeded only.
ASSIGNABLE_ROLES: tuple[Role, ...] = (Role.REALTOR, Role.CLIENT)


class Capability(str, Enum):
    """
    Fine-grained capabilities.

    A user's capabilities are derived from their role.
    """

    # Listings
    APARTMENT_READ = "apartment.read"
    APARTMENT_READ_ALL = "apartment.read_all"      # Unscoped listing
    APARTMENT_READ_OWN = "apartment.read_own"      # Listing scoped to own apartments
    APARTMENT_CREATE = "apartment.create"
    APARTMENT_EDIT = "apartment.edit"              # Update/delete own apartments
    APARTMENT_EDIT_ANY = "apartment.edit_any"
    APARTMENT_ASSIGN_REALTOR = "apartment.assign_realtor"

    # Accounts
    USER_MANAGE = "user.manage"
    PROFILE_EDIT = "profile.edit"


# =============================================================================
# Capability Mappings
# =============================================================================


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset({
        Capability.APARTMENT_READ,
        Capability.APARTMENT_READ_ALL,
        Capability.APARTMENT_CREATE,
        Capability.APARTMENT_EDIT,
        Capability.APARTMENT_EDIT_ANY,
        Capability.APARTMENT_ASSIGN_REALTOR,
        Capability.USER_MANAGE,
        Capability.PROFILE_EDIT,
    }),
    Role.REALTOR: frozenset({
        Capability.APARTMENT_READ,
        Capability.APARTMENT_READ_OWN,
        Capability.APARTMENT_CREATE,
        Capability.APARTMENT_EDIT,
        Capability.PROFILE_EDIT,
    }),
    Role.CLIENT: frozenset({
        Capability.APARTMENT_READ,
        Capability.PROFILE_EDIT,
    }),
}


def get_capabilities(role: Role | str | None) -> frozenset[Capability]:
    """Get all capabilities granted by a role. Unknown roles get nothing."""
    if role is None:
        return frozenset()
    try:
        role = Role(role)
    except ValueError:
        return frozenset()
    return ROLE_CAPABILITIES.get(role, frozenset())


def has_capability(capability: Capability | str, role: Role | str | None) -> bool:
    """Check if a role has a specific capability."""
    if isinstance(capability, str):
        capability = Capability(capability)
    return capability in get_capabilities(role)
