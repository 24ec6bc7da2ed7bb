"""
Auth context - the "who can do what" for each request.

This is the lightweight object passed to route handlers.
It contains everything needed to make authorization decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from rentals.auth.capabilities import Capability, get_capabilities
from rentals.core.models import User


@dataclass
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require(Capability.USER_MANAGE))):
            print(f"User {ctx.user_id} is managing accounts")
    """

    user: User

    # Computed capabilities (cached)
    _capabilities: frozenset[Capability] = field(default_factory=frozenset, repr=False)

    def __post_init__(self):
        """Compute capabilities from role."""
        self._capabilities = get_capabilities(self.user.role)

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def capabilities(self) -> frozenset[Capability]:
        """All capabilities this user has."""
        return self._capabilities

    def can(self, capability: Capability | str) -> bool:
        """
        Check if user has a capability.

        Usage:
            if ctx.can("apartment.edit_any"):
                # do something
        """
        if isinstance(capability, str):
            try:
                capability = Capability(capability)
            except ValueError:
                return False
        return capability in self._capabilities

    def can_any(self, *capabilities: Capability | str) -> bool:
        """Check if user has ANY of the capabilities."""
        return any(self.can(c) for c in capabilities)

    def can_all(self, *capabilities: Capability | str) -> bool:
        """Check if user has ALL of the capabilities."""
        return all(self.can(c) for c in capabilities)

    def owns(self, owner_id: str | None) -> bool:
        """Is the acting user the given owner?"""
        return owner_id is not None and owner_id == self.user.id
