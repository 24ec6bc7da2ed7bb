"""
Authentication and authorization.

- capabilities: roles and what each role may do
- context: the per-request AuthContext
- policies: Permit/Deny decisions and the `require()` dependency
- jwt: password hashing and tokens
- routes: register, login, verify, self-service

Import submodules directly; this package stays import-light because the
core records depend on `capabilities`.
"""

from rentals.auth.capabilities import (
    ASSIGNABLE_ROLES,
    Capability,
    Role,
    get_capabilities,
    has_capability,
)

__all__ = [
    "Role",
    "Capability",
    "ASSIGNABLE_ROLES",
    "get_capabilities",
    "has_capability",
]
