"""
Tests for the authorization policy engine.

Decisions are pure: an AuthContext plus the resource in, Permit or Deny out.
"""

import pytest

from rentals.auth.capabilities import Capability, Role, get_capabilities, has_capability
from rentals.auth.context import AuthContext
from rentals.auth.policies import (
    Action,
    Deny,
    Permit,
    apartment_scope,
    apartment_update_schema,
    authorize_apartment,
    authorize_user,
    can_own_listings,
    enforce,
    extract_token,
)
from rentals.core.errors import PermissionDeniedError
from rentals.core.models import Apartment, User
from rentals.core.schemas import ApartmentAdminUpdate, ApartmentUpdate


# =============================================================================
# Fixtures
# =============================================================================


def make_user(role, id=None):
    return User(
        id=id or f"usr_{role.value}",
        email=f"{role.value}@example.com",
        password_hash="x",
        firstname="A",
        lastname="B",
        role=role,
        verified=True,
    )


def ctx_for(role, id=None):
    return AuthContext(user=make_user(role, id))


@pytest.fixture
def listing():
    return Apartment(
        id="apt_1",
        name="Loft",
        floor_area_size=80,
        price_per_month=1200,
        number_of_rooms=3,
        address="1 Main St",
        latitude=1.0,
        longitude=2.0,
        realtor="usr_realtor",
    )


# =============================================================================
# Capabilities
# =============================================================================


class TestCapabilities:
    def test_admin_has_everything_but_scoped_reads(self):
        caps = get_capabilities(Role.ADMIN)
        assert Capability.USER_MANAGE in caps
        assert Capability.APARTMENT_EDIT_ANY in caps
        assert Capability.APARTMENT_READ_OWN not in caps

    def test_client_can_only_read_and_edit_profile(self):
        assert get_capabilities(Role.CLIENT) == frozenset({
            Capability.APARTMENT_READ,
            Capability.PROFILE_EDIT,
        })

    def test_unknown_role_has_nothing(self):
        assert get_capabilities("superuser") == frozenset()
        assert get_capabilities(None) == frozenset()

    def test_has_capability_accepts_strings(self):
        assert has_capability("apartment.create", "realtor")
        assert not has_capability("apartment.create", "client")

    def test_context_can(self):
        ctx = ctx_for(Role.REALTOR)
        assert ctx.can(Capability.APARTMENT_EDIT)
        assert ctx.can("apartment.read_own")
        assert not ctx.can("apartment.edit_any")
        assert not ctx.can("no.such.capability")
        assert ctx.can_any("user.manage", "apartment.create")
        assert not ctx.can_all("user.manage", "apartment.create")


# =============================================================================
# Listing Decisions
# =============================================================================


class TestApartmentPolicy:
    def test_list_scope_per_role(self):
        assert apartment_scope(ctx_for(Role.ADMIN)) == {}
        assert apartment_scope(ctx_for(Role.REALTOR, "usr_r")) == {"realtor": "usr_r"}
        assert apartment_scope(ctx_for(Role.CLIENT)) == {"status": "Available"}

    def test_list_is_permitted_with_scope(self):
        decision = authorize_apartment(ctx_for(Role.CLIENT), Action.LIST)
        assert isinstance(decision, Permit)
        assert decision.scope == {"status": "Available"}

    def test_read_any_role(self, listing):
        for role in Role:
            assert authorize_apartment(ctx_for(role), Action.READ, listing).allowed

    def test_client_cannot_create(self):
        decision = authorize_apartment(ctx_for(Role.CLIENT), Action.CREATE, changes={"name": "x"})
        assert isinstance(decision, Deny)

    def test_realtor_create_forces_self_as_owner(self):
        ctx = ctx_for(Role.REALTOR, "usr_r")
        decision = authorize_apartment(ctx, Action.CREATE, changes={"realtor": "usr_other"})
        assert decision.changes["realtor"] == "usr_r"

    def test_admin_create_keeps_named_realtor(self):
        ctx = ctx_for(Role.ADMIN, "usr_a")
        decision = authorize_apartment(ctx, Action.CREATE, changes={"realtor": "usr_r"})
        assert decision.changes["realtor"] == "usr_r"

    @pytest.mark.parametrize("realtor", [None, ""])
    def test_admin_create_without_realtor_defaults_to_self(self, realtor):
        ctx = ctx_for(Role.ADMIN, "usr_a")
        decision = authorize_apartment(ctx, Action.CREATE, changes={"realtor": realtor})
        assert decision.changes["realtor"] == "usr_a"

    def test_owner_may_update_and_delete(self, listing):
        ctx = ctx_for(Role.REALTOR, "usr_realtor")
        assert authorize_apartment(ctx, Action.UPDATE, listing, {"name": "New"}).allowed
        assert authorize_apartment(ctx, Action.DELETE, listing).allowed

    def test_other_realtor_is_denied(self, listing):
        ctx = ctx_for(Role.REALTOR, "usr_someone_else")
        assert isinstance(authorize_apartment(ctx, Action.UPDATE, listing), Deny)
        assert isinstance(authorize_apartment(ctx, Action.DELETE, listing), Deny)

    def test_client_is_denied_even_on_unowned(self, listing):
        listing.realtor = None
        assert isinstance(authorize_apartment(ctx_for(Role.CLIENT), Action.DELETE, listing), Deny)

    def test_realtor_never_owns_an_unassigned_listing(self, listing):
        listing.realtor = None
        ctx = ctx_for(Role.REALTOR, "usr_realtor")
        assert isinstance(authorize_apartment(ctx, Action.UPDATE, listing), Deny)

    def test_admin_may_edit_any(self, listing):
        assert authorize_apartment(ctx_for(Role.ADMIN), Action.UPDATE, listing).allowed

    def test_update_changes_are_allow_listed(self, listing):
        ctx = ctx_for(Role.REALTOR, "usr_realtor")
        decision = authorize_apartment(
            ctx, Action.UPDATE, listing, {"name": "New", "realtor": "usr_x", "id": "apt_2"}
        )
        assert decision.changes == {"name": "New"}

    def test_admin_update_may_reassign(self, listing):
        decision = authorize_apartment(
            ctx_for(Role.ADMIN), Action.UPDATE, listing, {"realtor": "usr_x"}
        )
        assert decision.changes == {"realtor": "usr_x"}

    def test_update_schema_per_role(self):
        assert apartment_update_schema(ctx_for(Role.ADMIN)) is ApartmentAdminUpdate
        assert apartment_update_schema(ctx_for(Role.REALTOR)) is ApartmentUpdate

    def test_update_needs_target(self):
        with pytest.raises(ValueError):
            authorize_apartment(ctx_for(Role.ADMIN), Action.UPDATE)


# =============================================================================
# Account Decisions
# =============================================================================


class TestUserPolicy:
    def test_only_managers_manage(self):
        target = make_user(Role.CLIENT, "usr_c")
        for role in (Role.REALTOR, Role.CLIENT):
            assert isinstance(authorize_user(ctx_for(role), Action.LIST), Deny)
            assert isinstance(authorize_user(ctx_for(role), Action.READ, target), Deny)

    def test_list_scope_excludes_admins(self):
        decision = authorize_user(ctx_for(Role.ADMIN), Action.LIST)
        assert decision.scope == {"role": {"$in": ["realtor", "client"]}}

    def test_list_scope_single_role(self):
        decision = authorize_user(ctx_for(Role.ADMIN), Action.LIST, role="realtor")
        assert decision.scope == {"role": "realtor"}

    @pytest.mark.parametrize("action", [Action.READ, Action.UPDATE, Action.DELETE])
    def test_admins_are_opaque_to_each_other(self, action):
        other = make_user(Role.ADMIN, "usr_other_admin")
        decision = authorize_user(ctx_for(Role.ADMIN, "usr_a"), action, target=other)
        assert isinstance(decision, Deny)

    def test_update_drops_unknown_fields(self):
        target = make_user(Role.CLIENT, "usr_c")
        decision = authorize_user(
            ctx_for(Role.ADMIN), Action.UPDATE, target=target,
            changes={"firstname": "Z", "password_hash": "evil"},
        )
        assert decision.changes == {"firstname": "Z"}

    def test_self_scope_is_own_id(self):
        decision = authorize_user(ctx_for(Role.CLIENT, "usr_c"), Action.SELF)
        assert decision.scope == {"id": "usr_c"}

    def test_listing_ownership(self):
        assert can_own_listings(make_user(Role.REALTOR))
        assert not can_own_listings(make_user(Role.CLIENT))
        assert not can_own_listings(make_user(Role.ADMIN))


# =============================================================================
# Enforcement
# =============================================================================


class TestEnforce:
    def test_permit_passes_through(self):
        permit = Permit(scope={"a": 1})
        assert enforce(permit) is permit

    def test_deny_raises(self):
        with pytest.raises(PermissionDeniedError) as exc:
            enforce(Deny("nope"), ctx_for(Role.CLIENT))
        assert exc.value.status_code == 403
        assert exc.value.message == "Permission denied"


class TestExtractToken:
    @pytest.mark.parametrize("header,expected", [
        ("JWT abc.def.ghi", "abc.def.ghi"),
        ("JWT   padded  ", "padded"),
        ("Bearer abc", None),
        ("JWT", None),
        ("JWT ", None),
        ("", None),
        (None, None),
    ])
    def test_extract(self, header, expected):
        assert extract_token(header) == expected
