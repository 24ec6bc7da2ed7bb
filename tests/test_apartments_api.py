"""
API tests for apartment listings: role scoping, filters, ownership.
"""

import asyncio
import json

import pytest

API = "/api/v1"


def ids(response):
    return {a["id"] for a in response.json()["data"]}


def as_json(headers, body):
    """Send `body` verbatim, including non-standard literals like NaN."""
    return {"content": json.dumps(body), "headers": {**headers, "Content-Type": "application/json"}}


@pytest.fixture
def listings(make_apartment, realtor, other_realtor):
    """Four listings across two realtors, one rented, one unassigned."""
    return {
        "mine": make_apartment(realtor, name="Mine", floor_area_size=50, number_of_rooms=1),
        "mine_rented": make_apartment(
            realtor, name="Mine rented", status="Rented", price_per_month=3000, number_of_rooms=4
        ),
        "theirs": make_apartment(other_realtor, name="Theirs", floor_area_size=120, number_of_rooms=3),
        "unassigned": make_apartment(None, name="Orphan", price_per_month=700, number_of_rooms=2),
    }


# =============================================================================
# Listing and Filtering
# =============================================================================


class TestListScope:
    def test_client_sees_only_available(self, client, client_user, headers, listings):
        response = client.get(f"{API}/apartments", headers=headers(client_user))
        assert response.status_code == 200
        assert ids(response) == {
            listings["mine"].id, listings["theirs"].id, listings["unassigned"].id
        }
        assert all(a["status"] == "Available" for a in response.json()["data"])

    def test_realtor_sees_only_own(self, client, realtor, headers, listings):
        response = client.get(f"{API}/apartments", headers=headers(realtor))
        assert ids(response) == {listings["mine"].id, listings["mine_rented"].id}

    def test_admin_sees_all(self, client, admin, headers, listings):
        response = client.get(f"{API}/apartments", headers=headers(admin))
        assert ids(response) == {a.id for a in listings.values()}

    def test_anonymous(self, client):
        assert client.get(f"{API}/apartments").status_code == 401

    def test_wire_format_is_camel_case(self, client, admin, headers, listings):
        response = client.get(f"{API}/apartments/{listings['mine'].id}", headers=headers(admin))
        data = response.json()["data"]
        assert data["floorAreaSize"] == 50
        assert data["pricePerMonth"] == 1200
        assert data["numberOfRooms"] == 1
        assert "floor_area_size" not in data

    def test_owner_is_embedded(self, client, client_user, realtor, headers, listings):
        response = client.get(f"{API}/apartments", headers=headers(client_user))
        by_id = {a["id"]: a for a in response.json()["data"]}

        owner = by_id[listings["mine"].id]["realtor"]
        assert owner["id"] == realtor.id
        assert owner["email"] == realtor.email
        assert "passwordHash" not in owner
        assert by_id[listings["unassigned"].id]["realtor"] is None


class TestFilters:
    def test_single_filter(self, client, admin, headers, listings):
        response = client.get(
            f"{API}/apartments", params={"roomsOp": "eq", "roomsVal": 3}, headers=headers(admin)
        )
        assert ids(response) == {listings["theirs"].id}

    def test_filters_intersect(self, client, admin, headers, listings):
        auth = headers(admin)
        price = ids(client.get(
            f"{API}/apartments", params={"priceOp": "lt", "priceVal": 2000}, headers=auth
        ))
        rooms = ids(client.get(
            f"{API}/apartments", params={"roomsOp": "gt", "roomsVal": 1}, headers=auth
        ))
        both = ids(client.get(
            f"{API}/apartments",
            params={"priceOp": "lt", "priceVal": 2000, "roomsOp": "gt", "roomsVal": 1},
            headers=auth,
        ))
        assert both == price & rooms == {listings["theirs"].id, listings["unassigned"].id}

    def test_filter_within_scope(self, client, client_user, headers, listings):
        response = client.get(
            f"{API}/apartments", params={"roomsOp": "gt", "roomsVal": 3}, headers=headers(client_user)
        )
        # The only 4-room listing is rented
        assert ids(response) == set()

    def test_half_a_filter_is_ignored(self, client, admin, headers, listings):
        response = client.get(f"{API}/apartments", params={"sizeOp": "gt"}, headers=headers(admin))
        assert len(response.json()["data"]) == 4

    def test_bad_operator(self, client, client_user, headers):
        response = client.get(
            f"{API}/apartments", params={"priceOp": "lte", "priceVal": 10}, headers=headers(client_user)
        )
        assert response.status_code == 400
        assert response.json() == {"success": 0, "data": '"priceOp" must be one of [gt, lt, eq]'}

    def test_rooms_must_be_integer(self, client, client_user, headers):
        response = client.get(
            f"{API}/apartments", params={"roomsOp": "eq", "roomsVal": "2.5"}, headers=headers(client_user)
        )
        assert response.status_code == 400
        assert response.json()["data"] == '"roomsVal" must be an integer'

    def test_non_finite_value(self, client, client_user, headers, listings):
        response = client.get(
            f"{API}/apartments", params={"priceOp": "lt", "priceVal": "NaN"}, headers=headers(client_user)
        )
        assert response.status_code == 400
        assert response.json()["data"] == '"priceVal" must be a number'


# =============================================================================
# Single Listing
# =============================================================================


class TestGet:
    def test_any_role_reads_by_id(self, client, client_user, headers, listings):
        # Not scoped: a client may open a rented listing directly
        response = client.get(
            f"{API}/apartments/{listings['mine_rented'].id}", headers=headers(client_user)
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Rented"

    def test_owner_is_embedded(self, client, client_user, realtor, headers, listings):
        response = client.get(f"{API}/apartments/{listings['mine'].id}", headers=headers(client_user))
        owner = response.json()["data"]["realtor"]
        assert owner["id"] == realtor.id
        assert owner["role"] == "realtor"
        assert "passwordHash" not in owner

    def test_owner_deleted_reads_as_none(self, client, state, admin, realtor, headers, listings):
        asyncio.run(state.users.delete(realtor.id))
        response = client.get(f"{API}/apartments/{listings['mine'].id}", headers=headers(admin))
        assert response.status_code == 200
        assert response.json()["data"]["realtor"] is None

    def test_missing(self, client, client_user, headers):
        response = client.get(f"{API}/apartments/apt_missing", headers=headers(client_user))
        assert response.status_code == 404
        assert response.json()["data"] == "Can't find the apartment"


# =============================================================================
# Create
# =============================================================================


class TestCreate:
    def test_realtor_becomes_owner(self, client, realtor, headers, apartment_payload):
        response = client.post(f"{API}/apartments", json=apartment_payload(), headers=headers(realtor))
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["realtor"] == realtor.id
        assert data["id"].startswith("apt_")

    def test_realtor_cannot_assign_someone_else(
        self, client, realtor, other_realtor, headers, apartment_payload
    ):
        response = client.post(
            f"{API}/apartments",
            json=apartment_payload(realtor=other_realtor.id),
            headers=headers(realtor),
        )
        assert response.json()["data"]["realtor"] == realtor.id

    def test_admin_assigns_realtor(self, client, admin, realtor, headers, apartment_payload):
        response = client.post(
            f"{API}/apartments", json=apartment_payload(realtor=realtor.id), headers=headers(admin)
        )
        assert response.status_code == 201
        assert response.json()["data"]["realtor"] == realtor.id

    def test_admin_without_realtor_owns_it(self, client, admin, headers, apartment_payload):
        response = client.post(
            f"{API}/apartments", json=apartment_payload(realtor=""), headers=headers(admin)
        )
        assert response.json()["data"]["realtor"] == admin.id

    def test_admin_must_name_a_real_realtor(
        self, client, admin, client_user, headers, apartment_payload
    ):
        for bogus in ("usr_missing", client_user.id):
            response = client.post(
                f"{API}/apartments", json=apartment_payload(realtor=bogus), headers=headers(admin)
            )
            assert response.status_code == 400
            assert response.json()["data"] == '"realtor" must reference an existing realtor'

    def test_client_cannot_create(self, client, client_user, headers, apartment_payload):
        response = client.post(
            f"{API}/apartments", json=apartment_payload(), headers=headers(client_user)
        )
        assert response.status_code == 403

    def test_validation(self, client, realtor, headers, apartment_payload):
        body = apartment_payload()
        del body["latitude"]
        response = client.post(f"{API}/apartments", json=body, headers=headers(realtor))
        assert response.status_code == 400
        assert response.json()["data"] == '"latitude" is required'

    def test_positive_rooms(self, client, realtor, headers, apartment_payload):
        response = client.post(
            f"{API}/apartments", json=apartment_payload(numberOfRooms=0), headers=headers(realtor)
        )
        assert response.status_code == 400

    def test_non_finite_numbers_are_rejected(
        self, client, realtor, client_user, headers, apartment_payload
    ):
        for field, value in (("latitude", float("nan")), ("floorAreaSize", float("inf"))):
            response = client.post(
                f"{API}/apartments",
                **as_json(headers(realtor), apartment_payload(**{field: value})),
            )
            assert response.status_code == 400
            assert response.json() == {"success": 0, "data": f'"{field}" must be a number'}

        # Nothing was stored, so listing still serializes
        response = client.get(f"{API}/apartments", headers=headers(client_user))
        assert response.status_code == 200
        assert response.json()["data"] == []


# =============================================================================
# Update / Delete
# =============================================================================


class TestUpdate:
    def test_owner_updates(self, client, state, realtor, headers, listings):
        listing = listings["mine"]
        response = client.put(
            f"{API}/apartments/{listing.id}",
            json={"status": "Rented", "pricePerMonth": 1500},
            headers=headers(realtor),
        )
        assert response.status_code == 200
        assert response.json()["data"] == "Apartment updated successfully"

        stored = asyncio.run(state.apartments.get(listing.id))
        assert stored.status.value == "Rented"
        assert stored.price_per_month == 1500
        assert stored.name == "Mine"

    def test_other_realtor_is_denied(self, client, other_realtor, headers, listings):
        response = client.put(
            f"{API}/apartments/{listings['mine'].id}",
            json={"name": "Hijacked"},
            headers=headers(other_realtor),
        )
        assert response.status_code == 403
        assert response.json()["data"] == "Permission denied"

    def test_realtor_cannot_touch_unassigned(self, client, realtor, headers, listings):
        response = client.put(
            f"{API}/apartments/{listings['unassigned'].id}",
            json={"name": "Mine now"},
            headers=headers(realtor),
        )
        assert response.status_code == 403

    def test_realtor_cannot_reassign(self, client, realtor, other_realtor, headers, listings):
        response = client.put(
            f"{API}/apartments/{listings['mine'].id}",
            json={"realtor": other_realtor.id},
            headers=headers(realtor),
        )
        assert response.status_code == 400
        assert response.json()["data"] == '"realtor" is not allowed'

    def test_admin_reassigns(self, client, state, admin, other_realtor, headers, listings):
        listing = listings["mine"]
        response = client.put(
            f"{API}/apartments/{listing.id}",
            json={"realtor": other_realtor.id},
            headers=headers(admin),
        )
        assert response.status_code == 200
        assert asyncio.run(state.apartments.get(listing.id)).realtor == other_realtor.id

    def test_admin_reassign_to_non_realtor(self, client, admin, client_user, headers, listings):
        response = client.put(
            f"{API}/apartments/{listings['mine'].id}",
            json={"realtor": client_user.id},
            headers=headers(admin),
        )
        assert response.status_code == 400

    def test_client_is_denied(self, client, client_user, headers, listings):
        response = client.put(
            f"{API}/apartments/{listings['mine'].id}",
            json={"name": "x"},
            headers=headers(client_user),
        )
        assert response.status_code == 403

    def test_missing(self, client, admin, headers):
        response = client.put(
            f"{API}/apartments/apt_missing", json={"name": "x"}, headers=headers(admin)
        )
        assert response.status_code == 404

    def test_bad_value(self, client, realtor, headers, listings):
        response = client.put(
            f"{API}/apartments/{listings['mine'].id}",
            json={"status": "Sold"},
            headers=headers(realtor),
        )
        assert response.status_code == 400
        assert response.json()["data"] == '"status" must be one of [Available, Rented]'

    def test_empty_body_is_a_no_op(self, client, realtor, headers, listings):
        response = client.put(f"{API}/apartments/{listings['mine'].id}", headers=headers(realtor))
        assert response.status_code == 200

    def test_body_must_be_an_object(self, client, realtor, headers, listings):
        url = f"{API}/apartments/{listings['mine'].id}"
        response = client.put(url, **as_json(headers(realtor), ["name", "x"]))
        assert response.status_code == 400
        assert response.json()["data"].endswith("must be an object")

        response = client.put(
            url,
            content="{\"name\": ",
            headers={**headers(realtor), "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["data"] == "Invalid JSON body"

    def test_non_finite_update(self, client, state, realtor, headers, listings):
        listing = listings["mine"]
        response = client.put(
            f"{API}/apartments/{listing.id}",
            **as_json(headers(realtor), {"pricePerMonth": float("inf")}),
        )
        assert response.status_code == 400
        assert response.json()["data"] == '"pricePerMonth" must be a number'
        assert asyncio.run(state.apartments.get(listing.id)).price_per_month == 1200


class TestDelete:
    def test_owner_deletes_then_404(self, client, realtor, headers, listings):
        auth = headers(realtor)
        url = f"{API}/apartments/{listings['mine'].id}"

        response = client.delete(url, headers=auth)
        assert response.status_code == 200
        assert response.json()["data"] == "Apartment deleted successfully"

        response = client.delete(url, headers=auth)
        assert response.status_code == 404
        assert response.json()["data"] == "Can't find the apartment"

    def test_other_realtor_is_denied(self, client, state, other_realtor, headers, listings):
        listing = listings["mine"]
        response = client.delete(f"{API}/apartments/{listing.id}", headers=headers(other_realtor))
        assert response.status_code == 403
        assert asyncio.run(state.apartments.get(listing.id)) is not None

    def test_admin_deletes_any(self, client, admin, headers, listings):
        response = client.delete(f"{API}/apartments/{listings['theirs'].id}", headers=headers(admin))
        assert response.status_code == 200


class TestScenario:
    def test_realtor_listing_is_guarded_from_other_realtor(
        self, client, realtor, other_realtor, headers, apartment_payload
    ):
        created = client.post(
            f"{API}/apartments", json=apartment_payload(), headers=headers(realtor)
        ).json()["data"]
        assert created["realtor"] == realtor.id

        response = client.put(
            f"{API}/apartments/{created['id']}",
            json={"name": "Taken over"},
            headers=headers(other_realtor),
        )
        assert response.status_code == 403
