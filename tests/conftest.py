"""
Shared fixtures: an isolated app with in-memory storage and a cheap
password hash, plus helpers to create accounts and listings directly.
"""

import asyncio
import itertools

import pytest
from fastapi.testclient import TestClient

from rentals.api.app import create_app
from rentals.auth.capabilities import Role
from rentals.config import Settings
from rentals.core.models import Apartment, User

PASSWORD = "password123"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="test",
        database_url="",
        jwt_secret_key="test-secret",
        password_hash_iterations=1000,
        admin_email="admin@example.com",
        admin_password="qwer1234",
        aws_access_key_id="",
        aws_secret_access_key="",
        sentry_dsn="",
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def state(client):
    return client.app.state


@pytest.fixture
def make_user(state):
    """Create an account straight in the directory."""
    counter = itertools.count(1)

    def _make(role=Role.CLIENT, verified=True, email=None, password=PASSWORD):
        user = User(
            email=email or f"{role.value}{next(counter)}@example.com",
            password_hash=state.credentials.hash_password(password),
            firstname="Test",
            lastname=role.value.title(),
            role=role,
            verified=verified,
        )
        return asyncio.run(state.users.create(user))

    return _make


@pytest.fixture
def headers(state):
    """Authorization headers for a user."""

    def _headers(user):
        return {"Authorization": f"JWT {state.credentials.create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def make_apartment(state):
    """Create a listing straight in the directory."""

    def _make(realtor=None, **overrides):
        data = {
            "name": "Loft",
            "floor_area_size": 80,
            "price_per_month": 1200,
            "number_of_rooms": 3,
            "address": "1 Main St",
            "latitude": 40.7,
            "longitude": -74.0,
            "realtor": realtor.id if realtor else None,
            **overrides,
        }
        return asyncio.run(state.apartments.create(Apartment(**data)))

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def realtor(make_user):
    return make_user(Role.REALTOR)


@pytest.fixture
def other_realtor(make_user):
    return make_user(Role.REALTOR)


@pytest.fixture
def client_user(make_user):
    return make_user(Role.CLIENT)


@pytest.fixture
def apartment_payload():
    """Build a valid create body in wire format."""

    def _payload(**overrides):
        return {
            "name": "Garden flat",
            "description": "Quiet street",
            "floorAreaSize": 65.5,
            "pricePerMonth": 950,
            "numberOfRooms": 2,
            "address": "22 Elm Road",
            "latitude": 51.5,
            "longitude": -0.12,
            "status": "Available",
            **overrides,
        }

    return _payload
