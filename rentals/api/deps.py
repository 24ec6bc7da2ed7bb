"""
Dependencies that hand out the services built at startup.

Everything lives on `app.state` (see `rentals.api.app.lifespan`).
"""

from __future__ import annotations

from fastapi import Request

from rentals.auth.jwt import CredentialService
from rentals.config import Settings
from rentals.core.directory import ApartmentDirectory, UserDirectory
from rentals.integrations.email import EmailService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_users(request: Request) -> UserDirectory:
    return request.app.state.users


def get_apartments(request: Request) -> ApartmentDirectory:
    return request.app.state.apartments


def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_email(request: Request) -> EmailService:
    return request.app.state.email
