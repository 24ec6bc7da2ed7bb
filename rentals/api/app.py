"""
FastAPI application for the Rentals API.

`create_app()` builds the app; services are created in the lifespan and
hung off `app.state` so tests can build as many isolated apps as they like.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from rentals.api import apartments, users
from rentals.api.responses import fail, ok
from rentals.auth import routes as auth_routes
from rentals.auth.context import AuthContext
from rentals.auth.jwt import CredentialService
from rentals.auth.policies import Action, authorize_user, enforce, require_auth
from rentals.config import Settings, get_settings
from rentals.core.directory import ApartmentDirectory, UserDirectory
from rentals.core.errors import RentalsError, UnclassifiedError
from rentals.core.schemas import describe
from rentals.integrations.email import EmailService
from rentals.integrations.sentry import init_sentry
from rentals.seed import ensure_admin
from rentals.storage import create_storage

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings: Settings = app.state.settings

    configure_logging(settings)
    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")

    storage = create_storage(settings)
    app.state.storage = storage
    app.state.credentials = CredentialService(settings)
    app.state.email = EmailService(settings)
    app.state.users = UserDirectory(storage)
    app.state.apartments = ApartmentDirectory(storage)

    await app.state.users.setup()
    await app.state.apartments.setup()
    await ensure_admin(app.state.users, app.state.credentials, settings)

    logger.info(f"Rentals API starting in {settings.environment} mode")

    yield

    await storage.close()
    logger.info("Rentals API shutting down")


# =============================================================================
# Error Handlers
# =============================================================================


async def handle_rentals_error(request: Request, exc: RentalsError):
    if isinstance(exc, UnclassifiedError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return fail(exc.message, exc.status_code)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = describe(errors[0]) if errors else "Invalid input"
    return fail(message, 400)


async def handle_http_error(request: Request, exc: StarletteHTTPException):
    return fail(str(exc.detail), exc.status_code)


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return fail(UnclassifiedError.default_message, 500)


# =============================================================================
# Profile
# =============================================================================


profile_router = APIRouter(tags=["auth"])


@profile_router.get("/profile")
async def get_profile(ctx: AuthContext = Depends(require_auth())):
    """The caller's own record."""
    enforce(authorize_user(ctx, Action.SELF), ctx)
    return ok(ctx.user.to_response())


# =============================================================================
# App Setup
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Rentals API",
        description="Apartment listings for clients, realtors and admins",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RentalsError, handle_rentals_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(auth_routes.router, prefix=settings.api_prefix)
    app.include_router(users.router, prefix=settings.api_prefix)
    app.include_router(apartments.router, prefix=settings.api_prefix)
    app.include_router(profile_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "rentals-api"}

    return app


app = create_app()
