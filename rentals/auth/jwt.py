# =============================================================================
# Credentials and Tokens
# =============================================================================
#
# This module provides:
#   - Password hashing (salted PBKDF2-SHA256, configurable work factor)
#   - Session tokens (JWT, 24h by default)
#   - Email verification tokens (base64-wrapped JWT carrying the email)
#
# All of it is built once from Settings and shared through app.state.
#
# =============================================================================

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from jwt.utils import base64url_decode, base64url_encode
from pydantic import BaseModel

from rentals.config import Settings
from rentals.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT session token payload."""
    sub: str  # user_id
    exp: datetime
    iat: datetime
    type: str
    jti: str  # unique token ID


# =============================================================================
# Errors
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


ACCESS = "access"
VERIFY = "verify"


# =============================================================================
# Credential Service
# =============================================================================

class CredentialService:
    """Password hashing and token handling bound to one Settings object."""

    def __init__(self, settings: Settings):
        self.settings = settings

    # -------------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------------

    def _derive(self, password: str, salt: str, iterations: int) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            iterations=iterations,
        ).hex()

    def hash_password(self, password: str) -> str:
        """
        Hash a password using PBKDF2-SHA256.

        Returns: iterations:salt:hash format string, so the work factor
        can be raised later without invalidating existing hashes.
        """
        iterations = self.settings.password_hash_iterations
        salt = secrets.token_hex(16)
        return f"{iterations}:{salt}:{self._derive(password, salt, iterations)}"

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash."""
        try:
            iterations, salt, stored_hash = password_hash.split(":")
            candidate = self._derive(password, salt, int(iterations))
        except (ValueError, AttributeError):
            return False
        return secrets.compare_digest(candidate, stored_hash)

    # -------------------------------------------------------------------------
    # Session tokens
    # -------------------------------------------------------------------------

    def create_access_token(self, user_id: str) -> str:
        """Create a JWT session token for a user."""
        now = utc_now()
        expire = now + timedelta(minutes=self.settings.jwt_access_token_expire_minutes)

        payload = {
            "sub": user_id,
            "exp": expire,
            "iat": now,
            "type": ACCESS,
            "jti": generate_id("tok"),
        }

        return jwt.encode(
            payload,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm,
        )

    def decode_token(self, token: str, expected_type: str = ACCESS) -> TokenPayload:
        """
        Decode and validate a JWT session token.

        Raises:
            TokenExpiredError: Token has expired
            TokenInvalidError: Token is invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}")

        if payload.get("type") != expected_type:
            raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")

        try:
            return TokenPayload(
                sub=payload["sub"],
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                type=payload["type"],
                jti=payload.get("jti", ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenInvalidError(f"Invalid token claims: {e}")

    def validate_session_token(self, token: str) -> str | None:
        """Return the user id for a valid session token, None otherwise."""
        try:
            return self.decode_token(token).sub
        except TokenError as e:
            logger.debug(f"Rejected session token: {e}")
            return None

    # -------------------------------------------------------------------------
    # Email verification tokens
    # -------------------------------------------------------------------------

    def create_verification_token(self, email: str) -> str:
        """Create an opaque, signed, expiring token carrying an email."""
        now = utc_now()
        expire = now + timedelta(hours=self.settings.verification_token_expire_hours)

        token = jwt.encode(
            {"email": email, "exp": expire, "iat": now, "type": VERIFY},
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm,
        )
        return base64.urlsafe_b64encode(token.encode("utf-8")).decode("ascii")

    def redeem_verification_token(self, token: str) -> str | None:
        """
        Recover the email from a verification token.

        Tampered, malformed, expired, or wrong-type tokens all return None.
        """
        try:
            data = base64.urlsafe_b64decode(token.encode("ascii"))
            # Non-canonical spellings of the same bytes are not the issued token
            if base64.urlsafe_b64encode(data).decode("ascii") != token:
                raise ValueError("non-canonical encoding")
            raw = data.decode("utf-8")
            for segment in raw.split("."):
                if base64url_encode(base64url_decode(segment)).decode("ascii") != segment:
                    raise ValueError("non-canonical segment")
            payload = jwt.decode(
                raw,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm],
            )
        except (binascii.Error, UnicodeError, ValueError, jwt.InvalidTokenError) as e:
            logger.debug(f"Rejected verification token: {e}")
            return None

        if payload.get("type") != VERIFY or not isinstance(payload.get("email"), str):
            return None
        return payload["email"]
