"""JWT access token verification.

Access tokens are minted by the core API with a shared secret. The payload
carries the user id (sub), display name and role, which is everything the
gateway needs to address a user's connections.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import ValidationError

from notifyhub.auth.identity import AuthUser, Role
from notifyhub.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    user_id: str,
    name: str,
    role: Role = Role.USER,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token (dev tooling and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "name": name,
        "role": Role(role).value,
        "type": "access",
        "exp": now + timedelta(
            minutes=expires_minutes or settings.access_token_expire_minutes
        ),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")


async def validate_access_token(token: str) -> AuthUser:
    """Validate an access token and return the identity it carries.

    Refresh tokens and tokens without the identity claims are rejected.
    """
    payload = verify_token(token)
    if payload.get("type", "access") != "access":
        raise TokenError("Not an access token")
    try:
        return AuthUser(
            id=payload["sub"],
            name=payload["name"],
            role=payload["role"],
        )
    except (KeyError, ValidationError) as e:
        raise TokenError(f"Malformed token claims: {e}")
