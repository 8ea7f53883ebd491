"""FastAPI auth dependencies for the producer API.

Producers (the notification service, ops tooling) call the HTTP API with
a Bearer access token. Only ADMIN identities may publish events.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from notifyhub.auth.identity import AuthUser
from notifyhub.auth.jwt import TokenError, validate_access_token


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> AuthUser:
    """Extract the caller's identity (required — 401 if no auth)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await validate_access_token(authorization[7:])
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_admin(
    user: AuthUser = Depends(get_current_user),
) -> AuthUser:
    """Only admins may push events into the fan-out."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return user
