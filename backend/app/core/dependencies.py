"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.core.jwt import decode_access_token
from backend.app.core.token_revocation import is_token_revoked
from backend.app.db.session import get_db
from backend.app.models.user import User

# HTTP Bearer security scheme. Missing credentials are reported as 401 below.
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks:
    1. A bearer token is present
    2. Signature, expiry and token type (access only)
    3. The token's jti has not been blacklisted by logout
    4. The user still exists

    Returns:
        Decoded token payload containing user_id, phone and role

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("missing bearer token")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("invalid token")

    try:
        user_id = int(payload.get("sub", ""))
    except ValueError:
        raise _unauthorized("invalid token subject")

    if await is_token_revoked(payload.get("jti")):
        raise _unauthorized("Token has been revoked")

    result = await db.execute(select(User.id).where(User.id == user_id))
    if result.scalar_one_or_none() is None:
        raise _unauthorized("User not found")

    payload["user_id"] = user_id
    return payload


async def get_optional_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[dict]:
    """Decoded access token if a valid one was sent, None otherwise."""
    if credentials is None or not credentials.credentials:
        return None
    return decode_access_token(credentials.credentials)
