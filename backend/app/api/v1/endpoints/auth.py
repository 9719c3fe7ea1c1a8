"""
Authentication API endpoints.

Provides register, login, token refresh, logout and user info endpoints for
the web client.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.schemas.auth import (
    AuthRequest,
    RefreshRequest,
    RegisterResponse,
    TokenPairResponse,
    UserResponse,
)
from backend.app.core.dependencies import get_current_user, get_optional_token_payload
from backend.app.core.token_revocation import revoke_access_token
from backend.app.services import accounts

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: AuthRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new member.

    Admins cannot be registered here; see POST /admin/init.
    """
    user = await accounts.register_user(db, payload.phone, payload.password)
    return RegisterResponse.model_validate(user)


@router.post("/login", response_model=TokenPairResponse)
async def login(
    payload: AuthRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with phone and password and receive an access/refresh token pair."""
    user = await accounts.authenticate(db, payload.phone, payload.password)
    tokens = await accounts.issue_token_pair(db, user)
    return TokenPairResponse(**tokens)


@router.post("/refresh", response_model=TokenPairResponse)
async def refresh(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Rotate a refresh token.

    The presented refresh token is revoked and cannot be used again.
    """
    tokens = await accounts.rotate_refresh_token(db, payload.refresh_token)
    return TokenPairResponse(**tokens)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    payload: RefreshRequest,
    access_payload: Optional[dict] = Depends(get_optional_token_payload),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the refresh token.

    If a valid bearer access token accompanies the request it is
    blacklisted too, so it stops working before it expires.
    """
    await accounts.revoke_refresh_token(db, payload.refresh_token)
    if access_payload:
        await revoke_access_token(access_payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get current authenticated user information.

    Raises:
        404: If user not found in database
    """
    user = await accounts.get_user_by_id(db, current_user["user_id"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.model_validate(user)
