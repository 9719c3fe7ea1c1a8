"""
Account service.

Registration, password login, refresh-token rotation, logout and the
first-admin bootstrap. Refresh tokens are persisted as SHA-256 hashes only.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    AuthenticationError,
    DuplicatePhoneError,
    InvalidInputError,
)
from backend.app.core.jwt import (
    REFRESH_TOKEN_TYPE,
    build_user_claims,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from backend.app.core.security import get_password_hash, verify_password, hash_token
from backend.app.models.enums import UserRole
from backend.app.models.refresh_token import RefreshToken
from backend.app.models.user import User

logger = logging.getLogger(__name__)


def normalize_credentials(phone: Optional[str], password: Optional[str]):
    phone = (phone or "").strip()
    password = (password or "").strip()
    if not phone or not password:
        raise InvalidInputError("phone and password are required")
    return phone, password


async def get_user_by_phone(db: AsyncSession, phone: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.phone == phone))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, phone: Optional[str], password: Optional[str]) -> User:
    """
    Create a member account.

    Raises:
        InvalidInputError: phone or password blank
        DuplicatePhoneError: phone already has an account
    """
    phone, password = normalize_credentials(phone, password)

    user = User(
        phone=phone,
        password_hash=get_password_hash(password),
        role=UserRole.MEMBER,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicatePhoneError()

    await db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


async def authenticate(db: AsyncSession, phone: Optional[str], password: Optional[str]) -> User:
    """Unknown phone and wrong password fail the same way."""
    phone, password = normalize_credentials(phone, password)

    user = await get_user_by_phone(db, phone)
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login for phone=%s", phone)
        raise AuthenticationError("invalid phone or password")
    return user


async def issue_token_pair(db: AsyncSession, user: User) -> Dict[str, str]:
    """
    Issue an access/refresh pair and persist the refresh token hash.

    Commits the session.
    """
    claims = build_user_claims(user.id, user.phone, user.role.value)
    access_token = create_access_token(claims)
    refresh_token, expires_at = create_refresh_token(claims)

    db.add(RefreshToken(
        user_id=user.id,
        token_hash=hash_token(refresh_token),
        expires_at=expires_at,
    ))
    await db.commit()

    return {"access_token": access_token, "refresh_token": refresh_token}


def _decode_refresh_token(refresh_token: Optional[str]) -> Dict:
    token = (refresh_token or "").strip()
    if not token:
        raise InvalidInputError("refreshToken is required")
    payload = decode_token(token)
    if payload is None:
        raise AuthenticationError("invalid refresh token")
    if payload.get("type") != REFRESH_TOKEN_TYPE:
        raise AuthenticationError("invalid refresh token type")
    return payload


async def _revoke_if_active(db: AsyncSession, refresh_token: str) -> bool:
    """Revoke a stored refresh token. False when it was not active."""
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now,
        )
        .values(revoked_at=now)
    )
    return result.rowcount > 0


async def rotate_refresh_token(db: AsyncSession, refresh_token: Optional[str]) -> Dict[str, str]:
    """
    Exchange a refresh token for a new pair.

    The old token is revoked with a conditional UPDATE, so of two
    concurrent refreshes with the same token only one wins.

    Raises:
        InvalidInputError: token missing
        AuthenticationError: token invalid, not a refresh token, revoked, expired, or its user is gone
    """
    payload = _decode_refresh_token(refresh_token)
    refresh_token = refresh_token.strip()

    try:
        user_id = int(payload.get("sub", ""))
    except ValueError:
        raise AuthenticationError("invalid token subject")

    user = await get_user_by_id(db, user_id)
    if not user:
        raise AuthenticationError("user not found")

    if not await _revoke_if_active(db, refresh_token):
        await db.rollback()
        raise AuthenticationError("refresh token is revoked or expired")

    return await issue_token_pair(db, user)


async def revoke_refresh_token(db: AsyncSession, refresh_token: Optional[str]) -> None:
    """Logout. Revoking an already revoked token is not an error."""
    payload = _decode_refresh_token(refresh_token)
    await _revoke_if_active(db, refresh_token.strip())
    await db.commit()
    logger.info("Refresh token revoked for user %s", payload.get("user_id"))


async def ensure_first_admin(db: AsyncSession, phone: Optional[str], password: Optional[str]) -> None:
    """
    Make sure at least one admin exists.

    No-op once any admin exists. Otherwise promotes the user with this
    phone, or creates a new admin account with the given password.
    """
    phone, password = normalize_credentials(phone, password)

    result = await db.execute(select(func.count(User.id)).where(User.role == UserRole.ADMIN))
    if result.scalar() > 0:
        return

    existing = await get_user_by_phone(db, phone)
    if existing:
        if existing.role != UserRole.ADMIN:
            await db.execute(update(User).where(User.id == existing.id).values(role=UserRole.ADMIN))
            await db.commit()
            logger.info("Promoted user %s to admin", existing.id)
        return

    db.add(User(phone=phone, password_hash=get_password_hash(password), role=UserRole.ADMIN))
    try:
        await db.commit()
    except IntegrityError:
        # Created concurrently by another bootstrap
        await db.rollback()
        return
    logger.info("Created first admin account")
