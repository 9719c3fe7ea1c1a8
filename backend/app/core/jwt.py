"""
JWT token utilities for authentication.

This module provides functions for encoding and decoding access and
refresh tokens.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from jose import JWTError, jwt
from backend.app.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _encode(claims: Dict[str, Any], token_type: str, expires_at: datetime) -> str:
    to_encode = claims.copy()
    to_encode.update({
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": datetime.now(timezone.utc),
        "exp": expires_at,
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def build_user_claims(user_id: int, phone: str, role: str) -> Dict[str, Any]:
    """Claims shared by both token types. `sub` is the user id as a string."""
    return {"sub": str(user_id), "user_id": user_id, "phone": phone, "role": role}


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data payload to encode in the token (should include: sub, user_id, phone, role)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example payload:
        {
            "sub": "7",
            "user_id": 7,
            "phone": "13800000000",
            "role": "admin",
            "type": "access",
            "jti": "3f1c...",
            "exp": 1234567890
        }
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(data, ACCESS_TOKEN_TYPE, datetime.now(timezone.utc) + expires_delta)


def create_refresh_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime]:
    """
    Create a JWT refresh token.

    Returns:
        (token, expires_at) so the caller can persist the expiry alongside the token hash
    """
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.refresh_token_expire_hours)
    expires_at = datetime.now(timezone.utc) + expires_delta
    return _encode(data, REFRESH_TOKEN_TYPE, expires_at), expires_at


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT token of either type.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded token payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return payload
    except JWTError:
        return None


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a token and accept it only when it is an access token."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return payload
