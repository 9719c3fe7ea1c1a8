"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
The web client sends and expects camelCase token fields.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from backend.app.models.enums import UserRole


class AuthRequest(BaseModel):
    """
    Schema for register, login and admin init.

    Both fields are trimmed and required; that check is done by the
    account service so every caller gets the same message.
    """
    phone: Optional[str] = Field(default=None, description="Phone number used as login")
    password: Optional[str] = Field(default=None, description="Password")


class RefreshRequest(BaseModel):
    """Schema for POST /auth/refresh and POST /auth/logout."""
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

    class Config:
        populate_by_name = True


class TokenPairResponse(BaseModel):
    """Access/refresh token pair returned by login and refresh."""
    access_token: str = Field(..., alias="accessToken", description="JWT access token")
    refresh_token: str = Field(..., alias="refreshToken", description="JWT refresh token")

    class Config:
        populate_by_name = True


class RegisterResponse(BaseModel):
    id: int
    phone: str
    role: UserRole

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """
    Schema for user information response.

    Used by GET /auth/me endpoint.
    """
    id: int
    phone: str
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True


class AdminPingResponse(BaseModel):
    status: str = "ok"
    role: str
    phone: str
