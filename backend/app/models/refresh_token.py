"""
Refresh Token database model.

Stores a SHA-256 hash of each issued refresh token so it can be rotated
and revoked.
"""

from sqlalchemy import Column, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from backend.app.db.session import Base, BigIntId


class RefreshToken(Base):
    """Issued refresh token. Active while revoked_at is NULL and expires_at is in the future."""
    __tablename__ = "refresh_tokens"

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)
    user_id = Column(BigIntId, ForeignKey('users.id'), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RefreshToken(id={self.id}, user_id={self.user_id}, revoked={self.revoked_at is not None})>"
