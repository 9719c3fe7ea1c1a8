"""
User database model.

This module defines the User SQLAlchemy model for authentication.
"""

from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base, BigIntId
from backend.app.models.enums import UserRole, enum_values


class User(Base):
    """
    User model for authentication and role-based access.

    Users log in with their phone number. Only admins may write to the ledger.
    """
    __tablename__ = "users"

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)
    phone = Column(String(20), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        default=UserRole.MEMBER,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, phone='{self.phone}', role='{self.role.value}')>"
