"""
Security guards for role-based access control.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.delete("/ledger/entries/{entry_id}")
        async def delete_entry(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Raises:
        HTTPException 403 if the token's role is missing, unknown or not allowed
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        try:
            user_role = UserRole(current_user.get("role"))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="forbidden"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="forbidden"
            )

        return current_user

    return role_checker


require_admin = require_role([UserRole.ADMIN])
