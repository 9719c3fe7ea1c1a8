"""
Admin API endpoints.

Role check endpoint and first-admin bootstrap.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.guards import require_admin
from backend.app.schemas.auth import AuthRequest, AdminPingResponse
from backend.app.services.accounts import ensure_first_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/ping", response_model=AdminPingResponse)
async def admin_ping(current_user: dict = Depends(require_admin)):
    """Answers only for admins."""
    return AdminPingResponse(
        status="ok",
        role=current_user.get("role", ""),
        phone=current_user.get("phone", ""),
    )


@router.post("/init")
async def init_first_admin(
    payload: AuthRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Bootstrap the first admin account.

    Does nothing once any admin exists, so it is safe to leave unauthenticated.
    """
    await ensure_first_admin(db, payload.phone, payload.password)
    return {"status": "ok"}
