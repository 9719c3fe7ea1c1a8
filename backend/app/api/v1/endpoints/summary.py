"""
Monthly summary endpoint.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.schemas.ledger import MonthlySummaryResponse
from backend.app.services.ledger_queries import monthly_summary

router = APIRouter(prefix="/summary", tags=["Summary"])


@router.get("", response_model=MonthlySummaryResponse)
async def get_monthly_summary(
    month: Optional[str] = Query(default=None, description="YYYY-MM"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Donation and expense totals for a month, and the balance."""
    return await monthly_summary(db, month)
