"""
Ledger API endpoints.

Writes are admin-only. Creating a donation or expense is idempotent per
request id: the Idempotency-Key header, or the body's requestId.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.core.guards import require_admin
from backend.app.core.validation import MAX_ENTRY_ID, extract_request_id, normalize_amount
from backend.app.domain.ledger.ledger_service import LedgerService
from backend.app.schemas.ledger import (
    AmountValidationRequest,
    DonationCreate,
    EntryCreatedResponse,
    EntryUpdate,
    ExpenseCreate,
    LedgerEntryListResponse,
    LedgerEntryResponse,
)
from backend.app.services import ledger_queries

router = APIRouter(prefix="/ledger", tags=["Ledger"])

REPLAY_HEADER = "Idempotent-Replayed"


@router.post("/validate-amount", status_code=status.HTTP_204_NO_CONTENT)
async def validate_amount(payload: AmountValidationRequest):
    """Check an amount string with the same rules the write paths use."""
    normalize_amount(payload.amount)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/donations", response_model=EntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_donation(
    payload: DonationCreate,
    response: Response,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a donation.

    Resubmitting with the same request id returns the original entry id
    with the Idempotent-Replayed header set; the new payload is ignored.
    """
    entry_id, replayed = await LedgerService.create_donation(
        db,
        actor_id=current_user["user_id"],
        request_id=extract_request_id(idempotency_key, payload.request_id),
        donor=payload.donor,
        donated_at=payload.donated_at,
        amount=payload.amount,
    )
    if replayed:
        response.headers[REPLAY_HEADER] = "true"
    return EntryCreatedResponse(entry_id=entry_id)


@router.post("/expenses", response_model=EntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreate,
    response: Response,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Record an expense. Same idempotency rules as donations."""
    entry_id, replayed = await LedgerService.create_expense(
        db,
        actor_id=current_user["user_id"],
        request_id=extract_request_id(idempotency_key, payload.request_id),
        purpose=payload.purpose,
        handled_by=payload.handled_by,
        occurred_at=payload.occurred_at,
        amount=payload.amount,
    )
    if replayed:
        response.headers[REPLAY_HEADER] = "true"
    return EntryCreatedResponse(entry_id=entry_id)


@router.get("/entries", response_model=LedgerEntryListResponse)
async def list_entries(
    month: Optional[str] = Query(default=None, description="YYYY-MM"),
    entry_type: Optional[str] = Query(default=None, alias="type", description="donation or expense"),
    page: Optional[int] = Query(default=None),
    page_size: Optional[int] = Query(default=None, alias="pageSize"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List live entries, newest first."""
    result = await ledger_queries.list_entries(db, month, entry_type, page, page_size)
    result["items"] = [LedgerEntryResponse.model_validate(entry) for entry in result["items"]]
    return LedgerEntryListResponse(**result)


@router.patch("/entries/{entry_id}", response_model=LedgerEntryResponse)
async def update_entry(
    payload: EntryUpdate,
    entry_id: int = Path(..., ge=1, le=MAX_ENTRY_ID),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Correct amount, time and details of an entry. Its type cannot change."""
    entry = await LedgerService.update_entry(
        db,
        entry_id,
        amount=payload.amount,
        donor=payload.donor,
        donated_at=payload.donated_at,
        purpose=payload.purpose,
        handled_by=payload.handled_by,
        occurred_at=payload.occurred_at,
    )
    return LedgerEntryResponse.model_validate(entry)


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: int = Path(..., ge=1, le=MAX_ENTRY_ID),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft-delete an entry. Deleting twice is a 409."""
    await LedgerService.soft_delete_entry(db, entry_id, deleted_by=current_user["user_id"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)
