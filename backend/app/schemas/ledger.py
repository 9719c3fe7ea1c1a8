"""
Ledger Pydantic schemas.

Request bodies use the web client's camelCase names. Amounts travel as
strings in both directions so no precision is lost to floats.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backend.app.core.validation import as_utc
from backend.app.models.enums import LedgerEntryType


class DonationCreate(BaseModel):
    """Schema for POST /ledger/donations."""
    donor: Optional[str] = None
    donated_at: Optional[str] = Field(default=None, alias="donatedAt", description="RFC3339 or YYYY-MM-DD")
    amount: Optional[str] = Field(default=None, description="Decimal string, at most 2 fractional digits")
    request_id: Optional[str] = Field(default=None, alias="requestId", description="Idempotency key")

    class Config:
        populate_by_name = True


class ExpenseCreate(BaseModel):
    """Schema for POST /ledger/expenses."""
    purpose: Optional[str] = None
    handled_by: Optional[str] = Field(default=None, alias="handledBy")
    occurred_at: Optional[str] = Field(default=None, alias="occurredAt", description="RFC3339 or YYYY-MM-DD")
    amount: Optional[str] = None
    request_id: Optional[str] = Field(default=None, alias="requestId", description="Idempotency key")

    class Config:
        populate_by_name = True


class EntryUpdate(BaseModel):
    """
    Schema for PATCH /ledger/entries/{id}.

    Only the fields of the entry's own type are read; the others are ignored.
    """
    amount: Optional[str] = None
    donor: Optional[str] = None
    donated_at: Optional[str] = Field(default=None, alias="donatedAt")
    purpose: Optional[str] = None
    handled_by: Optional[str] = Field(default=None, alias="handledBy")
    occurred_at: Optional[str] = Field(default=None, alias="occurredAt")

    class Config:
        populate_by_name = True


class AmountValidationRequest(BaseModel):
    amount: Optional[str] = None


class EntryCreatedResponse(BaseModel):
    entry_id: int = Field(..., alias="entryId")

    class Config:
        populate_by_name = True


class LedgerEntryResponse(BaseModel):
    """Schema for displaying a live ledger entry."""
    id: int
    user_id: int
    entry_type: LedgerEntryType
    amount: str
    occurred_at: datetime
    description: str
    month_key: str
    created_at: datetime

    @field_validator("amount", mode="before")
    @classmethod
    def format_amount(cls, value):
        if isinstance(value, (Decimal, int, float)):
            return f"{Decimal(str(value)):.2f}"
        return value

    @field_validator("occurred_at", "created_at", mode="after")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    class Config:
        from_attributes = True


class LedgerEntryListResponse(BaseModel):
    items: List[LedgerEntryResponse]
    page: int
    page_size: int
    total: int
    total_pages: int


class MonthlySummaryResponse(BaseModel):
    donation_total: str
    expense_total: str
    balance: str
