"""
Validated ledger entry payloads.

A draft is what the write paths hand to storage: normalized amount,
occurrence time in UTC, and one of two detail shapes depending on the
entry type. The details are folded into the stored description text.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from backend.app.core.validation import normalize_amount, parse_occurred_at, require_text
from backend.app.models.enums import LedgerEntryType, IdempotencyOperation


class DonationDetails(BaseModel):
    kind: Literal["donation"] = "donation"
    donor: str

    def describe(self) -> str:
        return f"donor={self.donor}"


class ExpenseDetails(BaseModel):
    kind: Literal["expense"] = "expense"
    purpose: str
    handled_by: str

    def describe(self) -> str:
        return f"purpose={self.purpose};handled_by={self.handled_by}"


EntryDetails = Annotated[Union[DonationDetails, ExpenseDetails], Field(discriminator="kind")]


class EntryDraft(BaseModel):
    """Fields of a ledger entry that passed validation."""
    amount: Decimal
    occurred_at: datetime
    details: EntryDetails

    @property
    def entry_type(self) -> LedgerEntryType:
        return LedgerEntryType(self.details.kind)

    @property
    def operation(self) -> IdempotencyOperation:
        return IdempotencyOperation(self.details.kind)

    @property
    def description(self) -> str:
        return self.details.describe()


def donation_draft(donor: Optional[str], donated_at: Optional[str], amount: Optional[str]) -> EntryDraft:
    """Validate donation fields. Checks run in the order clients see errors."""
    donor = require_text(donor, "donor")
    normalized = normalize_amount(amount)
    occurred_at = parse_occurred_at(donated_at, "donatedAt")
    return EntryDraft(
        amount=normalized,
        occurred_at=occurred_at,
        details=DonationDetails(donor=donor),
    )


def expense_draft(
    purpose: Optional[str],
    handled_by: Optional[str],
    occurred_at: Optional[str],
    amount: Optional[str],
) -> EntryDraft:
    """Validate expense fields."""
    purpose = require_text(purpose, "purpose")
    handled_by = require_text(handled_by, "handledBy")
    normalized = normalize_amount(amount)
    parsed_at = parse_occurred_at(occurred_at, "occurredAt")
    return EntryDraft(
        amount=normalized,
        occurred_at=parsed_at,
        details=ExpenseDetails(purpose=purpose, handled_by=handled_by),
    )
