"""
Ledger read service.

Paginated listing and monthly summaries. Soft-deleted entries are never
returned or counted.
"""

import math
from decimal import Decimal
from typing import Optional, Dict, Any

from sqlalchemy import select, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import InvalidInputError, StorageError
from backend.app.core.validation import validate_month, AMOUNT_QUANTUM, MAX_ENTRY_ID
from backend.app.models.enums import LedgerEntryType
from backend.app.models.ledger_entry import LedgerEntry

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# Keeps the row offset within BIGINT range
MAX_PAGE = MAX_ENTRY_ID // MAX_PAGE_SIZE


def _filters(month: Optional[str], entry_type: Optional[LedgerEntryType]) -> list:
    clauses = [LedgerEntry.deleted_at.is_(None)]
    if month:
        clauses.append(LedgerEntry.month_key == month)
    if entry_type:
        clauses.append(LedgerEntry.entry_type == entry_type)
    return clauses


def normalize_list_params(
    month: Optional[str],
    entry_type: Optional[str],
    page: Optional[int],
    page_size: Optional[int],
) -> Dict[str, Any]:
    """
    Apply defaults and validate listing parameters.

    Blank month/type mean "no filter"; a missing page or page size takes
    the default.
    """
    month = (month or "").strip()
    entry_type = (entry_type or "").strip().lower()

    if month:
        month = validate_month(month)

    parsed_type = None
    if entry_type:
        try:
            parsed_type = LedgerEntryType(entry_type)
        except ValueError:
            raise InvalidInputError("invalid type, expected donation or expense")

    page = DEFAULT_PAGE if page is None else page
    page_size = DEFAULT_PAGE_SIZE if page_size is None else page_size
    if page < 1:
        raise InvalidInputError("page must be >= 1")
    if page > MAX_PAGE:
        raise InvalidInputError(f"page must be at most {MAX_PAGE}")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidInputError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}")

    return {"month": month or None, "entry_type": parsed_type, "page": page, "page_size": page_size}


async def list_entries(
    db: AsyncSession,
    month: Optional[str] = None,
    entry_type: Optional[str] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
) -> Dict[str, Any]:
    """
    List live entries, newest first.

    Ordering is created_at DESC then id DESC, so entries created in the
    same instant still paginate deterministically.

    Returns:
        dict with items, page, page_size, total, total_pages
    """
    params = normalize_list_params(month, entry_type, page, page_size)
    clauses = _filters(params["month"], params["entry_type"])
    offset = (params["page"] - 1) * params["page_size"]

    try:
        total_result = await db.execute(select(func.count(LedgerEntry.id)).where(*clauses))
        total = total_result.scalar()

        query = (
            select(LedgerEntry)
            .where(*clauses)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .offset(offset)
            .limit(params["page_size"])
        )
        result = await db.execute(query)
        items = result.scalars().all()
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    return {
        "items": items,
        "page": params["page"],
        "page_size": params["page_size"],
        "total": total,
        "total_pages": math.ceil(total / params["page_size"]) if total else 0,
    }


def _money(value) -> str:
    if value is None:
        value = 0
    return str(Decimal(str(value)).quantize(AMOUNT_QUANTUM))


async def monthly_summary(db: AsyncSession, month: Optional[str]) -> Dict[str, str]:
    """
    Donation and expense totals for one month key, and their balance.

    Returns:
        dict with donation_total, expense_total, balance as 2-decimal strings
    """
    month = validate_month(month)

    is_donation = LedgerEntry.entry_type == LedgerEntryType.DONATION
    is_expense = LedgerEntry.entry_type == LedgerEntryType.EXPENSE
    query = select(
        func.coalesce(func.sum(case((is_donation, LedgerEntry.amount), else_=0)), 0).label("donation_total"),
        func.coalesce(func.sum(case((is_expense, LedgerEntry.amount), else_=0)), 0).label("expense_total"),
    ).where(*_filters(month, None))

    try:
        result = await db.execute(query)
        row = result.one()
    except SQLAlchemyError as exc:
        raise StorageError() from exc

    donation_total = Decimal(_money(row.donation_total))
    expense_total = Decimal(_money(row.expense_total))
    return {
        "donation_total": _money(donation_total),
        "expense_total": _money(expense_total),
        "balance": _money(donation_total - expense_total),
    }
