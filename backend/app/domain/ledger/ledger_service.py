"""
Ledger Service (Domain Logic).

Write paths for ledger entries:
- create donation/expense: validated, then handed to the idempotent coordinator
- update: direct admin correction of an existing entry
- soft delete: one-way live -> deleted transition

Validation always runs before a transaction is opened.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    EntryAlreadyDeletedError,
    InvalidInputError,
    ResourceNotFoundError,
    StorageError,
)
from backend.app.core.validation import (
    month_key_for,
    normalize_amount,
    require_text,
    validate_request_id,
)
from backend.app.domain.ledger.drafts import donation_draft, expense_draft
from backend.app.domain.ledger.idempotency import IdempotentWriteCoordinator
from backend.app.models.enums import LedgerEntryType
from backend.app.models.ledger_entry import LedgerEntry

logger = logging.getLogger(__name__)


class LedgerService:

    @staticmethod
    async def create_donation(
        db: AsyncSession,
        actor_id: int,
        request_id: str,
        donor: Optional[str],
        donated_at: Optional[str],
        amount: Optional[str],
    ) -> Tuple[int, bool]:
        """
        Record a donation exactly once per request_id.

        Returns:
            (entry_id, was_replayed)
        """
        donor = require_text(donor, "donor")
        request_id = validate_request_id(request_id)
        draft = donation_draft(donor, donated_at, amount)
        return await IdempotentWriteCoordinator.execute(db, request_id, draft.operation, actor_id, draft)

    @staticmethod
    async def create_expense(
        db: AsyncSession,
        actor_id: int,
        request_id: str,
        purpose: Optional[str],
        handled_by: Optional[str],
        occurred_at: Optional[str],
        amount: Optional[str],
    ) -> Tuple[int, bool]:
        """
        Record an expense exactly once per request_id.

        Returns:
            (entry_id, was_replayed)
        """
        purpose = require_text(purpose, "purpose")
        handled_by = require_text(handled_by, "handledBy")
        request_id = validate_request_id(request_id)
        draft = expense_draft(purpose, handled_by, occurred_at, amount)
        return await IdempotentWriteCoordinator.execute(db, request_id, draft.operation, actor_id, draft)

    @staticmethod
    async def update_entry(
        db: AsyncSession,
        entry_id: int,
        amount: Optional[str],
        donor: Optional[str] = None,
        donated_at: Optional[str] = None,
        purpose: Optional[str] = None,
        handled_by: Optional[str] = None,
        occurred_at: Optional[str] = None,
    ) -> LedgerEntry:
        """
        Correct an existing entry.

        The entry keeps its type; the fields required for that type are
        validated again and amount, occurred_at and description are
        overwritten in one statement.

        Raises:
            InvalidInputError: amount or a type-specific field is invalid
            ResourceNotFoundError: no entry with this id
        """
        if entry_id < 1:
            raise InvalidInputError("entry id is required")
        normalize_amount(amount)

        try:
            entry = await LedgerService._get_entry(db, entry_id)

            if entry.entry_type == LedgerEntryType.DONATION:
                draft = donation_draft(donor, donated_at, amount)
            else:
                draft = expense_draft(purpose, handled_by, occurred_at, amount)

            await db.execute(
                update(LedgerEntry)
                .where(LedgerEntry.id == entry_id)
                .values(
                    amount=draft.amount,
                    occurred_at=draft.occurred_at,
                    description=draft.description,
                    month_key=month_key_for(draft.occurred_at),
                )
            )
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Updating ledger entry %s failed", entry_id, exc_info=True)
            raise StorageError() from exc
        except Exception:
            await db.rollback()
            raise

        await db.refresh(entry)
        logger.info("Updated ledger entry %s", entry_id)
        return entry

    @staticmethod
    async def soft_delete_entry(db: AsyncSession, entry_id: int, deleted_by: int) -> None:
        """
        Mark an entry as deleted.

        Two concurrent deletes race on the conditional UPDATE; the one that
        affects zero rows reports the entry as already deleted.

        Raises:
            ResourceNotFoundError: no entry with this id
            EntryAlreadyDeletedError: the entry was deleted before, or concurrently
        """
        try:
            result = await db.execute(
                select(LedgerEntry.deleted_at).where(LedgerEntry.id == entry_id)
            )
            row = result.one_or_none()
            if row is None:
                raise ResourceNotFoundError("Ledger entry", entry_id)
            if row.deleted_at is not None:
                raise EntryAlreadyDeletedError(entry_id)

            result = await db.execute(
                update(LedgerEntry)
                .where(LedgerEntry.id == entry_id, LedgerEntry.deleted_at.is_(None))
                .values(deleted_at=datetime.now(timezone.utc), deleted_by=deleted_by)
            )
            if result.rowcount == 0:
                raise EntryAlreadyDeletedError(entry_id)

            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Soft-deleting ledger entry %s failed", entry_id, exc_info=True)
            raise StorageError() from exc
        except Exception:
            await db.rollback()
            raise

        logger.info("Ledger entry %s deleted by user %s", entry_id, deleted_by)

    @staticmethod
    async def _get_entry(db: AsyncSession, entry_id: int) -> LedgerEntry:
        result = await db.execute(select(LedgerEntry).where(LedgerEntry.id == entry_id))
        entry = result.scalar_one_or_none()
        if not entry:
            raise ResourceNotFoundError("Ledger entry", entry_id)
        return entry

