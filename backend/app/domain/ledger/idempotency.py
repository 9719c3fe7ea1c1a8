"""
Idempotent Write Coordinator (Domain Logic).

Turns (request_id, operation, actor, draft) into exactly one ledger entry,
however many times and however concurrently it is called with the same
request_id.

Protocol, in one transaction:
1. Reserve the request_id in ledger_idempotency_keys (entry_id NULL),
   inside a SAVEPOINT so a duplicate does not abort the outer transaction.
2. Reserved: insert the entry, point the key at it, commit.
3. Duplicate: read the existing key in the same transaction and decide:
   conflict (other operation/actor), in progress (entry_id NULL) or
   replay (entry_id set).

The unique key on request_id is the only lock. Nothing is held in
process, so the guarantee holds across several backend instances.
"""

import asyncio
import logging
from typing import Tuple

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    IdempotencyConflictError,
    RequestInProgressError,
    StorageError,
)
from backend.app.core.validation import as_utc, month_key_for
from backend.app.domain.ledger.drafts import EntryDraft
from backend.app.models.enums import IdempotencyOperation
from backend.app.models.idempotency_key import IdempotencyKey
from backend.app.models.ledger_entry import LedgerEntry

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    Tell a duplicate-key error apart from other integrity errors
    (foreign key, NOT NULL, CHECK).
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig).lower()
    return "unique" in message or "duplicate" in message


class IdempotentWriteCoordinator:

    @staticmethod
    async def execute(
        db: AsyncSession,
        request_id: str,
        operation: IdempotencyOperation,
        actor_id: int,
        draft: EntryDraft,
    ) -> Tuple[int, bool]:
        """
        Create the ledger entry guarded by request_id, or replay it.

        The draft must already be validated; only identity (operation and
        actor) is checked here.

        Args:
            db: Session with no pending work. The coordinator commits or rolls back.
            request_id: Caller-supplied idempotency key
            operation: Logical write kind recorded on the key
            actor_id: Authenticated user performing the write
            draft: Validated entry fields

        Returns:
            (entry_id, was_replayed)

        Raises:
            IdempotencyConflictError: request_id already used for another operation or actor
            RequestInProgressError: request_id reserved but its write is not finalized
            StorageError: the database failed; nothing was committed
        """
        try:
            outcome = await IdempotentWriteCoordinator._run(db, request_id, operation, actor_id, draft)
            await db.commit()
        except (IdempotencyConflictError, RequestInProgressError):
            await db.rollback()
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Ledger write failed for request_id=%s", request_id, exc_info=True)
            raise StorageError() from exc
        except (Exception, asyncio.CancelledError):
            await db.rollback()
            raise

        entry_id, replayed = outcome
        if replayed:
            logger.info("Replayed request_id=%s -> entry %s", request_id, entry_id)
        else:
            logger.info("Created %s entry %s for request_id=%s", operation.value, entry_id, request_id)
        return outcome

    @staticmethod
    async def _run(
        db: AsyncSession,
        request_id: str,
        operation: IdempotencyOperation,
        actor_id: int,
        draft: EntryDraft,
    ) -> Tuple[int, bool]:
        # 1. Reserve the key
        try:
            async with db.begin_nested():
                await db.execute(
                    insert(IdempotencyKey).values(
                        request_id=request_id,
                        operation=operation,
                        created_by=actor_id,
                        entry_id=None,
                    )
                )
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            return await IdempotentWriteCoordinator._resolve_existing(
                db, request_id, operation, actor_id, draft
            )

        # 2. Insert the guarded entry
        entry = LedgerEntry(
            user_id=actor_id,
            entry_type=draft.entry_type,
            amount=draft.amount,
            occurred_at=draft.occurred_at,
            description=draft.description,
            month_key=month_key_for(draft.occurred_at),
        )
        db.add(entry)
        await db.flush()

        # 3. Finalize the key
        await db.execute(
            update(IdempotencyKey)
            .where(IdempotencyKey.request_id == request_id)
            .values(entry_id=entry.id)
        )

        return entry.id, False

    @staticmethod
    async def _resolve_existing(
        db: AsyncSession,
        request_id: str,
        operation: IdempotencyOperation,
        actor_id: int,
        draft: EntryDraft,
    ) -> Tuple[int, bool]:
        result = await db.execute(
            select(IdempotencyKey)
            .where(IdempotencyKey.request_id == request_id)
            .execution_options(populate_existing=True)
        )
        existing = result.scalar_one()

        if existing.operation != operation or existing.created_by != actor_id:
            logger.warning(
                "Idempotency conflict on request_id=%s: stored %s by user %s, got %s by user %s",
                request_id, existing.operation.value, existing.created_by, operation.value, actor_id,
            )
            raise IdempotencyConflictError(request_id)

        if existing.entry_id is None:
            raise RequestInProgressError(request_id)

        await IdempotentWriteCoordinator._warn_on_payload_drift(db, request_id, existing.entry_id, draft)
        return existing.entry_id, True

    @staticmethod
    async def _warn_on_payload_drift(
        db: AsyncSession,
        request_id: str,
        entry_id: int,
        draft: EntryDraft,
    ) -> None:
        """A replay keeps the original entry even if the new payload differs. Log when it does."""
        entry = await db.get(LedgerEntry, entry_id, populate_existing=True)
        if entry is None:
            return

        drifted = []
        if entry.amount != draft.amount:
            drifted.append("amount")
        if as_utc(entry.occurred_at) != draft.occurred_at:
            drifted.append("occurred_at")
        if entry.description != draft.description:
            drifted.append("description")

        if drifted:
            logger.warning(
                "Replay of request_id=%s ignored changed fields %s; entry %s kept as originally written",
                request_id, ", ".join(drifted), entry_id,
            )
