"""
Idempotency Key database model.

Deduplicates ledger writes across client retries through the primary key
on request_id.
"""

from sqlalchemy import Column, String, ForeignKey, DateTime, Enum, Index
from sqlalchemy.sql import func
from backend.app.db.session import Base, BigIntId
from backend.app.models.enums import IdempotencyOperation, enum_values


class IdempotencyKey(Base):
    """
    Idempotency Key model.

    Reserved with entry_id NULL and finalized with the new entry's id in the
    same transaction, so a committed key always points at its entry.
    Immutable once entry_id is set.
    """
    __tablename__ = "ledger_idempotency_keys"

    request_id = Column(String(128), primary_key=True)
    operation = Column(
        Enum(IdempotencyOperation, name="ledger_idempotency_operation", values_callable=enum_values),
        nullable=False,
    )
    created_by = Column(BigIntId, ForeignKey('users.id'), nullable=False)
    entry_id = Column(BigIntId, ForeignKey('ledger_entries.id'), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_ledger_idempotency_created_by', 'created_by', 'created_at'),
    )

    def __repr__(self):
        return f"<IdempotencyKey(request_id='{self.request_id}', operation='{self.operation.value}', entry_id={self.entry_id})>"
