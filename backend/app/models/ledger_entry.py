"""
Ledger Entry database model.

One recorded donation or expense.
"""

from sqlalchemy import (
    Column, Numeric, ForeignKey, DateTime, Enum, String,
    CheckConstraint, Index,
)
from sqlalchemy.sql import func
from backend.app.db.session import Base, BigIntId
from backend.app.models.enums import LedgerEntryType, enum_values


class LedgerEntry(Base):
    """
    Ledger Entry model.

    Entries are never physically removed. An admin may correct amount,
    occurrence time and description; deletion only sets the
    deleted_at/deleted_by tombstone, exactly once.
    """
    __tablename__ = "ledger_entries"

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)

    # Creator
    user_id = Column(BigIntId, ForeignKey('users.id'), nullable=False)

    # Entry details
    entry_type = Column(
        Enum(LedgerEntryType, name="ledger_entry_type", values_callable=enum_values),
        nullable=False,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    description = Column(String(500), nullable=False, default="")

    # YYYY-MM of occurred_at at UTC+8, recomputed on every write
    month_key = Column(String(7), nullable=False)

    # Soft delete marker
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(BigIntId, ForeignKey('users.id'), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('amount > 0', name='chk_ledger_amount_positive'),
        Index('idx_ledger_user_created', 'user_id', 'created_at', 'id'),
        Index('idx_ledger_month_created', 'month_key', 'created_at', 'id'),
        Index('idx_ledger_type_month', 'entry_type', 'month_key', 'created_at', 'id'),
        Index('idx_ledger_created', 'created_at', 'id'),
        Index('idx_ledger_deleted', 'deleted_at'),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, type='{self.entry_type.value}', amount={self.amount})>"
