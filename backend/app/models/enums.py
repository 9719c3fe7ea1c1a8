"""
Enumerations shared by the ledger models and schemas.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Records, corrects and deletes ledger entries
        MEMBER: Read-only access to entries and summaries (default role)
    """
    ADMIN = "admin"
    MEMBER = "member"


class LedgerEntryType(str, enum.Enum):
    """Kind of money movement recorded by a ledger entry."""
    DONATION = "donation"
    EXPENSE = "expense"


class IdempotencyOperation(str, enum.Enum):
    """
    Logical write guarded by an idempotency key.

    REVERSAL is reserved so that a request id issued for a reversal can
    never be replayed as a donation or expense.
    """
    DONATION = "donation"
    EXPENSE = "expense"
    REVERSAL = "reversal"


def enum_values(enum_cls):
    """Persist enum values ("admin") rather than member names ("ADMIN")."""
    return [member.value for member in enum_cls]
