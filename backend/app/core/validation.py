"""
Input validation helpers for ledger requests.

Every helper raises InvalidInputError with a client-facing message, so
callers can validate before any transaction is opened.
"""

import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

from backend.app.core.exceptions import InvalidInputError

# Month keys and bare dates are interpreted at this fixed offset
LEDGER_TZ = timezone(timedelta(hours=8), name="UTC+08:00")

AMOUNT_QUANTUM = Decimal("0.01")
# ledger_entries.amount is NUMERIC(12, 2)
AMOUNT_LIMIT = Decimal("10000000000")

MAX_REQUEST_ID_LENGTH = 128

# Largest id a BIGINT column holds
MAX_ENTRY_ID = 2**63 - 1

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_amount(raw: Optional[str]) -> Decimal:
    """
    Validate a money amount string and return it quantized to cents.

    "5", "5.1" and "5.10" all normalize to Decimal("5.10")-style values;
    zero, negatives, non-numbers and more than two fractional digits are
    rejected.
    """
    amount = (raw or "").strip()
    if not amount:
        raise InvalidInputError("amount is required")

    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise InvalidInputError("amount must be a valid decimal")

    if not value.is_finite():
        raise InvalidInputError("amount must be a valid decimal")
    if value <= 0:
        raise InvalidInputError("amount must be greater than 0")
    if value.as_tuple().exponent < -2:
        raise InvalidInputError("amount must have at most 2 decimal places")
    if value >= AMOUNT_LIMIT:
        raise InvalidInputError("amount is too large")

    return value.quantize(AMOUNT_QUANTUM)


def parse_occurred_at(raw: Optional[str], field: str = "occurredAt") -> datetime:
    """
    Parse an occurrence time.

    Accepts a bare calendar date (YYYY-MM-DD, midnight at UTC+8) or a full
    ISO-8601 date-time carrying an offset. Returns an aware datetime in UTC.
    """
    value = (raw or "").strip()
    if not value:
        raise InvalidInputError(f"invalid {field}: time value is required")

    if _DATE_PATTERN.match(value):
        try:
            day = date.fromisoformat(value)
        except ValueError:
            raise InvalidInputError(f"invalid {field}: must be RFC3339 or YYYY-MM-DD")
        return datetime(day.year, day.month, day.day, tzinfo=LEDGER_TZ).astimezone(timezone.utc)

    candidate = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        raise InvalidInputError(f"invalid {field}: must be RFC3339 or YYYY-MM-DD")
    if parsed.tzinfo is None:
        raise InvalidInputError(f"invalid {field}: must be RFC3339 or YYYY-MM-DD")

    return parsed.astimezone(timezone.utc)


def validate_month(raw: Optional[str]) -> str:
    """Return the trimmed month if it is a valid YYYY-MM key."""
    month = (raw or "").strip()
    if not _MONTH_PATTERN.match(month):
        raise InvalidInputError("invalid month, expected YYYY-MM")
    return month


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from backends that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_key_for(occurred_at: datetime) -> str:
    """YYYY-MM bucket of a point in time, seen from UTC+8."""
    return as_utc(occurred_at).astimezone(LEDGER_TZ).strftime("%Y-%m")


def require_text(raw: Optional[str], field: str) -> str:
    value = (raw or "").strip()
    if not value:
        raise InvalidInputError(f"{field} is required")
    return value


def extract_request_id(header_value: Optional[str], body_value: Optional[str]) -> str:
    """
    Pick the idempotency key for a ledger write.

    The Idempotency-Key header wins when it is not blank; otherwise the
    body's requestId is used. May return an empty string.
    """
    return (header_value or "").strip() or (body_value or "").strip()


def validate_request_id(raw: Optional[str]) -> str:
    request_id = (raw or "").strip()
    if not request_id:
        raise InvalidInputError("request id is required")
    if len(request_id) > MAX_REQUEST_ID_LENGTH:
        raise InvalidInputError(f"request id must be at most {MAX_REQUEST_ID_LENGTH} characters")
    return request_id
