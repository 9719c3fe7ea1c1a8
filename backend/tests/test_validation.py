"""
Unit tests for ledger input validation.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from backend.app.core.exceptions import InvalidInputError
from backend.app.core.validation import (
    extract_request_id,
    month_key_for,
    normalize_amount,
    parse_occurred_at,
    validate_month,
    validate_request_id,
)
from backend.app.domain.ledger.drafts import donation_draft, expense_draft
from backend.app.models.enums import IdempotencyOperation, LedgerEntryType


@pytest.mark.parametrize("raw, message", [
    ("", "amount is required"),
    ("   ", "amount is required"),
    (None, "amount is required"),
    ("abc", "amount must be a valid decimal"),
    ("NaN", "amount must be a valid decimal"),
    ("Infinity", "amount must be a valid decimal"),
    ("0.00", "amount must be greater than 0"),
    ("-5.00", "amount must be greater than 0"),
    ("5.001", "amount must have at most 2 decimal places"),
    ("10000000000", "amount is too large"),
])
def test_invalid_amounts_rejected(raw, message):
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_amount(raw)
    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("raw, expected", [
    ("5", Decimal("5.00")),
    ("5.1", Decimal("5.10")),
    ("5.10", Decimal("5.10")),
    (" 12.34 ", Decimal("12.34")),
    ("9999999999.99", Decimal("9999999999.99")),
])
def test_valid_amounts_normalized(raw, expected):
    value = normalize_amount(raw)
    assert value == expected
    assert str(value) == str(expected)


def test_bare_date_is_midnight_utc_plus_8():
    parsed = parse_occurred_at("2024-03-01")
    assert parsed == datetime(2024, 2, 29, 16, 0, tzinfo=timezone.utc)
    assert month_key_for(parsed) == "2024-03"


def test_rfc3339_with_zulu_and_offset():
    assert parse_occurred_at("2024-01-31T20:00:00Z") == datetime(2024, 1, 31, 20, 0, tzinfo=timezone.utc)
    assert parse_occurred_at("2024-01-31T20:00:00+08:00") == datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)


def test_month_key_uses_utc_plus_8():
    # 20:00 UTC on Jan 31 is already Feb 1 in UTC+8
    assert month_key_for(datetime(2024, 1, 31, 20, 0, tzinfo=timezone.utc)) == "2024-02"
    assert month_key_for(datetime(2024, 1, 31, 15, 59, tzinfo=timezone.utc)) == "2024-01"


@pytest.mark.parametrize("raw", ["", "yesterday", "2024-13-01", "2024-01-31T20:00:00", "31/01/2024"])
def test_bad_occurrence_times_rejected(raw):
    with pytest.raises(InvalidInputError) as exc_info:
        parse_occurred_at(raw, "donatedAt")
    assert exc_info.value.message.startswith("invalid donatedAt")


@pytest.mark.parametrize("raw", ["2024-13", "2024-00", "24-01", "2024-1", "", None])
def test_invalid_months_rejected(raw):
    with pytest.raises(InvalidInputError):
        validate_month(raw)


def test_valid_month_accepted():
    assert validate_month(" 2024-01 ") == "2024-01"
    assert validate_month("2024-12") == "2024-12"


def test_header_request_id_wins_over_body():
    assert extract_request_id("  hdr-1 ", "body-1") == "hdr-1"
    assert extract_request_id("   ", " body-1 ") == "body-1"
    assert extract_request_id(None, None) == ""


def test_request_id_length_limit():
    assert validate_request_id("r" * 128) == "r" * 128
    with pytest.raises(InvalidInputError) as exc_info:
        validate_request_id("r" * 129)
    assert "at most 128" in exc_info.value.message
    with pytest.raises(InvalidInputError) as exc_info:
        validate_request_id("  ")
    assert exc_info.value.message == "request id is required"


def test_donation_draft_description_and_kind():
    draft = donation_draft(" Alice ", "2024-01-15", "100")
    assert draft.entry_type == LedgerEntryType.DONATION
    assert draft.operation == IdempotencyOperation.DONATION
    assert draft.description == "donor=Alice"
    assert draft.amount == Decimal("100.00")


def test_expense_draft_description_and_kind():
    draft = expense_draft("vet visit", "Bob", "2024-01-15T10:00:00Z", "25.5")
    assert draft.entry_type == LedgerEntryType.EXPENSE
    assert draft.description == "purpose=vet visit;handled_by=Bob"
    assert draft.amount == Decimal("25.50")


def test_draft_validation_order():
    # Missing donor is reported before a bad amount
    with pytest.raises(InvalidInputError) as exc_info:
        donation_draft("", "2024-01-15", "abc")
    assert exc_info.value.message == "donor is required"

    with pytest.raises(InvalidInputError) as exc_info:
        expense_draft("food", "", "2024-01-15", "1")
    assert exc_info.value.message == "handledBy is required"
