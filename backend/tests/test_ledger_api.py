"""
Integration tests for the ledger HTTP API.

Create -> replay -> update -> delete flows, request id precedence, role
gates and the error body format.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from backend.app.models.idempotency_key import IdempotencyKey
from backend.app.models.ledger_entry import LedgerEntry

DONATION = {
    "donor": "Alice",
    "donatedAt": "2024-01-15",
    "amount": "100.00",
    "requestId": "r1",
}

EXPENSE = {
    "purpose": "vet visit",
    "handledBy": "Bob",
    "occurredAt": "2024-01-20T10:00:00Z",
    "amount": "35.5",
    "requestId": "e1",
}


@pytest.mark.asyncio
async def test_create_then_replay_donation(client, admin_headers, db_session):
    """Resubmitting r1, even with another amount, returns the original entry."""
    response = await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)
    assert response.status_code == 201
    entry_id = response.json()["entryId"]
    assert "Idempotent-Replayed" not in response.headers

    response = await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)
    assert response.status_code == 201
    assert response.json() == {"entryId": entry_id}
    assert response.headers["Idempotent-Replayed"] == "true"

    changed = {**DONATION, "amount": "999.00"}
    response = await client.post("/api/ledger/donations", json=changed, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["entryId"] == entry_id

    result = await db_session.execute(select(LedgerEntry))
    entries = result.scalars().all()
    assert len(entries) == 1
    assert str(entries[0].amount) == "100.00"
    assert entries[0].description == "donor=Alice"
    assert entries[0].month_key == "2024-01"


@pytest.mark.asyncio
async def test_create_expense(client, admin_headers):
    response = await client.post("/api/ledger/expenses", json=EXPENSE, headers=admin_headers)
    assert response.status_code == 201

    response = await client.get("/api/ledger/entries", headers=admin_headers)
    item = response.json()["items"][0]
    assert item["entry_type"] == "expense"
    assert item["amount"] == "35.50"
    assert item["description"] == "purpose=vet visit;handled_by=Bob"
    assert item["occurred_at"].startswith("2024-01-20T10:00:00")
    assert item["month_key"] == "2024-01"


@pytest.mark.asyncio
async def test_idempotency_header_wins_over_body(client, admin_headers, db_session):
    headers = {**admin_headers, "Idempotency-Key": "from-header"}
    response = await client.post("/api/ledger/donations", json=DONATION, headers=headers)
    assert response.status_code == 201

    assert await db_session.get(IdempotencyKey, "from-header") is not None
    assert await db_session.get(IdempotencyKey, "r1") is None


@pytest.mark.asyncio
async def test_request_id_reused_for_expense_conflicts(client, admin_headers):
    await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)

    response = await client.post(
        "/api/ledger/expenses", json={**EXPENSE, "requestId": "r1"}, headers=admin_headers
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_IDEMPOTENCY_001"
    assert body["error"] == "idempotency key conflict"


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides, message", [
    ({"amount": "0.00"}, "amount must be greater than 0"),
    ({"amount": "5.001"}, "amount must have at most 2 decimal places"),
    ({"donor": "  "}, "donor is required"),
    ({"donatedAt": "15/01/2024"}, "invalid donatedAt: must be RFC3339 or YYYY-MM-DD"),
    ({"requestId": ""}, "request id is required"),
])
async def test_invalid_donation_rejected(client, admin_headers, overrides, message):
    response = await client.post(
        "/api/ledger/donations", json={**DONATION, **overrides}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == message


@pytest.mark.asyncio
async def test_malformed_body_is_400(client, admin_headers):
    response = await client.post(
        "/api/ledger/donations", content=b"{not json", headers={**admin_headers, "Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_member_cannot_write(client, member_headers):
    response = await client.post("/api/ledger/donations", json=DONATION, headers=member_headers)
    assert response.status_code == 403

    response = await client.delete("/api/ledger/entries/1", headers=member_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_missing_token_is_401(client):
    response = await client.post("/api/ledger/donations", json=DONATION)
    assert response.status_code == 401

    response = await client.get("/api/ledger/entries")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_member_can_read(client, admin_headers, member_headers):
    await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)

    response = await client.get("/api/ledger/entries", headers=member_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1

    response = await client.get("/api/summary", params={"month": "2024-01"}, headers=member_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_update_entry(client, admin_headers):
    response = await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)
    entry_id = response.json()["entryId"]

    response = await client.patch(
        f"/api/ledger/entries/{entry_id}",
        json={"donor": "Carol", "donatedAt": "2024-02-01", "amount": "80"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == entry_id
    assert body["entry_type"] == "donation"
    assert body["amount"] == "80.00"
    assert body["description"] == "donor=Carol"
    assert body["month_key"] == "2024-02"


@pytest.mark.asyncio
async def test_update_keeps_entry_type(client, admin_headers):
    """Expense fields on a donation are ignored; donor is still required."""
    response = await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)
    entry_id = response.json()["entryId"]

    response = await client.patch(
        f"/api/ledger/entries/{entry_id}",
        json={"purpose": "food", "handledBy": "Bob", "occurredAt": "2024-02-01", "amount": "80"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "donor is required"


@pytest.mark.asyncio
async def test_update_validates_amount_before_lookup(client, admin_headers):
    response = await client.patch(
        "/api/ledger/entries/999", json={"amount": "abc"}, headers=admin_headers
    )
    assert response.status_code == 400

    response = await client.patch(
        "/api/ledger/entries/999",
        json={"donor": "Carol", "donatedAt": "2024-02-01", "amount": "1"},
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_delete_entry_once(client, admin_headers, admin_user, db_session):
    response = await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)
    entry_id = response.json()["entryId"]

    response = await client.delete(f"/api/ledger/entries/{entry_id}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.delete(f"/api/ledger/entries/{entry_id}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["message"] == "entry already deleted"

    entry = await db_session.get(LedgerEntry, entry_id, populate_existing=True)
    assert entry.deleted_at is not None
    assert entry.deleted_by == admin_user.id

    response = await client.get("/api/ledger/entries", headers=admin_headers)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_delete_missing_or_bad_id(client, admin_headers):
    response = await client.delete("/api/ledger/entries/999", headers=admin_headers)
    assert response.status_code == 404

    response = await client.delete("/api/ledger/entries/0", headers=admin_headers)
    assert response.status_code == 400

    response = await client.delete("/api/ledger/entries/abc", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_out_of_range_ids_are_rejected(client, admin_headers):
    huge = "99999999999999999999"

    response = await client.delete(f"/api/ledger/entries/{huge}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"

    response = await client.patch(
        f"/api/ledger/entries/{huge}",
        json={"donor": "Carol", "donatedAt": "2024-02-01", "amount": "1"},
        headers=admin_headers,
    )
    assert response.status_code == 400

    # Largest BIGINT is still a valid id, just not an existing one
    response = await client.delete("/api/ledger/entries/9223372036854775807", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_out_of_range_page_is_rejected(client, admin_headers):
    response = await client.get(
        "/api/ledger/entries", params={"page": "99999999999999999999"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["message"].startswith("page must be at most")

    response = await client.get(
        "/api/ledger/entries", params={"pageSize": "99999999999999999999"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == "pageSize must be between 1 and 100"


@pytest.mark.asyncio
async def test_validate_amount_endpoint(client):
    response = await client.post("/api/ledger/validate-amount", json={"amount": "5.1"})
    assert response.status_code == 204

    response = await client.post("/api/ledger/validate-amount", json={"amount": "-5.00"})
    assert response.status_code == 400
    assert response.json()["error"] == "amount must be greater than 0"


@pytest.mark.asyncio
async def test_storage_failure_hides_driver_detail(client, admin_headers, mocker):
    mocker.patch(
        "backend.app.domain.ledger.idempotency.month_key_for",
        side_effect=OperationalError("INSERT INTO ledger_entries", {}, Exception("disk I/O error")),
    )

    response = await client.post("/api/ledger/donations", json=DONATION, headers=admin_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_STORAGE_001"
    assert body["details"] == {}
    assert "disk I/O" not in response.text
