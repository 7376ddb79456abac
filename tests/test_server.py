from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from debtflow.server import app, get_store, get_today
from debtflow.store import InMemoryStore

FIXTURES = Path(__file__).parent / "fixtures"

ADMIN = {"X-User-Id": "USR000001"}
COUNTRY_MANAGER = {"X-User-Id": "USR000002"}
ENGINEER_SOUTH = {"X-User-Id": "USR000003"}
MANAGER_NORTH = {"X-User-Id": "USR000004"}
GUEST = {"X-User-Id": "USR000006"}


@pytest.fixture
def client(store: InMemoryStore):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_today] = lambda: date(2026, 3, 31)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _rows(response) -> dict[str, dict]:
    assert response.status_code == 200
    return {row["customerCode"]: row for row in response.json()}


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_viewer_header_required(client: TestClient) -> None:
    assert client.get("/customers").status_code == 401
    assert client.get("/customers", headers={"X-User-Id": "nobody"}).status_code == 401


def test_me_returns_role(client: TestClient) -> None:
    body = client.get("/me", headers=ENGINEER_SOUTH).json()
    assert body["role"] == "Engineer"
    assert body["signUpDate"].startswith("2026-01-02")


def test_customers_for_period_with_aging(client: TestClient) -> None:
    rows = _rows(client.get("/customers", params={"year": 2026, "month": 3}, headers=COUNTRY_MANAGER))
    assert set(rows) == {"C001", "C002"}
    acme = rows["C001"]
    assert acme["customerName"] == "Acme Traders"
    assert Decimal(acme["aging"]["days0_30"]) == Decimal("1000")
    assert Decimal(acme["aging"]["days31_90"]) == Decimal("500")
    assert acme["invoices"][0]["dispute"] == "No"
    assert acme["permissions"] == {"canEditRemarks": True, "canEditNotes": True, "canEditInvoices": True, "canAssign": True}


def test_unfiltered_customers_merge_periods(client: TestClient) -> None:
    rows = _rows(client.get("/customers", headers=COUNTRY_MANAGER))
    assert len(rows["C001"]["invoices"]) == 3
    assert Decimal(rows["C001"]["aging"]["above1Year"]) == Decimal("250")


def test_permissions_per_row(client: TestClient) -> None:
    manager_rows = _rows(client.get("/customers", params={"year": 2026, "month": 3}, headers=MANAGER_NORTH))
    assert manager_rows["C001"]["permissions"]["canAssign"] is True
    assert not any(manager_rows["C002"]["permissions"].values())

    engineer_rows = _rows(client.get("/customers", params={"year": 2026, "month": 3}, headers=ENGINEER_SOUTH))
    assert engineer_rows["C002"]["permissions"] == {"canEditRemarks": True, "canEditNotes": True, "canEditInvoices": True, "canAssign": False}
    assert not any(engineer_rows["C001"]["permissions"].values())


def test_invoice_summaries(client: TestClient) -> None:
    body = client.get("/invoice-summaries", headers=GUEST).json()
    assert [s["period"] for s in body] == ["2026-03", "2026-02", "2025-10", "2025-02"]
    assert Decimal(body[0]["recoveredOutstanding"]) == 0


def test_manual_entry_flow(client: TestClient) -> None:
    payload = {
        "customerCode": "C003",
        "customerName": "Coastal Foods",
        "invoiceNumber": "INV-30",
        "invoiceAmount": "900",
        "invoiceDate": "2026-03-20",
        "outstandingAmount": "900",
        "region": "South",
        "year": 2026,
        "month": 3,
    }
    response = client.post("/entries", json=payload, headers=ENGINEER_SOUTH)
    assert response.status_code == 201
    assert response.json() == {"entries": 1, "recordsCreated": 1, "customersCreated": 1}

    again = client.post("/entries", json=payload, headers=ENGINEER_SOUTH)
    assert again.status_code == 409

    rows = _rows(client.get("/customers", params={"year": 2026, "month": 3}, headers=COUNTRY_MANAGER))
    assert rows["C003"]["customerName"] == "Coastal Foods"


def test_manual_entry_validation_before_store(client: TestClient, store: InMemoryStore) -> None:
    response = client.post("/entries", json={"customerCode": "C003", "year": 2026, "month": 3}, headers=ENGINEER_SOUTH)
    assert response.status_code == 422
    assert store.get("customers", "C003") is None


def test_guest_cannot_enter_records(client: TestClient) -> None:
    response = client.post(
        "/entries/upload",
        files={"file": ("upload.csv", (FIXTURES / "bulk_upload.csv").read_bytes(), "text/csv")},
        data={"year": "2026", "month": "3"},
        headers=GUEST,
    )
    assert response.status_code == 403


def test_bulk_upload(client: TestClient) -> None:
    response = client.post(
        "/entries/upload",
        files={"file": ("upload.csv", (FIXTURES / "bulk_upload.csv").read_bytes(), "text/csv")},
        data={"year": "2026", "month": "3"},
        headers=MANAGER_NORTH,
    )
    assert response.status_code == 201
    assert response.json() == {"entries": 3, "recordsCreated": 1, "customersCreated": 1}


def test_bulk_upload_bad_file(client: TestClient) -> None:
    response = client.post(
        "/entries/upload",
        files={"file": ("upload.csv", b"Code,Name\n", "text/csv")},
        data={"year": "2026", "month": "3"},
        headers=MANAGER_NORTH,
    )
    assert response.status_code == 400


def test_engineer_updates_assigned_record_but_cannot_assign(client: TestClient) -> None:
    response = client.patch("/records/C002/2026/3", json={"remarks": "Payment Received", "notes": "Cleared"}, headers=ENGINEER_SOUTH)
    assert response.status_code == 200
    assert response.json()["remarks"] == "Payment Received"

    response = client.patch("/records/C002/2026/3", json={"assignedEngineerId": "USR000009"}, headers=ENGINEER_SOUTH)
    assert response.status_code == 403


def test_manager_outside_region_is_forbidden(client: TestClient) -> None:
    response = client.patch("/records/C002/2026/3", json={"notes": "x"}, headers=MANAGER_NORTH)
    assert response.status_code == 403


def test_manager_assigns_in_region(client: TestClient) -> None:
    response = client.patch("/records/C001/2026/3", json={"assignedEngineerId": "USR000003"}, headers=MANAGER_NORTH)
    assert response.status_code == 200
    assert response.json()["assignedEngineerId"] == "USR000003"


def test_update_missing_record(client: TestClient) -> None:
    response = client.patch("/records/C404/2026/3", json={"notes": "x"}, headers=COUNTRY_MANAGER)
    assert response.status_code == 404


def test_replace_invoices_marks_dispute(client: TestClient) -> None:
    patches = [{"invoiceNumber": "INV-10", "dispute": "Yes", "note": "Wrong rate"}]
    response = client.put("/records/C002/2026/3/invoices", json=patches, headers=ENGINEER_SOUTH)
    assert response.status_code == 200
    invoices = response.json()["invoices"]
    assert [inv["invoiceNumber"] for inv in invoices] == ["INV-10", "INV-11"]
    assert invoices[0]["dispute"] == "Yes"
    assert invoices[0]["note"] == "Wrong rate"

    forbidden = client.put("/records/C002/2026/3/invoices", json=patches, headers=GUEST)
    assert forbidden.status_code == 403


def test_invoice_edits_cannot_touch_amounts_or_region(client: TestClient, store: InMemoryStore) -> None:
    before = store.get("financialRecords", "C002_2026_3")["invoices"]

    rewritten = [{"invoiceNumber": "INV-11", "outstandingAmount": "0", "region": "North", "dispute": "Yes"}]
    response = client.put("/records/C002/2026/3/invoices", json=rewritten, headers=ENGINEER_SOUTH)
    assert response.status_code == 422

    added = [{"invoiceNumber": "INV-NEW", "dispute": "No"}]
    response = client.put("/records/C002/2026/3/invoices", json=added, headers=ENGINEER_SOUTH)
    assert response.status_code == 404

    assert store.get("financialRecords", "C002_2026_3")["invoices"] == before
    assert client.patch("/records/C002/2026/3", json={"notes": "x"}, headers=MANAGER_NORTH).status_code == 403


def test_manual_entry_rejects_bad_date(client: TestClient, store: InMemoryStore) -> None:
    payload = {
        "customerCode": "C003",
        "customerName": "Coastal Foods",
        "invoiceNumber": "INV-30",
        "invoiceAmount": "100",
        "invoiceDate": "31-13-2025",
        "outstandingAmount": "100",
        "region": "East",
        "year": 2026,
        "month": 3,
    }
    response = client.post("/entries", json=payload, headers=ENGINEER_SOUTH)
    assert response.status_code == 422
    assert store.get("financialRecords", "C003_2026_3") is None


def test_user_admin_is_admin_only(client: TestClient) -> None:
    assert client.get("/users", headers=COUNTRY_MANAGER).status_code == 403

    listed = client.get("/users", params={"role": "Manager"}, headers=ADMIN)
    assert {u["id"] for u in listed.json()} == {"USR000004", "USR000005"}

    created = client.post(
        "/users",
        json={"name": "Kiran Shah", "email": "kiran@debtflow.com", "mobileNumber": "9811111111", "region": "West", "role": "Engineer"},
        headers=ADMIN,
    )
    assert created.status_code == 201
    assert created.json()["id"] == "USR000007"

    duplicate = client.post(
        "/users",
        json={"name": "Kiran Shah", "email": "kiran@debtflow.com", "mobileNumber": "9811111111", "region": "West"},
        headers=ADMIN,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "This email address is already in use."


def test_change_role(client: TestClient) -> None:
    response = client.patch("/users/USR000006/role", json={"role": "Manager"}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["role"] == "Manager"
    assert client.patch("/users/USR000006/role", json={"role": "Owner"}, headers=ADMIN).status_code == 422
