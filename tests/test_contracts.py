"""Tests for recurring contracts: lifecycle, renewals and periodic invoicing."""

from datetime import date, timedelta
from decimal import Decimal

from sqlmodel import Session

from models.contract import Contract
from models.enums import BillingFrequency, ContractStatus
from services.contracts import add_months, period_amount


def _contract_payload(client_id: str, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "name": "Maintenance site web",
        "start_date": "2026-01-01",
        "end_date": "2026-12-31",
        "annual_amount_ht": "12000",
        "billing_frequency": "monthly",
    }
    payload.update(overrides)
    return payload


def _active_contract(client, customer, **overrides) -> dict:
    contract = client.post("/api/contracts", json=_contract_payload(customer.id, **overrides)).json()
    response = client.post(f"/api/contracts/{contract['id']}/status", json={"status": "active"})
    assert response.status_code == 200
    return response.json()


def test_add_months_clamps_to_month_end():
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)
    assert add_months(date(2028, 1, 31), 1) == date(2028, 2, 29)


def test_period_amount():
    assert period_amount(Decimal("12000"), BillingFrequency.MONTHLY) == Decimal("1000.00")
    assert period_amount(Decimal("10000"), BillingFrequency.QUARTERLY) == Decimal("2500.00")
    assert period_amount(Decimal("1000"), BillingFrequency.MONTHLY) == Decimal("83.33")


def test_create_contract(authenticated_client, customer):
    client, _ = authenticated_client

    response = client.post("/api/contracts", json=_contract_payload(customer.id))

    assert response.status_code == 201
    data = response.json()
    assert data["contract_number"] == "CT-2026-001"
    assert data["status"] == "draft"
    assert data["next_billing_date"] == "2026-01-01"


def test_end_date_must_follow_start_date(authenticated_client, customer):
    client, _ = authenticated_client

    response = client.post("/api/contracts", json=_contract_payload(customer.id, end_date="2025-12-31"))

    assert response.status_code == 422


def test_only_drafts_are_editable(authenticated_client, customer):
    client, _ = authenticated_client
    contract = client.post("/api/contracts", json=_contract_payload(customer.id)).json()

    response = client.put(f"/api/contracts/{contract['id']}", json={"annual_amount_ht": "24000"})
    assert response.status_code == 200
    assert Decimal(response.json()["annual_amount_ht"]) == Decimal("24000")

    client.post(f"/api/contracts/{contract['id']}/status", json={"status": "active"})
    assert client.put(f"/api/contracts/{contract['id']}", json={"name": "Autre"}).status_code == 400
    assert client.delete(f"/api/contracts/{contract['id']}").status_code == 400


def test_generate_recurring_invoice(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    contract = _active_contract(client, customer)

    response = client.post(f"/api/contracts/{contract['id']}/generate-invoice")

    assert response.status_code == 201
    invoice = response.json()
    assert invoice["type"] == "recurring"
    assert invoice["contract_id"] == contract["id"]
    assert invoice["invoice_number"].startswith("FR-")
    assert Decimal(invoice["subtotal_ht"]) == Decimal("1000")
    assert Decimal(invoice["total_ttc"]) == Decimal("1200")
    assert invoice["lines"][0]["description"] == "Maintenance site web - Facturation mensuelle"

    stored = session.get(Contract, contract["id"])
    assert stored.next_billing_date == date(2026, 2, 1)
    assert stored.last_billed_date == date.today()


def test_draft_contract_cannot_bill(authenticated_client, customer):
    client, _ = authenticated_client
    contract = client.post("/api/contracts", json=_contract_payload(customer.id)).json()

    response = client.post(f"/api/contracts/{contract['id']}/generate-invoice")

    assert response.status_code == 400


def test_renew_contract(authenticated_client, customer, session: Session):
    """Renewal creates the next-period draft and closes the current contract."""
    client, _ = authenticated_client
    contract = _active_contract(client, customer)

    response = client.post(f"/api/contracts/{contract['id']}/renew")

    assert response.status_code == 201
    renewed = response.json()
    assert renewed["status"] == "draft"
    assert renewed["renewed_from"] == contract["id"]
    assert renewed["start_date"] == "2027-01-01"
    assert renewed["end_date"] == "2027-12-31"
    assert renewed["contract_number"] == "CT-2027-001"
    assert session.get(Contract, contract["id"]).status == ContractStatus.RENEWED

    # A renewed contract is closed
    assert client.post(f"/api/contracts/{contract['id']}/renew").status_code == 400


def test_review_renewals(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    today = date.today()
    renewing = _active_contract(
        client, customer,
        start_date=(today - timedelta(days=300)).isoformat(),
        end_date=(today + timedelta(days=30)).isoformat(),
        renewal_notice_days=60,
    )
    ending = _active_contract(
        client, customer,
        start_date=(today - timedelta(days=400)).isoformat(),
        end_date=(today - timedelta(days=1)).isoformat(),
        auto_renew=False,
    )
    untouched = _active_contract(
        client, customer,
        start_date=today.isoformat(),
        end_date=(today + timedelta(days=365)).isoformat(),
    )

    response = client.post("/api/contracts/review-renewals")

    assert response.status_code == 200
    assert response.json() == {"renewal_pending": [renewing["id"]], "expired": [ending["id"]]}
    assert session.get(Contract, untouched["id"]).status == ContractStatus.ACTIVE


def test_list_contracts_reports_recurring_revenue(authenticated_client, customer):
    client, _ = authenticated_client
    _active_contract(client, customer)
    client.post("/api/contracts", json=_contract_payload(customer.id, annual_amount_ht="6000"))

    response = client.get("/api/contracts")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert Decimal(data["monthly_recurring_revenue"]) == Decimal("1000")


def test_invalid_status_change(authenticated_client, customer):
    client, _ = authenticated_client
    contract = client.post("/api/contracts", json=_contract_payload(customer.id)).json()

    response = client.post(f"/api/contracts/{contract['id']}/status", json={"status": "renewed"})

    assert response.status_code == 400


def test_put_null_on_required_contract_field_is_refused(authenticated_client, customer):
    client, _ = authenticated_client
    contract = client.post("/api/contracts", json=_contract_payload(customer.id, description="Forfait annuel")).json()

    assert client.put(f"/api/contracts/{contract['id']}", json={"end_date": None}).status_code == 422
    assert client.put(f"/api/contracts/{contract['id']}", json={"name": None}).status_code == 422

    response = client.put(f"/api/contracts/{contract['id']}", json={"description": None})
    assert response.status_code == 200
    assert response.json()["description"] is None
    assert response.json()["end_date"] == "2026-12-31"
