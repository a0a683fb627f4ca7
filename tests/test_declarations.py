"""Tests for quarterly TVA declarations."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import invoice_payload
from services.declarations import quarter_dates, quarter_of


@pytest.fixture
def paid_in_february(authenticated_client, customer):
    """A 1 000 € HT invoice paid on 15 February 2026."""
    client, _ = authenticated_client
    invoice = client.post("/api/invoices", json=invoice_payload(
        customer.id, issue_date="2026-02-01", due_date="2026-03-03"
    )).json()
    client.post(f"/api/invoices/{invoice['id']}/send")
    client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "1200", "payment_date": "2026-02-15"})
    return invoice


def test_quarter_dates():
    q1 = quarter_dates(2026, 1)
    assert (q1.start, q1.end, q1.payment_due) == (date(2026, 1, 1), date(2026, 3, 31), date(2026, 4, 30))
    q4 = quarter_dates(2026, 4)
    assert (q4.start, q4.end, q4.payment_due) == (date(2026, 10, 1), date(2026, 12, 31), date(2027, 1, 31))
    with pytest.raises(ValueError):
        quarter_dates(2026, 5)


def test_quarter_of():
    assert quarter_of(date(2026, 1, 1)) == 1
    assert quarter_of(date(2026, 6, 30)) == 2
    assert quarter_of(date(2026, 12, 31)) == 4


def test_declaration_sums_paid_invoices(authenticated_client, paid_in_february):
    client, _ = authenticated_client

    response = client.get("/api/declarations/2026/1")

    assert response.status_code == 200
    data = response.json()
    assert data["period_start"] == "2026-01-01"
    assert data["period_end"] == "2026-03-31"
    assert Decimal(data["ca_ht"]) == Decimal("1000")
    assert Decimal(data["tva_collected"]) == Decimal("200")
    assert Decimal(data["tva_to_pay"]) == Decimal("200")
    assert data["status"] == "pending"

    # Nothing paid in the second quarter
    q2 = client.get("/api/declarations/2026/2").json()
    assert Decimal(q2["tva_collected"]) == Decimal("0")


def test_invalid_quarter(authenticated_client):
    client, _ = authenticated_client
    assert client.get("/api/declarations/2026/5").status_code == 422


def test_deductible_tva_and_lifecycle(authenticated_client, paid_in_february):
    client, _ = authenticated_client
    declaration = client.get("/api/declarations/2026/1").json()

    response = client.put(f"/api/declarations/{declaration['id']}", json={"tva_deductible": "50"})
    assert response.status_code == 200
    assert Decimal(response.json()["tva_to_pay"]) == Decimal("150")

    # Paying requires a declared declaration
    assert client.post(f"/api/declarations/{declaration['id']}/pay").status_code == 400

    response = client.post(f"/api/declarations/{declaration['id']}/declare", json={"notes": "Déposée en ligne"})
    assert response.status_code == 200
    assert response.json()["status"] == "declared"
    assert response.json()["notes"] == "Déposée en ligne"

    # Declared figures are frozen
    assert client.post(f"/api/declarations/{declaration['id']}/refresh").status_code == 400

    response = client.post(f"/api/declarations/{declaration['id']}/pay")
    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    assert response.json()["paid_at"] is not None


def test_refresh_picks_up_new_payments(authenticated_client, customer):
    client, _ = authenticated_client
    declaration = client.get("/api/declarations/2026/1").json()
    assert Decimal(declaration["ca_ht"]) == Decimal("0")

    invoice = client.post("/api/invoices", json=invoice_payload(
        customer.id, issue_date="2026-03-01", due_date="2026-03-31"
    )).json()
    client.post(f"/api/invoices/{invoice['id']}/send")
    client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "1200", "payment_date": "2026-03-20"})

    response = client.post(f"/api/declarations/{declaration['id']}/refresh")

    assert response.status_code == 200
    assert Decimal(response.json()["ca_ht"]) == Decimal("1000")


def test_list_creates_missing_quarters(authenticated_client):
    client, _ = authenticated_client
    today = date.today()

    response = client.get("/api/declarations")

    assert response.status_code == 200
    periods = [(d["year"], d["quarter"]) for d in response.json()]
    expected = [(today.year - 1, q) for q in range(1, 5)] + [(today.year, q) for q in range(1, quarter_of(today) + 1)]
    assert periods == expected
