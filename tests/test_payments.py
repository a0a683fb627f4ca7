"""Tests for payments and refunds."""

from datetime import date
from decimal import Decimal

import pytest
from sqlmodel import Session

from conftest import invoice_payload
from models.enums import InvoiceStatus, PaymentStatus
from models.invoice import Invoice
from models.payment import Payment


@pytest.fixture
def sent_invoice(authenticated_client, customer):
    client, _ = authenticated_client
    invoice = client.post("/api/invoices", json=invoice_payload(customer.id)).json()
    client.post(f"/api/invoices/{invoice['id']}/send")
    return invoice


def test_record_payment(authenticated_client, sent_invoice, session: Session):
    client, _ = authenticated_client

    response = client.post("/api/payments", json={
        "invoice_id": sent_invoice["id"],
        "amount": "1200",
        "method": "bank_transfer",
        "payment_date": "2026-02-15",
        "reference": "VIR-001",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "received"
    assert Decimal(data["amount"]) == Decimal("1200")
    invoice = session.get(Invoice, sent_invoice["id"])
    assert invoice.status == InvoiceStatus.PAID
    assert invoice.paid_date == date(2026, 2, 15)


def test_payment_amount_must_be_positive(authenticated_client, sent_invoice):
    client, _ = authenticated_client

    response = client.post("/api/payments", json={"invoice_id": sent_invoice["id"], "amount": "0"})

    assert response.status_code == 422


def test_list_payments_with_invoice_details(authenticated_client, sent_invoice):
    client, _ = authenticated_client
    client.post(f"/api/invoices/{sent_invoice['id']}/pay", json={"amount": "200", "method": "check"})
    client.post(f"/api/invoices/{sent_invoice['id']}/pay", json={"amount": "300", "method": "card"})

    response = client.get("/api/payments")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert all(p["invoice_number"] == sent_invoice["invoice_number"] for p in data["payments"])
    assert all(p["client_name"] == "Boulangerie Martin" for p in data["payments"])

    by_method = client.get("/api/payments", params={"method": "card"}).json()
    assert by_method["total"] == 1
    assert Decimal(by_method["payments"][0]["amount"]) == Decimal("300")


def test_refund_payment(authenticated_client, sent_invoice, session: Session):
    """A refund stores a negative payment and reopens the invoice."""
    client, _ = authenticated_client
    payment = client.post(f"/api/invoices/{sent_invoice['id']}/pay", json={"amount": "1200"}).json()

    response = client.post(f"/api/payments/{payment['id']}/refund")

    assert response.status_code == 201
    refund = response.json()
    assert Decimal(refund["amount"]) == Decimal("-1200")
    assert refund["refund_of"] == payment["id"]
    assert session.get(Payment, payment["id"]).status == PaymentStatus.REFUNDED

    invoice = session.get(Invoice, sent_invoice["id"])
    assert invoice.status == InvoiceStatus.SENT
    assert invoice.amount_paid == Decimal("0")
    assert invoice.amount_due == Decimal("1200")

    # Refunding twice is refused
    assert client.post(f"/api/payments/{payment['id']}/refund").status_code == 400


def test_partial_refund_keeps_other_payments(authenticated_client, sent_invoice, session: Session):
    client, _ = authenticated_client
    first = client.post(f"/api/invoices/{sent_invoice['id']}/pay", json={"amount": "200"}).json()
    client.post(f"/api/invoices/{sent_invoice['id']}/pay", json={"amount": "300"})

    client.post(f"/api/payments/{first['id']}/refund")

    invoice = session.get(Invoice, sent_invoice["id"])
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert invoice.amount_paid == Decimal("300")


def test_update_payment_notes(authenticated_client, sent_invoice):
    client, _ = authenticated_client
    payment = client.post(f"/api/invoices/{sent_invoice['id']}/pay", json={"amount": "100"}).json()

    response = client.put(f"/api/payments/{payment['id']}", json={"notes": "Reçu par chèque n°42"})

    assert response.status_code == 200
    assert response.json()["notes"] == "Reçu par chèque n°42"


def test_unknown_payment(authenticated_client):
    client, _ = authenticated_client
    assert client.get("/api/payments/missing").status_code == 404
