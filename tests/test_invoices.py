"""Tests for invoice management API."""

from datetime import date, timedelta
from decimal import Decimal

from sqlmodel import Session

from conftest import invoice_payload, quote_payload
from models.enums import InvoiceStatus, QuoteStatus
from models.invoice import Invoice
from models.quote import Quote


def _create_invoice(client, customer, **overrides) -> dict:
    response = client.post("/api/invoices", json=invoice_payload(customer.id, **overrides))
    assert response.status_code == 201, response.text
    return response.json()


def _sent_invoice(client, customer, **overrides) -> dict:
    invoice = _create_invoice(client, customer, **overrides)
    response = client.post(f"/api/invoices/{invoice['id']}/send")
    assert response.status_code == 200
    return response.json()


def test_create_invoice(authenticated_client, customer):
    client, _ = authenticated_client

    data = _create_invoice(client, customer)

    assert data["type"] == "standard"
    assert data["status"] == "draft"
    assert data["invoice_number"] == f"FC-{date.today().strftime('%y%m')}-001"
    assert Decimal(data["total_ttc"]) == Decimal("1200")
    assert Decimal(data["amount_due"]) == Decimal("1200")
    # Organization default payment terms: 30 days
    assert data["due_date"] == (date.today() + timedelta(days=30)).isoformat()


def test_client_payment_terms_override_default(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    customer.payment_terms = 45
    session.add(customer)
    session.commit()

    data = _create_invoice(client, customer)

    assert data["due_date"] == (date.today() + timedelta(days=45)).isoformat()


def test_due_date_before_issue_date_is_refused(authenticated_client, customer):
    client, _ = authenticated_client

    response = client.post("/api/invoices", json=invoice_payload(
        customer.id, issue_date="2026-03-10", due_date="2026-03-01"
    ))

    assert response.status_code == 400


def test_typed_invoices_need_their_origin(authenticated_client, customer):
    client, _ = authenticated_client

    assert client.post("/api/invoices", json=invoice_payload(customer.id, type="deposit")).status_code == 400
    assert client.post("/api/invoices", json=invoice_payload(customer.id, type="credit_note")).status_code == 400
    assert client.post("/api/invoices", json=invoice_payload(customer.id, type="recurring")).status_code == 400


def test_partial_then_full_payment(authenticated_client, customer):
    client, _ = authenticated_client
    invoice = _sent_invoice(client, customer)

    response = client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "500", "method": "check"})
    assert response.status_code == 201
    data = client.get(f"/api/invoices/{invoice['id']}").json()
    assert data["status"] == "partially_paid"
    assert Decimal(data["amount_paid"]) == Decimal("500")
    assert Decimal(data["amount_due"]) == Decimal("700")

    client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "700"})
    data = client.get(f"/api/invoices/{invoice['id']}").json()
    assert data["status"] == "paid"
    assert Decimal(data["amount_due"]) == Decimal("0")
    assert data["paid_date"] == date.today().isoformat()
    assert len(data["payments"]) == 2


def test_draft_invoice_cannot_be_paid(authenticated_client, customer):
    client, _ = authenticated_client
    invoice = _create_invoice(client, customer)

    response = client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "100"})

    assert response.status_code == 400


def test_update_only_drafts(authenticated_client, customer):
    client, _ = authenticated_client
    invoice = _create_invoice(client, customer)

    response = client.put(f"/api/invoices/{invoice['id']}", json={"reference": "BC-77"})
    assert response.status_code == 200
    assert response.json()["reference"] == "BC-77"

    client.post(f"/api/invoices/{invoice['id']}/send")
    assert client.put(f"/api/invoices/{invoice['id']}", json={"reference": "BC-78"}).status_code == 400
    assert client.delete(f"/api/invoices/{invoice['id']}").status_code == 400


def test_cancel_unpaid_invoice(authenticated_client, customer):
    client, _ = authenticated_client
    invoice = _sent_invoice(client, customer)

    response = client.post(f"/api/invoices/{invoice['id']}/cancel")

    assert response.status_code == 200
    data = response.json()
    assert data["invoice"]["status"] == "cancelled"
    assert data["credit_note"] is None


def test_cancel_paid_invoice_issues_credit_note(authenticated_client, customer):
    """A paid invoice is refunded through a credit note mirroring its lines."""
    client, _ = authenticated_client
    invoice = _sent_invoice(client, customer)
    client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "1200"})

    response = client.post(f"/api/invoices/{invoice['id']}/cancel")

    assert response.status_code == 200
    data = response.json()
    assert data["invoice"]["status"] == "refunded"
    credit_note = data["credit_note"]
    assert credit_note["type"] == "credit_note"
    assert credit_note["invoice_number"].startswith("AV-")
    assert credit_note["parent_invoice_id"] == invoice["id"]
    assert Decimal(credit_note["total_ttc"]) == Decimal("-1200")


def test_final_invoice_after_paid_deposit(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    quote = client.post("/api/quotes", json=quote_payload(customer.id, deposit_percent="30")).json()
    client.post(f"/api/quotes/{quote['id']}/send")
    client.post(f"/api/quotes/{quote['id']}/accept")
    deposit = client.post(f"/api/quotes/{quote['id']}/convert").json()

    # Unpaid deposit: no final invoice yet
    client.post(f"/api/invoices/{deposit['id']}/send")
    assert client.post(f"/api/invoices/{deposit['id']}/final").status_code == 400

    client.post(f"/api/invoices/{deposit['id']}/pay", json={"amount": deposit["total_ttc"]})
    response = client.post(f"/api/invoices/{deposit['id']}/final")

    assert response.status_code == 201
    final = response.json()
    assert final["type"] == "final"
    assert final["invoice_number"].startswith("FS-")
    assert final["parent_invoice_id"] == deposit["id"]
    assert Decimal(final["subtotal_ht"]) == Decimal("770")
    assert Decimal(final["total_ttc"]) == Decimal("924")
    assert session.get(Quote, quote["id"]).status == QuoteStatus.FULLY_INVOICED

    # Only one final invoice per deposit
    assert client.post(f"/api/invoices/{deposit['id']}/final").status_code == 400


def test_deposit_and_final_add_up_to_quote(authenticated_client, customer, session: Session):
    """Rounded deposit quantities are deducted from the final invoice, not rounded twice."""
    client, _ = authenticated_client
    lines = [{"description": "Audit", "quantity": "1.5", "unit": "jour", "unit_price_ht": "999.99", "tva_rate": "20"}]
    quote = client.post("/api/quotes", json=quote_payload(customer.id, lines=lines, deposit_percent="33.33")).json()
    client.post(f"/api/quotes/{quote['id']}/send")
    client.post(f"/api/quotes/{quote['id']}/accept")
    deposit = client.post(f"/api/quotes/{quote['id']}/convert").json()
    client.post(f"/api/invoices/{deposit['id']}/send")
    client.post(f"/api/invoices/{deposit['id']}/pay", json={"amount": deposit["total_ttc"]})

    response = client.post(f"/api/invoices/{deposit['id']}/final")

    assert response.status_code == 201
    final = response.json()
    assert Decimal(quote["total_ttc"]) == Decimal("1799.99")
    assert Decimal(deposit["total_ttc"]) + Decimal(final["total_ttc"]) == Decimal(quote["total_ttc"])
    assert Decimal(deposit["subtotal_ht"]) + Decimal(final["subtotal_ht"]) == Decimal(quote["subtotal_ht"])
    final_quantity = session.get(Invoice, final["id"]).lines[0].quantity
    deposit_quantity = session.get(Invoice, deposit["id"]).lines[0].quantity
    assert deposit_quantity + final_quantity == Decimal("1.5")


def test_overdue_sweep(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    today = date.today()
    late = _sent_invoice(
        client, customer,
        issue_date=(today - timedelta(days=60)).isoformat(),
        due_date=(today - timedelta(days=30)).isoformat(),
    )
    current = _sent_invoice(client, customer)

    response = client.post("/api/invoices/overdue-sweep")

    assert response.status_code == 200
    assert response.json()["updated"] == 1
    assert session.get(Invoice, late["id"]).status == InvoiceStatus.OVERDUE
    assert session.get(Invoice, current["id"]).status == InvoiceStatus.SENT


def test_cancel_overdue_invoice_with_payment_issues_credit_note(authenticated_client, customer):
    client, _ = authenticated_client
    today = date.today()
    invoice = _sent_invoice(
        client, customer,
        issue_date=(today - timedelta(days=60)).isoformat(),
        due_date=(today - timedelta(days=30)).isoformat(),
    )
    client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "300"})
    client.post("/api/invoices/overdue-sweep")
    assert client.get(f"/api/invoices/{invoice['id']}").json()["status"] == "overdue"

    response = client.post(f"/api/invoices/{invoice['id']}/cancel")

    assert response.status_code == 200
    data = response.json()
    assert data["invoice"]["status"] == "cancelled"
    assert data["credit_note"] is not None
    assert data["credit_note"]["parent_invoice_id"] == invoice["id"]
    assert Decimal(data["credit_note"]["total_ttc"]) == Decimal("-1200")


def test_put_null_on_required_invoice_field_is_refused(authenticated_client, customer):
    client, _ = authenticated_client
    invoice = _create_invoice(client, customer, notes="À relancer")

    assert client.put(f"/api/invoices/{invoice['id']}", json={"due_date": None}).status_code == 422
    assert client.put(f"/api/invoices/{invoice['id']}", json={"lines": None}).status_code == 422

    # Nullable columns can still be cleared
    response = client.put(f"/api/invoices/{invoice['id']}", json={"notes": None})
    assert response.status_code == 200
    assert response.json()["notes"] is None


def test_remind_invoice(authenticated_client, customer):
    client, _ = authenticated_client
    draft = _create_invoice(client, customer)
    assert client.post(f"/api/invoices/{draft['id']}/remind").status_code == 400

    invoice = _sent_invoice(client, customer)
    response = client.post(f"/api/invoices/{invoice['id']}/remind")

    assert response.status_code == 200
    assert response.json()["reminder_count"] == 1
    assert response.json()["last_reminder_at"] is not None


def test_list_unpaid_invoices(authenticated_client, customer):
    client, _ = authenticated_client
    _create_invoice(client, customer)
    sent = _sent_invoice(client, customer)

    response = client.get("/api/invoices", params={"unpaid": True})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["invoices"][0]["id"] == sent["id"]
