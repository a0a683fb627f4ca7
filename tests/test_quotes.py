"""Tests for quote management API."""

import logging
from datetime import date
from decimal import Decimal

from sqlmodel import Session, select

from conftest import quote_payload
from models.audit import AuditLog
from models.enums import AuditAction, QuoteStatus, TaxStatus
from models.quote import Quote


def _create_quote(client, customer, **overrides) -> dict:
    response = client.post("/api/quotes", json=quote_payload(customer.id, **overrides))
    assert response.status_code == 201, response.text
    return response.json()


def test_create_quote_computes_totals(authenticated_client, customer):
    """Test creating a quote with lines."""
    client, _ = authenticated_client

    data = _create_quote(client, customer)

    assert data["status"] == "draft"
    assert data["quote_number"] == f"DV-{date.today().strftime('%y%m')}-001"
    assert Decimal(data["subtotal_ht"]) == Decimal("1100")
    assert Decimal(data["total_tva"]) == Decimal("220")
    assert Decimal(data["total_ttc"]) == Decimal("1320")
    assert len(data["lines"]) == 2
    assert Decimal(data["lines"][0]["total_ht"]) == Decimal("1000")


def test_quote_numbers_follow_each_other(authenticated_client, customer):
    client, _ = authenticated_client

    first = _create_quote(client, customer)
    second = _create_quote(client, customer)

    assert first["quote_number"].endswith("-001")
    assert second["quote_number"].endswith("-002")


def test_sections_and_optional_lines_are_not_billed(authenticated_client, customer):
    client, _ = authenticated_client

    data = _create_quote(client, customer, lines=[
        {"description": "Phase 1", "is_section": True},
        {"description": "Maquettes", "quantity": "1", "unit_price_ht": "800", "tva_rate": "20"},
        {"description": "Option SEO", "quantity": "1", "unit_price_ht": "300", "tva_rate": "20", "is_optional": True},
    ])

    assert Decimal(data["subtotal_ht"]) == Decimal("800")
    assert Decimal(data["total_ttc"]) == Decimal("960")
    assert Decimal(data["lines"][0]["total_ttc"]) == Decimal("0")


def test_discount_applies_to_ht_and_tva(authenticated_client, customer):
    client, _ = authenticated_client

    data = _create_quote(client, customer, discount_percent="10")

    assert Decimal(data["discount_amount"]) == Decimal("110")
    assert Decimal(data["total_tva"]) == Decimal("198")
    assert Decimal(data["total_ttc"]) == Decimal("1188")


def test_franchise_organization_bills_no_tva(authenticated_client, customer, organization, session: Session):
    client, _ = authenticated_client
    organization.tax_status = TaxStatus.FRANCHISE
    session.add(organization)
    session.commit()

    data = _create_quote(client, customer)

    assert Decimal(data["total_tva"]) == Decimal("0")
    assert Decimal(data["total_ttc"]) == Decimal("1100")
    assert all(Decimal(line["tva_rate"]) == Decimal("0") for line in data["lines"])


def test_create_quote_for_archived_client_is_refused(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    customer.is_active = False
    session.add(customer)
    session.commit()

    response = client.post("/api/quotes", json=quote_payload(customer.id))

    assert response.status_code == 400


def test_create_quote_for_unknown_client(authenticated_client):
    client, _ = authenticated_client

    response = client.post("/api/quotes", json=quote_payload("missing-client"))

    assert response.status_code == 404


def test_update_replaces_lines(authenticated_client, customer):
    client, _ = authenticated_client
    quote = _create_quote(client, customer)

    response = client.put(f"/api/quotes/{quote['id']}", json={
        "reference": "REF-42",
        "lines": [{"description": "Audit", "quantity": "1", "unit_price_ht": "250", "tva_rate": "20"}],
    })

    assert response.status_code == 200
    data = response.json()
    assert data["reference"] == "REF-42"
    assert len(data["lines"]) == 1
    assert Decimal(data["total_ttc"]) == Decimal("300")


def test_sent_quote_cannot_be_edited_or_deleted(authenticated_client, customer):
    client, _ = authenticated_client
    quote = _create_quote(client, customer)
    assert client.post(f"/api/quotes/{quote['id']}/send").status_code == 200

    response = client.put(f"/api/quotes/{quote['id']}", json={"notes": "trop tard"})
    assert response.status_code == 400

    response = client.delete(f"/api/quotes/{quote['id']}")
    assert response.status_code == 400


def test_delete_draft_quote(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    quote = _create_quote(client, customer)

    response = client.delete(f"/api/quotes/{quote['id']}")

    assert response.status_code == 204
    assert session.get(Quote, quote["id"]) is None


def test_status_workflow(authenticated_client, customer, session: Session):
    """Draft -> sent -> viewed -> accepted, every change audited."""
    client, user = authenticated_client
    quote = _create_quote(client, customer)

    for action, expected in (("send", "sent"), ("view", "viewed"), ("accept", "accepted")):
        response = client.post(f"/api/quotes/{quote['id']}/{action}")
        assert response.status_code == 200
        assert response.json()["status"] == expected

    data = client.get(f"/api/quotes/{quote['id']}").json()
    assert data["accepted_date"] == date.today().isoformat()
    assert data["sent_at"] is not None

    changes = session.exec(
        select(AuditLog).where(AuditLog.entity_id == quote["id"], AuditLog.action == AuditAction.STATUS_CHANGE)
    ).all()
    assert len(changes) == 3


def test_invalid_transition_is_refused(authenticated_client, customer, caplog):
    client, _ = authenticated_client
    quote = _create_quote(client, customer)

    with caplog.at_level(logging.WARNING, logger="main"):
        response = client.post(f"/api/quotes/{quote['id']}/accept")

    assert response.status_code == 400
    assert "draft" in response.json()["detail"]
    refused = [record for record in caplog.records if record.name == "main"]
    assert refused and refused[0].levelno == logging.WARNING
    assert f"/api/quotes/{quote['id']}/accept" in refused[0].getMessage()


def test_duplicate_quote(authenticated_client, customer):
    client, _ = authenticated_client
    quote = _create_quote(client, customer, reference="Site vitrine")
    client.post(f"/api/quotes/{quote['id']}/send")

    response = client.post(f"/api/quotes/{quote['id']}/duplicate")

    assert response.status_code == 201
    copy = response.json()
    assert copy["status"] == "draft"
    assert copy["duplicated_from"] == quote["id"]
    assert copy["reference"] == "Site vitrine (copie)"
    assert copy["quote_number"] != quote["quote_number"]
    assert Decimal(copy["total_ttc"]) == Decimal(quote["total_ttc"])


def test_convert_accepted_quote_to_standard_invoice(authenticated_client, customer, session: Session):
    client, _ = authenticated_client
    quote = _create_quote(client, customer)
    for action in ("send", "accept"):
        client.post(f"/api/quotes/{quote['id']}/{action}")

    response = client.post(f"/api/quotes/{quote['id']}/convert")

    assert response.status_code == 201
    invoice = response.json()
    assert invoice["type"] == "standard"
    assert invoice["status"] == "draft"
    assert invoice["quote_id"] == quote["id"]
    assert invoice["invoice_number"].startswith("FC-")
    assert Decimal(invoice["total_ttc"]) == Decimal("1320")
    assert session.get(Quote, quote["id"]).status == QuoteStatus.FULLY_INVOICED


def test_convert_quote_with_deposit(authenticated_client, customer, session: Session):
    """A deposit percentage yields a deposit invoice for that share."""
    client, _ = authenticated_client
    quote = _create_quote(client, customer, deposit_percent="30")
    for action in ("send", "accept"):
        client.post(f"/api/quotes/{quote['id']}/{action}")

    invoice = client.post(f"/api/quotes/{quote['id']}/convert").json()

    assert invoice["type"] == "deposit"
    assert invoice["invoice_number"].startswith("FA-")
    assert Decimal(invoice["subtotal_ht"]) == Decimal("330")
    assert Decimal(invoice["total_ttc"]) == Decimal("396")
    assert session.get(Quote, quote["id"]).status == QuoteStatus.PARTIALLY_INVOICED


def test_convert_requires_accepted_quote(authenticated_client, customer):
    client, _ = authenticated_client
    quote = _create_quote(client, customer)

    response = client.post(f"/api/quotes/{quote['id']}/convert")

    assert response.status_code == 400


def test_list_quotes_with_status_filter(authenticated_client, customer):
    client, _ = authenticated_client
    draft = _create_quote(client, customer)
    sent = _create_quote(client, customer)
    client.post(f"/api/quotes/{sent['id']}/send")

    response = client.get("/api/quotes", params={"status": "sent"})
    assert response.status_code == 200
    assert [q["id"] for q in response.json()["quotes"]] == [sent["id"]]

    all_quotes = client.get("/api/quotes").json()
    assert all_quotes["total"] == 2
    assert {q["id"] for q in all_quotes["quotes"]} == {draft["id"], sent["id"]}

    assert client.get("/api/quotes", params={"status": "bogus"}).status_code == 400


def test_converted_filter_matches_both_invoiced_statuses(authenticated_client, customer):
    client, _ = authenticated_client
    partial = _create_quote(client, customer, deposit_percent="30")
    full = _create_quote(client, customer)
    _create_quote(client, customer)
    for quote in (partial, full):
        for action in ("send", "accept", "convert"):
            client.post(f"/api/quotes/{quote['id']}/{action}")

    response = client.get("/api/quotes", params={"status": "converted"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {q["id"] for q in data["quotes"]} == {partial["id"], full["id"]}
    assert {q["status"] for q in data["quotes"]} == {"partially_invoiced", "fully_invoiced"}


def test_put_null_on_required_quote_field_is_refused(authenticated_client, customer):
    client, _ = authenticated_client
    quote = _create_quote(client, customer, notes="Remise accordée")

    assert client.put(f"/api/quotes/{quote['id']}", json={"validity_date": None}).status_code == 422
    assert client.put(f"/api/quotes/{quote['id']}", json={"client_id": None}).status_code == 422

    response = client.put(f"/api/quotes/{quote['id']}", json={"notes": None})
    assert response.status_code == 200
    assert response.json()["notes"] is None
    assert response.json()["validity_date"] == quote["validity_date"]
