"""Tests for the CSV exports."""

import pytest

from conftest import invoice_payload, quote_payload
from services.exports import to_csv

UTF8_BOM = b"\xef\xbb\xbf"


def _rows(response) -> list[list[str]]:
    text = response.content.decode("utf-8-sig")
    return [line.split(";") for line in text.split("\r\n") if line]


@pytest.fixture
def paid_invoice(authenticated_client, customer):
    client, _ = authenticated_client
    invoice = client.post("/api/invoices", json=invoice_payload(customer.id, issue_date="2026-03-02")).json()
    client.post(f"/api/invoices/{invoice['id']}/send")
    client.post(f"/api/invoices/{invoice['id']}/pay", json={
        "amount": "1200", "method": "check", "payment_date": "2026-03-20",
    })
    return invoice


def test_to_csv_quotes_separators():
    content = to_csv(["Nom", "Notes"], [["Dupont", "a;b"]])

    assert content.startswith("\ufeff")
    assert content.splitlines()[1] == 'Dupont;"a;b"'


def test_export_clients(authenticated_client, customer):
    client, _ = authenticated_client

    response = client.get("/api/export/clients")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=clients_" in response.headers["content-disposition"]
    assert response.content.startswith(UTF8_BOM)
    rows = _rows(response)
    assert rows[0][0] == "Société"
    assert rows[1][0] == "Boulangerie Martin"


def test_export_invoices_uses_french_formats(authenticated_client, paid_invoice):
    client, _ = authenticated_client

    rows = _rows(client.get("/api/export/invoices"))

    assert len(rows) == 2
    line = dict(zip(rows[0], rows[1]))
    assert line["Numéro"] == paid_invoice["invoice_number"]
    assert line["Date d'émission"] == "02/03/2026"
    assert line["Total TTC"] == "1200,00"
    assert line["Reste dû"] == "0,00"


def test_export_quotes(authenticated_client, customer):
    client, _ = authenticated_client
    client.post("/api/quotes", json=quote_payload(customer.id))

    rows = _rows(client.get("/api/export/quotes"))

    assert len(rows) == 2
    assert dict(zip(rows[0], rows[1]))["Total TTC"] == "1320,00"


def test_export_revenue_book(authenticated_client, paid_invoice):
    client, _ = authenticated_client

    response = client.get("/api/export/revenue")

    assert response.status_code == 200
    assert "livre_recettes_" in response.headers["content-disposition"]
    rows = _rows(response)
    assert rows[0] == ["Date Encaissement", "N° Facture", "Client", "Montant", "Mode de Paiement"]
    assert rows[1] == ["20/03/2026", paid_invoice["invoice_number"], "Boulangerie Martin", "1200,00", "Chèque"]


def test_unknown_export(authenticated_client):
    client, _ = authenticated_client

    response = client.get("/api/export/contracts")

    assert response.status_code == 400
    assert "Unknown export" in response.json()["detail"]
