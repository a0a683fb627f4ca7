"""Tests for dashboard metrics, treasury, calendar, notifications and the audit trail."""

from datetime import date
from decimal import Decimal

import pytest
from sqlmodel import Session

from conftest import invoice_payload, quote_payload
from models.enums import TaxStatus
from services import reporting


@pytest.fixture
def billed(authenticated_client, customer):
    """One invoice of 1200 TTC sent in March 2026, 500 paid in April."""
    client, _ = authenticated_client
    invoice = client.post("/api/invoices", json=invoice_payload(
        customer.id, issue_date="2026-03-01", due_date="2026-03-31"
    )).json()
    client.post(f"/api/invoices/{invoice['id']}/send")
    client.post(f"/api/invoices/{invoice['id']}/pay", json={"amount": "500", "payment_date": "2026-04-10"})
    return invoice


def test_dashboard_endpoint(authenticated_client, customer):
    client, _ = authenticated_client
    client.post("/api/quotes", json=quote_payload(customer.id))

    response = client.get("/api/dashboard")

    assert response.status_code == 200
    data = response.json()
    assert data["quotes"]["total"] == 1
    assert data["clients"]["total"] == 1
    assert len(data["monthly_revenue"]) == 12
    assert data["threshold_status"]["status"] == "assujetti"


def test_dashboard_metrics(session: Session, organization, billed):
    metrics = reporting.dashboard_metrics(session, organization, today=date(2026, 4, 20))

    assert metrics.revenue.this_month == Decimal("500.00")
    assert metrics.revenue.last_month == Decimal("0.00")
    assert metrics.revenue.this_year == Decimal("500.00")
    assert metrics.invoices.total == 1
    assert metrics.invoices.unpaid == 1
    assert metrics.invoices.overdue == 1
    assert metrics.invoices.total_due == Decimal("700.00")
    assert metrics.monthly_revenue[-1].month == "2026-04"
    assert metrics.monthly_revenue[-1].total == Decimal("500.00")


def test_franchise_threshold(organization):
    organization.tax_status = TaxStatus.FRANCHISE
    assert reporting.threshold_status(organization, Decimal("20000")).status == "ok"
    assert reporting.threshold_status(organization, Decimal("38000")).status == "warning"
    assert reporting.threshold_status(organization, Decimal("41251")).status == "exceeded"


def test_treasury(session: Session, organization, billed):
    treasury = reporting.treasury(session, organization.id, today=date(2026, 4, 20))

    assert treasury.received_this_month == Decimal("500.00")
    assert treasury.pending == Decimal("700.00")
    assert treasury.overdue == Decimal("700.00")
    assert treasury.top_clients[0].client_name == "Boulangerie Martin"
    assert treasury.oldest_unpaid[0].days_overdue == 20


def test_treasury_endpoint(authenticated_client):
    client, _ = authenticated_client

    response = client.get("/api/treasury")

    assert response.status_code == 200
    assert Decimal(response.json()["pending"]) == Decimal("0")


def test_calendar(authenticated_client, billed):
    client, _ = authenticated_client

    march = client.get("/api/calendar", params={"month": "2026-03"}).json()
    april = client.get("/api/calendar", params={"month": "2026-04"}).json()

    assert march["month"] == "2026-03"
    assert [e["type"] for e in march["events"]] == ["invoice_due"]
    assert [e["type"] for e in april["events"]] == ["payment"]


def test_calendar_rejects_malformed_month(authenticated_client):
    client, _ = authenticated_client

    assert client.get("/api/calendar", params={"month": "2026-13"}).status_code == 400
    assert client.get("/api/calendar", params={"month": "mars"}).status_code == 400


def test_notifications(session: Session, organization, billed):
    items = reporting.notifications(session, organization.id, today=date(2026, 5, 15))

    assert len(items) == 1
    assert items[0].type == "invoice_overdue"
    assert items[0].urgency == "high"
    assert items[0].entity_id == billed["id"]


def test_notifications_endpoint(authenticated_client):
    client, _ = authenticated_client

    response = client.get("/api/notifications")

    assert response.status_code == 200
    assert response.json()["total"] == len(response.json()["notifications"])


def test_activity_feed(authenticated_client, billed):
    client, _ = authenticated_client

    response = client.get("/api/activity", params={"limit": 10})

    assert response.status_code == 200
    types = {item["type"] for item in response.json()}
    assert {"invoice", "payment", "client"} <= types


def test_audit_logs(authenticated_client, billed):
    client, _ = authenticated_client

    response = client.get("/api/audit-logs", params={"entity_type": "invoice", "entity_id": billed["id"]})

    assert response.status_code == 200
    data = response.json()
    actions = [log["action"] for log in data["logs"]]
    assert data["total"] == len(actions)
    assert "create" in actions
    assert "status_change" in actions
    assert "payment_received" in actions
