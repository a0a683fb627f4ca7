"""Tests for client management API."""

from sqlmodel import Session, select

from models.audit import AuditLog
from models.client import Client
from models.enums import AuditAction
from models.organization import Organization


def test_create_client(authenticated_client, organization, session: Session):
    """Test creating a new client."""
    client, user = authenticated_client

    response = client.post("/api/clients", json={
        "company_name": "Acme Corp",
        "contact_first_name": "John",
        "contact_last_name": "Doe",
        "contact_email": "john@example.com",
        "siret": "12345678900012",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["company_name"] == "Acme Corp"
    assert data["display_name"] == "Acme Corp"
    assert data["organization_id"] == organization.id
    assert data["pipeline_stage"] == "prospect"
    assert data["is_active"] is True

    log = session.exec(select(AuditLog).where(AuditLog.entity_id == data["id"])).one()
    assert log.action == AuditAction.CREATE
    assert log.user_id == user.id


def test_create_client_rejects_bad_siret(authenticated_client):
    client, _ = authenticated_client

    response = client.post("/api/clients", json={"company_name": "Acme", "siret": "1234"})

    assert response.status_code == 422


def test_list_clients(authenticated_client, customer):
    """Test listing clients."""
    client, _ = authenticated_client

    response = client.get("/api/clients")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["clients"][0]["company_name"] == "Boulangerie Martin"


def test_search_clients(authenticated_client, customer, organization, session: Session):
    client, _ = authenticated_client
    session.add(Client(organization_id=organization.id, company_name="Garage Durand", contact_email="d@garage.fr"))
    session.commit()

    response = client.get("/api/clients", params={"search": "martin"})

    assert response.status_code == 200
    names = [c["company_name"] for c in response.json()["clients"]]
    assert names == ["Boulangerie Martin"]


def test_cannot_access_other_organizations_clients(authenticated_client, session: Session):
    """Clients of another organization are invisible."""
    client, _ = authenticated_client

    other_org = Organization(name="Concurrent")
    session.add(other_org)
    session.flush()
    foreign = Client(organization_id=other_org.id, company_name="Secret Client")
    session.add(foreign)
    session.commit()

    response = client.get("/api/clients")
    assert response.json()["total"] == 0

    response = client.get(f"/api/clients/{foreign.id}")
    assert response.status_code == 404
    assert response.json()["detail"] == "Client not found"


def test_update_client(authenticated_client, customer):
    client, _ = authenticated_client

    response = client.put(f"/api/clients/{customer.id}", json={"city": "Marseille", "pipeline_stage": "negotiation"})

    assert response.status_code == 200
    data = response.json()
    assert data["city"] == "Marseille"
    assert data["pipeline_stage"] == "negotiation"
    assert data["company_name"] == "Boulangerie Martin"


def test_delete_client_is_soft(authenticated_client, customer, session: Session):
    """Deleting a client deactivates it and hides it from the default list."""
    client, _ = authenticated_client

    response = client.delete(f"/api/clients/{customer.id}")
    assert response.status_code == 204

    session.refresh(customer)
    assert customer.is_active is False
    assert client.get("/api/clients").json()["total"] == 0
    assert client.get("/api/clients", params={"is_active": False}).json()["total"] == 1


def test_requires_authentication(client):
    response = client.get("/api/clients")
    assert response.status_code == 401


def test_put_null_on_required_client_field_is_refused(authenticated_client, customer):
    client, _ = authenticated_client

    assert client.put(f"/api/clients/{customer.id}", json={"company_name": None}).status_code == 422
    assert client.put(f"/api/clients/{customer.id}", json={"is_active": None}).status_code == 422

    response = client.put(f"/api/clients/{customer.id}", json={"notes": None})
    assert response.status_code == 200
    assert response.json()["company_name"] == "Boulangerie Martin"
    assert response.json()["notes"] is None
