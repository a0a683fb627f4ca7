"""Shared fixtures: in-memory database, API client and an authenticated user."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

import models  # noqa: F401
from db.session import get_session
from main import app
from models.auth import Session as AuthSession
from models.client import Client
from models.enums import TaxStatus
from models.user import User
from services.organizations import create_organization


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    app.dependency_overrides[get_session] = lambda: session
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def user(session: Session) -> User:
    user = User(
        id="test-user-id",
        email="test@example.com",
        name="Test User",
        email_verified=False
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def organization(session: Session, user: User):
    organization = create_organization(
        session,
        user,
        name="Atelier Dupont",
        siret="12345678900012",
        address_line1="1 rue de Rivoli",
        postal_code="75001",
        city="Paris",
        tax_status=TaxStatus.ASSUJETTI,
        iban="FR7630006000011234567890189",
    )
    session.commit()
    session.refresh(organization)
    return organization


@pytest.fixture
def authenticated_client(client: TestClient, session: Session, user: User, organization):
    """API client authenticated as ``user``, whose primary organization is ``organization``."""
    auth_session = AuthSession(
        id="test-session-id",
        user_id=user.id,
        token="test-token",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=24),
        ip_address="127.0.0.1",
        user_agent="test"
    )
    session.add(auth_session)
    session.commit()

    client.headers = {"Authorization": "Bearer test-token"}
    return client, user


@pytest.fixture
def customer(session: Session, organization) -> Client:
    customer = Client(
        organization_id=organization.id,
        company_name="Boulangerie Martin",
        contact_first_name="Paul",
        contact_last_name="Martin",
        contact_email="paul@martin.fr",
        city="Lyon",
        tva_rate=Decimal("20.00"),
    )
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


def quote_payload(client_id: str, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "lines": [
            {"description": "Développement", "quantity": "2", "unit": "jour", "unit_price_ht": "500", "tva_rate": "20"},
            {"description": "Hébergement", "quantity": "1", "unit": "forfait", "unit_price_ht": "100", "tva_rate": "20"},
        ],
    }
    payload.update(overrides)
    return payload


def invoice_payload(client_id: str, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "lines": [
            {"description": "Prestation", "quantity": "1", "unit": "forfait", "unit_price_ht": "1000", "tva_rate": "20"},
        ],
    }
    payload.update(overrides)
    return payload
