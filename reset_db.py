"""Drop and recreate every table, then seed the admin user with an organization and a client."""

import logging

import bcrypt
from sqlmodel import SQLModel, Session

import models  # noqa: F401  registers every table on SQLModel.metadata
from core.config import settings
from core.logging_config import configure_logging
from db.session import engine
from models.auth import Account
from models.client import Client
from models.enums import PipelineStage, TaxStatus
from models.user import User
from services.organizations import create_organization

logger = logging.getLogger(__name__)


def reset_db():
    if not settings.admin_password:
        raise SystemExit("ADMIN_PASSWORD must be set to seed the admin account")

    logger.info("Dropping all tables...")
    SQLModel.metadata.drop_all(engine)

    logger.info("Creating all tables...")
    SQLModel.metadata.create_all(engine)

    # Hash password using bcrypt directly (passlib incompatibility with bcrypt 5.0+)
    hashed_password = bcrypt.hashpw(
        settings.admin_password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')

    logger.info("Seeding admin user %s", settings.admin_email)
    with Session(engine) as session:
        user = User(
            email=settings.admin_email,
            username=settings.admin_username,
            name=settings.admin_name,
            password_hash=hashed_password,
        )
        session.add(user)
        session.flush()

        # Credential account used by the login front-end
        session.add(Account(
            user_id=user.id,
            account_id=user.id,
            provider_id="credential",
            password_hash=hashed_password
        ))

        organization = create_organization(
            session,
            user,
            name="Antigravity",
            legal_name="Antigravity EI",
            siren="123456789",
            siret="12345678900012",
            address_line1="10 Rue de la Paix",
            postal_code="75002",
            city="Paris",
            email=settings.admin_email,
            tax_status=TaxStatus.FRANCHISE,
        )

        session.add(Client(
            organization_id=organization.id,
            company_name="Client Test",
            contact_email="client@test.com",
            address_line1="20 Avenue de Lyon",
            postal_code="69003",
            city="Lyon",
            pipeline_stage=PipelineStage.ACTIVE,
        ))
        session.commit()

        logger.info("Database reset complete. User ID: %s, organization ID: %s", user.id, organization.id)


if __name__ == "__main__":
    configure_logging(settings.log_level)
    reset_db()
