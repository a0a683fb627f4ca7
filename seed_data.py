"""
Database Seeder Script

Generates fake data for an organization using Faker: clients, quotes moved
along their workflow, invoices converted from accepted quotes and payments.

Usage:
    python seed_data.py --organization-id <organization_id> [--clients 30] [--quotes 100]
"""

import argparse
import logging
import random
from datetime import date, timedelta
from decimal import Decimal

from faker import Faker
from sqlmodel import Session

from core.config import settings
from core.logging_config import configure_logging
from db.session import engine
from models.client import Client
from models.enums import InvoiceStatus, PaymentMethod, PipelineStage, QuoteStatus
from models.organization import Organization
from schemas.quote import QuoteCreate, QuoteLineCreate
from services import invoicing, quotes as quote_service
from services.payments import record_payment

logger = logging.getLogger(__name__)

# Initialize Faker with French locale
fake = Faker('fr_FR')

SERVICE_DESCRIPTIONS = [
    "Développement web - site vitrine",
    "Développement application mobile",
    "Maintenance mensuelle",
    "Hébergement annuel",
    "Création logo et charte graphique",
    "Refonte site e-commerce",
    "Intégration API",
    "Formation utilisateurs",
    "Audit SEO",
    "Rédaction contenu",
    "Design UX/UI",
    "Migration de données",
    "Support technique prioritaire",
    "Consulting stratégie digitale",
]

# Final quote status -> path through the workflow from draft
QUOTE_PATHS = {
    QuoteStatus.DRAFT: [],
    QuoteStatus.SENT: [QuoteStatus.SENT],
    QuoteStatus.REJECTED: [QuoteStatus.SENT, QuoteStatus.REJECTED],
    QuoteStatus.ACCEPTED: [QuoteStatus.SENT, QuoteStatus.VIEWED, QuoteStatus.ACCEPTED],
}


def create_clients(session: Session, organization: Organization, count: int = 30) -> list[Client]:
    """Create fake clients."""
    clients = []
    for _ in range(count):
        client = Client(
            organization_id=organization.id,
            company_name=fake.company(),
            siret=fake.siret().replace(" ", "") if random.random() > 0.3 else None,
            contact_first_name=fake.first_name(),
            contact_last_name=fake.last_name(),
            contact_email=fake.email(),
            contact_phone=fake.phone_number()[:20] if random.random() > 0.2 else None,
            address_line1=fake.street_address(),
            postal_code=fake.postcode(),
            city=fake.city(),
            pipeline_stage=random.choice(list(PipelineStage)),
        )
        clients.append(client)
        session.add(client)

    session.commit()
    logger.info("Created %d clients", count)
    return clients


def _random_lines() -> list[QuoteLineCreate]:
    return [
        QuoteLineCreate(
            description=random.choice(SERVICE_DESCRIPTIONS),
            quantity=Decimal(random.randint(1, 10)),
            unit=random.choice(["jour", "heure", "forfait"]),
            unit_price_ht=Decimal(random.randint(50, 500) * 10),
        )
        for _ in range(random.randint(1, 5))
    ]


def create_quotes(session: Session, organization: Organization, clients: list[Client], count: int = 100):
    """Create quotes through the service layer and walk them through their workflow."""
    status_counts: dict[str, int] = {}
    for i in range(count):
        final_status = random.choice(list(QUOTE_PATHS))
        issue_date = fake.date_between(start_date='-1y', end_date='today')
        quote = quote_service.create_quote(
            session,
            organization,
            QuoteCreate(
                client_id=random.choice(clients).id,
                issue_date=issue_date,
                deposit_percent=Decimal("30") if random.random() > 0.8 else None,
                notes=fake.text(max_nb_chars=200) if random.random() > 0.7 else None,
                lines=_random_lines(),
            ),
        )
        for status in QUOTE_PATHS[final_status]:
            quote_service.change_quote_status(session, quote, status)

        if quote.status == QuoteStatus.ACCEPTED and random.random() > 0.3:
            _invoice_and_pay(session, organization, quote, issue_date)

        status_counts[quote.status.value] = status_counts.get(quote.status.value, 0) + 1
        if (i + 1) % 25 == 0:
            logger.info("Processed %d/%d quotes", i + 1, count)
    return status_counts


def _invoice_and_pay(session: Session, organization: Organization, quote, issue_date: date) -> None:
    invoice = quote_service.convert_quote_to_invoice(session, quote, organization)
    invoicing.change_invoice_status(session, invoice, InvoiceStatus.SENT)
    if random.random() > 0.4:
        paid_on = min(issue_date + timedelta(days=random.randint(1, 45)), date.today())
        record_payment(session, invoice, invoice.amount_due, random.choice(list(PaymentMethod)), paid_on)


def main():
    parser = argparse.ArgumentParser(description='Seed database with fake data')
    parser.add_argument('--organization-id', required=True, help='Organization to attach the data to')
    parser.add_argument('--clients', type=int, default=30, help='Number of clients to create (default: 30)')
    parser.add_argument('--quotes', type=int, default=100, help='Number of quotes to create (default: 100)')
    args = parser.parse_args()

    configure_logging(settings.log_level)
    with Session(engine) as session:
        organization = session.get(Organization, args.organization_id)
        if organization is None:
            raise SystemExit(f"Organization {args.organization_id} not found")

        clients = create_clients(session, organization, args.clients)
        status_counts = create_quotes(session, organization, clients, args.quotes)

    logger.info("Seeding complete: %d clients, quotes by status %s", len(clients), status_counts)


if __name__ == "__main__":
    main()
