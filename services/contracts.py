"""Recurring service contracts: renewal cycle and periodic invoicing."""

import calendar
import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlmodel import Session, select

from core.exceptions import BusinessRuleError
from models.base import utcnow
from models.client import Client
from models.contract import Contract
from models.enums import AuditAction, BillingFrequency, ContractStatus, InvoiceStatus, InvoiceType
from models.invoice import Invoice, InvoiceLine
from models.organization import Organization
from schemas.contract import ContractCreate
from services.audit import log_action
from services.calculations import ZERO, apply_document_totals, apply_line_totals, effective_tva_rate, money
from services.invoicing import default_due_date, refresh_amount_due
from services.numbering import generate_contract_number, generate_invoice_number
from services.workflow import assert_transition

logger = logging.getLogger(__name__)

# Months covered by one invoice
BILLING_PERIOD_MONTHS = {
    BillingFrequency.MONTHLY: 1,
    BillingFrequency.QUARTERLY: 3,
    BillingFrequency.SEMI_ANNUAL: 6,
    BillingFrequency.ANNUAL: 12,
}

BILLING_PERIOD_LABELS = {
    BillingFrequency.MONTHLY: "mensuelle",
    BillingFrequency.QUARTERLY: "trimestrielle",
    BillingFrequency.SEMI_ANNUAL: "semestrielle",
    BillingFrequency.ANNUAL: "annuelle",
}


def add_months(day: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def period_amount(annual_amount_ht, frequency: BillingFrequency) -> Decimal:
    periods_per_year = 12 // BILLING_PERIOD_MONTHS[frequency]
    return money(Decimal(annual_amount_ht) / periods_per_year)


def _snapshot(contract: Contract) -> dict:
    return {
        "contract_number": contract.contract_number,
        "status": contract.status,
        "annual_amount_ht": contract.annual_amount_ht,
    }


def create_contract(
    db: Session, organization: Organization, data: ContractCreate, user_id: str | None = None
) -> Contract:
    contract = Contract(
        organization_id=organization.id,
        contract_number=generate_contract_number(db, organization.id, data.start_date),
        status=ContractStatus.DRAFT,
        created_by=user_id,
        **data.model_dump(exclude={"next_billing_date"}),
    )
    contract.next_billing_date = data.next_billing_date or data.start_date
    db.add(contract)
    db.flush()
    log_action(db, organization.id, AuditAction.CREATE, "contract", contract.id, user_id,
               new_values=_snapshot(contract))
    db.commit()
    db.refresh(contract)
    logger.info("Contract %s created", contract.contract_number)
    return contract


def update_contract(db: Session, contract: Contract, changes: dict, user_id: str | None = None) -> Contract:
    if contract.status != ContractStatus.DRAFT:
        raise BusinessRuleError("Seuls les contrats en brouillon peuvent être modifiés")
    for key, value in changes.items():
        setattr(contract, key, value)
    if contract.end_date <= contract.start_date:
        raise BusinessRuleError("La date de fin doit être postérieure à la date de début")
    contract.updated_at = utcnow()
    db.add(contract)
    log_action(db, contract.organization_id, AuditAction.UPDATE, "contract", contract.id, user_id,
               new_values=changes)
    db.commit()
    db.refresh(contract)
    return contract


def change_contract_status(
    db: Session, contract: Contract, target: ContractStatus, user_id: str | None = None, commit: bool = True
) -> Contract:
    assert_transition("contract", contract.status, target)
    old_status = contract.status
    contract.status = target
    contract.updated_at = utcnow()
    db.add(contract)
    log_action(
        db, contract.organization_id, AuditAction.STATUS_CHANGE, "contract", contract.id, user_id,
        old_values={"status": old_status}, new_values={"status": target},
    )
    if commit:
        db.commit()
        db.refresh(contract)
    logger.info("Contract %s: %s -> %s", contract.contract_number, old_status.value, target.value)
    return contract


def renew_contract(db: Session, contract: Contract, user_id: str | None = None) -> Contract:
    """New draft contract starting the day after ``contract`` ends, for the same duration."""
    if contract.status not in (ContractStatus.ACTIVE, ContractStatus.RENEWAL_PENDING):
        raise BusinessRuleError("Seuls les contrats actifs peuvent être renouvelés")

    start_date = contract.end_date + timedelta(days=1)
    end_date = start_date + (contract.end_date - contract.start_date)
    renewed = Contract(
        organization_id=contract.organization_id,
        client_id=contract.client_id,
        project_id=contract.project_id,
        contract_number=generate_contract_number(db, contract.organization_id, start_date),
        name=contract.name,
        description=contract.description,
        status=ContractStatus.DRAFT,
        start_date=start_date,
        end_date=end_date,
        auto_renew=contract.auto_renew,
        renewal_notice_days=contract.renewal_notice_days,
        renewed_from=contract.id,
        annual_amount_ht=contract.annual_amount_ht,
        billing_frequency=contract.billing_frequency,
        next_billing_date=start_date,
        terms=contract.terms,
        created_by=user_id,
    )
    db.add(renewed)
    db.flush()
    change_contract_status(db, contract, ContractStatus.RENEWED, user_id, commit=False)
    log_action(db, contract.organization_id, AuditAction.CREATE, "contract", renewed.id, user_id,
               new_values={**_snapshot(renewed), "renewed_from": contract.id})
    db.commit()
    db.refresh(renewed)
    logger.info("Contract %s renewed as %s", contract.contract_number, renewed.contract_number)
    return renewed


def generate_contract_invoice(
    db: Session, contract: Contract, organization: Organization, user_id: str | None = None
) -> Invoice:
    """Recurring invoice for the next billing period of an active contract."""
    if contract.status != ContractStatus.ACTIVE:
        raise BusinessRuleError("Seuls les contrats actifs peuvent générer des factures")

    today = date.today()
    frequency = contract.billing_frequency
    amount_ht = period_amount(contract.annual_amount_ht, frequency)
    client = db.get(Client, contract.client_id)

    invoice = Invoice(
        organization_id=organization.id,
        client_id=contract.client_id,
        project_id=contract.project_id,
        contract_id=contract.id,
        invoice_number=generate_invoice_number(db, organization.id, InvoiceType.RECURRING, today),
        reference=contract.contract_number,
        type=InvoiceType.RECURRING,
        status=InvoiceStatus.DRAFT,
        issue_date=today,
        due_date=default_due_date(organization, client, today),
        created_by=user_id,
    )
    line = InvoiceLine(
        sort_order=0,
        description=f"{contract.name} - Facturation {BILLING_PERIOD_LABELS[frequency]}",
        details=contract.description,
        quantity=Decimal("1"),
        unit="forfait",
        unit_price_ht=amount_ht,
        tva_rate=effective_tva_rate(organization.tax_status, organization.default_tva_rate),
    )
    apply_line_totals(line)
    invoice.lines = [line]
    apply_document_totals(invoice)
    refresh_amount_due(invoice)
    db.add(invoice)
    db.flush()

    billed_from = contract.next_billing_date or today
    contract.last_billed_date = today
    contract.next_billing_date = add_months(billed_from, BILLING_PERIOD_MONTHS[frequency])
    contract.updated_at = utcnow()
    db.add(contract)

    log_action(db, organization.id, AuditAction.CREATE, "invoice", invoice.id, user_id,
               new_values={"contract_id": contract.id, "type": InvoiceType.RECURRING,
                           "invoice_number": invoice.invoice_number})
    db.commit()
    db.refresh(invoice)
    logger.info("Recurring invoice %s generated from contract %s", invoice.invoice_number, contract.contract_number)
    return invoice


def review_renewals(db: Session, organization_id: str, today: date | None = None) -> dict[str, list[Contract]]:
    """
    Move auto-renewing contracts entering their notice window to
    renewal_pending, and contracts past their end without auto-renewal to
    expired.
    """
    today = today or date.today()
    contracts = db.exec(
        select(Contract).where(
            Contract.organization_id == organization_id,
            Contract.status.in_([ContractStatus.ACTIVE, ContractStatus.RENEWAL_PENDING]),
        )
    ).all()

    pending, expired = [], []
    for contract in contracts:
        if contract.end_date < today and not contract.auto_renew:
            change_contract_status(db, contract, ContractStatus.EXPIRED, commit=False)
            expired.append(contract)
        elif (
            contract.status == ContractStatus.ACTIVE
            and contract.auto_renew
            and contract.end_date - timedelta(days=contract.renewal_notice_days) <= today <= contract.end_date
        ):
            change_contract_status(db, contract, ContractStatus.RENEWAL_PENDING, commit=False)
            pending.append(contract)
    db.commit()
    return {"renewal_pending": pending, "expired": expired}


def monthly_recurring_revenue(db: Session, organization_id: str) -> Decimal:
    amounts = db.exec(
        select(Contract.annual_amount_ht).where(
            Contract.organization_id == organization_id,
            Contract.status == ContractStatus.ACTIVE,
        )
    ).all()
    return money(sum((Decimal(a) for a in amounts), ZERO) / 12)


def delete_contract(db: Session, contract: Contract, user_id: str | None = None) -> None:
    if contract.status != ContractStatus.DRAFT:
        raise BusinessRuleError("Seuls les contrats en brouillon peuvent être supprimés")
    log_action(db, contract.organization_id, AuditAction.DELETE, "contract", contract.id, user_id,
               old_values=_snapshot(contract))
    db.delete(contract)
    db.commit()
    logger.info("Contract %s deleted", contract.contract_number)
