"""Quarterly TVA declarations computed from paid invoices."""

import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from sqlmodel import Session, select

from core.exceptions import BusinessRuleError
from models.base import utcnow
from models.declaration import TvaDeclaration
from models.enums import DeclarationStatus, InvoiceStatus, InvoiceType
from models.invoice import Invoice
from services.calculations import money

logger = logging.getLogger(__name__)

# quarter: (first month, last month, payment month, payment day)
QUARTERS = {
    1: (1, 3, 4, 30),
    2: (4, 6, 7, 31),
    3: (7, 9, 10, 31),
    4: (10, 12, 1, 31),
}


class QuarterDates(NamedTuple):
    start: date
    end: date
    payment_due: date


class PeriodTva(NamedTuple):
    ca_ht: Decimal
    tva_collected: Decimal


def quarter_dates(year: int, quarter: int) -> QuarterDates:
    if quarter not in QUARTERS:
        raise ValueError(f"Invalid quarter: {quarter}")
    start_month, end_month, pay_month, pay_day = QUARTERS[quarter]
    last_day = calendar.monthrange(year, end_month)[1]
    # Q4 is paid in January of the following year
    pay_year = year + 1 if quarter == 4 else year
    return QuarterDates(
        start=date(year, start_month, 1),
        end=date(year, end_month, last_day),
        payment_due=date(pay_year, pay_month, pay_day),
    )


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


def compute_period_tva(db: Session, organization_id: str, start: date, end: date) -> PeriodTva:
    """CA HT (net of discount) and TVA collected on invoices paid within [start, end]."""
    invoices = db.exec(
        select(Invoice).where(
            Invoice.organization_id == organization_id,
            Invoice.status.in_([InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID]),
            Invoice.paid_date >= start,
            Invoice.paid_date <= end,
            Invoice.type != InvoiceType.CREDIT_NOTE,
        )
    ).all()
    ca_ht = sum((inv.net_ht for inv in invoices), Decimal("0"))
    tva = sum((inv.total_tva for inv in invoices), Decimal("0"))
    return PeriodTva(money(ca_ht), money(tva))


def _apply_period(db: Session, declaration: TvaDeclaration) -> TvaDeclaration:
    period = compute_period_tva(db, declaration.organization_id, declaration.period_start, declaration.period_end)
    declaration.ca_ht = period.ca_ht
    declaration.tva_collected = period.tva_collected
    declaration.tva_to_pay = period.tva_collected - (declaration.tva_deductible or Decimal("0"))
    return declaration


def get_or_create_declaration(db: Session, organization_id: str, year: int, quarter: int) -> TvaDeclaration:
    existing = db.exec(
        select(TvaDeclaration).where(
            TvaDeclaration.organization_id == organization_id,
            TvaDeclaration.year == year,
            TvaDeclaration.quarter == quarter,
        )
    ).first()
    if existing:
        return existing

    dates = quarter_dates(year, quarter)
    declaration = TvaDeclaration(
        organization_id=organization_id,
        year=year,
        quarter=quarter,
        period_start=dates.start,
        period_end=dates.end,
        payment_due_date=dates.payment_due,
    )
    _apply_period(db, declaration)
    db.add(declaration)
    db.commit()
    db.refresh(declaration)
    logger.info("TVA declaration %d-Q%d created for organization %s", year, quarter, organization_id)
    return declaration


def list_declarations(db: Session, organization_id: str, today: date | None = None) -> list[TvaDeclaration]:
    """
    All declarations of the organization.

    Missing quarters of the current year up to the current quarter, and all
    four quarters of the previous year, are created first.
    """
    today = today or date.today()
    for quarter in range(1, quarter_of(today) + 1):
        get_or_create_declaration(db, organization_id, today.year, quarter)
    for quarter in range(1, 5):
        get_or_create_declaration(db, organization_id, today.year - 1, quarter)

    return list(db.exec(
        select(TvaDeclaration)
        .where(TvaDeclaration.organization_id == organization_id)
        .order_by(TvaDeclaration.year, TvaDeclaration.quarter)
    ).all())


def _require_pending(declaration: TvaDeclaration) -> None:
    if declaration.status != DeclarationStatus.PENDING:
        raise BusinessRuleError("Seule une déclaration en attente peut être modifiée")


def refresh_declaration(db: Session, declaration: TvaDeclaration) -> TvaDeclaration:
    _require_pending(declaration)
    _apply_period(db, declaration)
    declaration.updated_at = utcnow()
    db.add(declaration)
    db.commit()
    db.refresh(declaration)
    logger.info("TVA declaration %s refreshed", declaration.id)
    return declaration


def update_declaration(
    db: Session, declaration: TvaDeclaration, tva_deductible=None, notes: str | None = None
) -> TvaDeclaration:
    _require_pending(declaration)
    if tva_deductible is not None:
        declaration.tva_deductible = money(tva_deductible)
        declaration.tva_to_pay = declaration.tva_collected - declaration.tva_deductible
    if notes is not None:
        declaration.notes = notes
    declaration.updated_at = utcnow()
    db.add(declaration)
    db.commit()
    db.refresh(declaration)
    return declaration


def mark_declared(db: Session, declaration: TvaDeclaration, notes: str | None = None) -> TvaDeclaration:
    _require_pending(declaration)
    declaration.status = DeclarationStatus.DECLARED
    declaration.declared_at = utcnow()
    if notes is not None:
        declaration.notes = notes
    declaration.updated_at = utcnow()
    db.add(declaration)
    db.commit()
    db.refresh(declaration)
    logger.info("TVA declaration %s declared", declaration.id)
    return declaration


def mark_paid(db: Session, declaration: TvaDeclaration) -> TvaDeclaration:
    if declaration.status != DeclarationStatus.DECLARED:
        raise BusinessRuleError("La déclaration doit être déclarée avant d'être payée")
    declaration.status = DeclarationStatus.PAID
    declaration.paid_at = utcnow()
    declaration.updated_at = utcnow()
    db.add(declaration)
    db.commit()
    db.refresh(declaration)
    logger.info("TVA declaration %s paid", declaration.id)
    return declaration
