"""
Invoice lifecycle.

Invoices are created directly, from an accepted quote (standard or deposit),
from a paid deposit (final invoice), from a contract (recurring) or by
cancellation of a paid invoice (credit note).
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlmodel import Session, select, func

from core.exceptions import BusinessRuleError
from models.base import utcnow
from models.client import Client
from models.enums import AuditAction, InvoiceStatus, InvoiceType
from models.invoice import Invoice, InvoiceLine
from models.organization import Organization
from models.quote import Quote
from schemas.invoice import InvoiceCreate, InvoiceUpdate
from services.audit import log_action
from services.calculations import (
    ZERO,
    apply_document_totals,
    apply_line_totals,
    effective_tva_rate,
    scale_quantity,
    to_decimal,
)
from services.numbering import generate_invoice_number
from services.workflow import (
    INVOICE_TYPE_LABELS,
    INVOICE_TYPE_WORKFLOWS,
    PAYABLE_INVOICE_STATUSES,
    assert_transition,
    can_transition,
    check_final_invoice_allowed,
)

logger = logging.getLogger(__name__)


def default_due_date(organization: Organization, client: Client | None, issue_date: date) -> date:
    terms = (client.payment_terms if client else None) or organization.default_payment_terms
    return issue_date + timedelta(days=terms)


def build_invoice_lines(lines_in, organization: Organization) -> list[InvoiceLine]:
    lines = []
    for index, line_in in enumerate(lines_in):
        line = InvoiceLine(
            sort_order=line_in.sort_order if line_in.sort_order is not None else index,
            is_section=line_in.is_section,
            description=line_in.description,
            details=line_in.details,
            quantity=line_in.quantity,
            unit=line_in.unit,
            unit_price_ht=line_in.unit_price_ht,
            tva_rate=effective_tva_rate(organization.tax_status, line_in.tva_rate),
        )
        apply_line_totals(line)
        lines.append(line)
    return lines


def copy_lines(source_lines, factor=Decimal("1")) -> list[InvoiceLine]:
    """Invoice lines copied from quote or invoice lines, quantities scaled by ``factor``."""
    lines = []
    for source in source_lines:
        if getattr(source, "is_optional", False):
            continue
        line = InvoiceLine(
            sort_order=source.sort_order,
            is_section=source.is_section,
            description=source.description,
            details=source.details,
            quantity=source.quantity if source.is_section else scale_quantity(source.quantity, factor),
            unit=source.unit,
            unit_price_ht=source.unit_price_ht,
            tva_rate=source.tva_rate,
        )
        apply_line_totals(line)
        lines.append(line)
    return lines


def remaining_lines(quote_lines, deposit_lines) -> list[InvoiceLine]:
    """
    Lines still to invoice once a deposit has been billed.

    Each quantity is the quote quantity minus the deposit quantity of the
    matching line, so deposit and final together never exceed the quote.
    Deposit lines mirror the non-optional quote lines in ``sort_order``.
    """
    billable = [source for source in quote_lines if not getattr(source, "is_optional", False)]
    if len(billable) != len(deposit_lines):
        raise BusinessRuleError("Les lignes de l'acompte ne correspondent plus à celles du devis")

    lines = copy_lines(billable)
    for line, billed in zip(lines, deposit_lines):
        if line.is_section:
            continue
        line.quantity = to_decimal(line.quantity) - to_decimal(billed.quantity)
        apply_line_totals(line)
    return lines


def refresh_amount_due(invoice: Invoice) -> None:
    invoice.amount_due = max(invoice.total_ttc - (invoice.amount_paid or ZERO), ZERO)


def _snapshot(invoice: Invoice) -> dict:
    return {
        "invoice_number": invoice.invoice_number,
        "type": invoice.type,
        "status": invoice.status,
        "total_ttc": invoice.total_ttc,
    }


def _check_type_requirements(data: InvoiceCreate) -> None:
    workflow = INVOICE_TYPE_WORKFLOWS[data.type]
    label = INVOICE_TYPE_LABELS[data.type]
    if workflow["requires_quote"] and not data.quote_id:
        raise BusinessRuleError(f"{label} : un devis d'origine est requis")
    if workflow["requires_parent"] and not data.parent_invoice_id:
        raise BusinessRuleError(f"{label} : une facture d'origine est requise")
    if workflow["requires_contract"] and not data.contract_id:
        raise BusinessRuleError(f"{label} : un contrat est requis")


def create_invoice(
    db: Session,
    organization: Organization,
    client: Client,
    data: InvoiceCreate,
    user_id: str | None = None,
) -> Invoice:
    _check_type_requirements(data)

    issue_date = data.issue_date or date.today()
    due_date = data.due_date or default_due_date(organization, client, issue_date)
    if due_date < issue_date:
        raise BusinessRuleError("La date d'échéance doit suivre la date d'émission")

    invoice = Invoice(
        organization_id=organization.id,
        client_id=client.id,
        project_id=data.project_id,
        quote_id=data.quote_id,
        contract_id=data.contract_id,
        parent_invoice_id=data.parent_invoice_id,
        invoice_number=generate_invoice_number(db, organization.id, data.type, issue_date),
        reference=data.reference,
        type=data.type,
        status=InvoiceStatus.DRAFT,
        issue_date=issue_date,
        due_date=due_date,
        discount_percent=data.discount_percent,
        introduction=data.introduction,
        footer_notes=data.footer_notes,
        notes=data.notes,
        created_by=user_id,
    )
    lines = build_invoice_lines(data.lines, organization)
    if data.type == InvoiceType.CREDIT_NOTE:
        for line in lines:
            line.quantity = -line.quantity
            apply_line_totals(line)
    invoice.lines = lines
    apply_document_totals(invoice)
    refresh_amount_due(invoice)

    db.add(invoice)
    db.flush()
    log_action(db, organization.id, AuditAction.CREATE, "invoice", invoice.id, user_id, new_values=_snapshot(invoice))
    db.commit()
    db.refresh(invoice)
    logger.info("Invoice %s created (%s)", invoice.invoice_number, invoice.type.value)
    return invoice


def update_invoice(
    db: Session,
    invoice: Invoice,
    organization: Organization,
    data: InvoiceUpdate,
    user_id: str | None = None,
) -> Invoice:
    if invoice.status != InvoiceStatus.DRAFT:
        raise BusinessRuleError("Seules les factures en brouillon peuvent être modifiées")

    changes = data.model_dump(exclude_unset=True, exclude={"lines"})
    for key, value in changes.items():
        setattr(invoice, key, value)
    if invoice.due_date < invoice.issue_date:
        raise BusinessRuleError("La date d'échéance doit suivre la date d'émission")
    if data.lines is not None:
        invoice.lines = build_invoice_lines(data.lines, organization)

    apply_document_totals(invoice)
    refresh_amount_due(invoice)
    invoice.updated_at = utcnow()
    db.add(invoice)
    log_action(db, organization.id, AuditAction.UPDATE, "invoice", invoice.id, user_id, new_values=changes)
    db.commit()
    db.refresh(invoice)
    return invoice


def change_invoice_status(
    db: Session, invoice: Invoice, target: InvoiceStatus, user_id: str | None = None, commit: bool = True
) -> Invoice:
    assert_transition("invoice", invoice.status, target)
    old_status = invoice.status
    invoice.status = target
    if target == InvoiceStatus.SENT:
        invoice.sent_at = utcnow()
    invoice.updated_at = utcnow()
    db.add(invoice)
    log_action(
        db, invoice.organization_id, AuditAction.STATUS_CHANGE, "invoice", invoice.id, user_id,
        old_values={"status": old_status}, new_values={"status": target},
    )
    if commit:
        db.commit()
        db.refresh(invoice)
    logger.info("Invoice %s: %s -> %s", invoice.invoice_number, old_status.value, target.value)
    return invoice


def invoice_from_quote(
    db: Session,
    quote: Quote,
    organization: Organization,
    invoice_type: InvoiceType,
    factor: Decimal = Decimal("1"),
    parent: Invoice | None = None,
    user_id: str | None = None,
) -> Invoice:
    """Draft invoice built from the non-optional lines of ``quote`` (not committed)."""
    issue_date = date.today()
    client = db.get(Client, quote.client_id)
    invoice = Invoice(
        organization_id=organization.id,
        client_id=quote.client_id,
        project_id=quote.project_id,
        quote_id=quote.id,
        parent_invoice_id=parent.id if parent else None,
        invoice_number=generate_invoice_number(db, organization.id, invoice_type, issue_date),
        reference=quote.reference,
        type=invoice_type,
        status=InvoiceStatus.DRAFT,
        issue_date=issue_date,
        due_date=default_due_date(organization, client, issue_date),
        discount_percent=quote.discount_percent,
        introduction=quote.introduction,
        created_by=user_id,
    )
    invoice.lines = copy_lines(quote.lines, factor)
    apply_document_totals(invoice)
    refresh_amount_due(invoice)
    db.add(invoice)
    db.flush()
    return invoice


def create_final_invoice(
    db: Session, deposit: Invoice, organization: Organization, user_id: str | None = None
) -> Invoice:
    """Final invoice (solde) for the part of the quote not covered by ``deposit``."""
    existing_finals = db.exec(
        select(func.count()).select_from(Invoice).where(
            Invoice.parent_invoice_id == deposit.id,
            Invoice.type == InvoiceType.FINAL,
            Invoice.status != InvoiceStatus.CANCELLED,
        )
    ).one()
    check_final_invoice_allowed(deposit, existing_finals)

    quote = db.get(Quote, deposit.quote_id)
    if not quote:
        raise BusinessRuleError("Impossible de trouver le devis d'origine")

    final = invoice_from_quote(db, quote, organization, InvoiceType.FINAL, parent=deposit, user_id=user_id)
    final.lines = remaining_lines(quote.lines, deposit.lines)
    apply_document_totals(final)
    refresh_amount_due(final)
    final.reference = f"{deposit.reference} (solde)" if deposit.reference else "Facture de solde"
    final.introduction = (
        f"Solde du devis {quote.quote_number}, après déduction de l'acompte {deposit.invoice_number}."
    )

    target = INVOICE_TYPE_WORKFLOWS[InvoiceType.FINAL]["updates_quote_status"]
    if can_transition("quote", quote.status, target):
        old_status = quote.status
        quote.status = target
        quote.updated_at = utcnow()
        db.add(quote)
        log_action(
            db, organization.id, AuditAction.STATUS_CHANGE, "quote", quote.id, user_id,
            old_values={"status": old_status}, new_values={"status": target},
        )

    log_action(
        db, organization.id, AuditAction.CREATE, "invoice", final.id, user_id,
        new_values={**_snapshot(final), "deposit_invoice_id": deposit.id, "deposit_amount": deposit.total_ttc},
    )
    db.commit()
    db.refresh(final)
    logger.info("Final invoice %s created from deposit %s", final.invoice_number, deposit.invoice_number)
    return final


def _issue_credit_note(db: Session, invoice: Invoice, user_id: str | None) -> Invoice:
    today = date.today()
    credit_note = Invoice(
        organization_id=invoice.organization_id,
        client_id=invoice.client_id,
        project_id=invoice.project_id,
        quote_id=invoice.quote_id,
        parent_invoice_id=invoice.id,
        invoice_number=generate_invoice_number(db, invoice.organization_id, InvoiceType.CREDIT_NOTE, today),
        reference=f"Avoir sur {invoice.invoice_number}",
        type=InvoiceType.CREDIT_NOTE,
        status=InvoiceStatus.PAID,
        issue_date=today,
        due_date=today,
        paid_date=today,
        discount_percent=invoice.discount_percent,
        created_by=user_id,
    )
    lines = copy_lines(invoice.lines)
    for line in lines:
        if not line.is_section:
            line.quantity = -line.quantity
            apply_line_totals(line)
    credit_note.lines = lines
    apply_document_totals(credit_note)
    credit_note.amount_paid = ZERO
    credit_note.amount_due = ZERO
    db.add(credit_note)
    db.flush()
    log_action(
        db, invoice.organization_id, AuditAction.CREATE, "invoice", credit_note.id, user_id,
        new_values={**_snapshot(credit_note), "parent_invoice_id": invoice.id},
    )
    logger.info("Credit note %s issued for invoice %s", credit_note.invoice_number, invoice.invoice_number)
    return credit_note


def cancel_invoice(db: Session, invoice: Invoice, user_id: str | None = None) -> tuple[Invoice, Invoice | None]:
    """
    Cancel an invoice.

    Invoices with no money received are simply cancelled. Any invoice that
    received a payment gets a credit note, whatever its current status
    (an overdue invoice may be partly paid); a fully paid one is then
    marked refunded instead of cancelled.
    """
    if invoice.type == InvoiceType.CREDIT_NOTE:
        raise BusinessRuleError("Un avoir ne peut pas être annulé")

    credit_note = None
    if invoice.status == InvoiceStatus.PAID:
        target = InvoiceStatus.REFUNDED
    else:
        target = InvoiceStatus.CANCELLED
    assert_transition("invoice", invoice.status, target)

    if (invoice.amount_paid or ZERO) > ZERO:
        credit_note = _issue_credit_note(db, invoice, user_id)

    change_invoice_status(db, invoice, target, user_id, commit=False)
    db.commit()
    db.refresh(invoice)
    if credit_note:
        db.refresh(credit_note)
    return invoice, credit_note


def remind_invoice(db: Session, invoice: Invoice, user_id: str | None = None) -> Invoice:
    if invoice.status not in PAYABLE_INVOICE_STATUSES:
        raise BusinessRuleError("Seules les factures envoyées et impayées peuvent faire l'objet d'une relance")
    invoice.reminder_count = (invoice.reminder_count or 0) + 1
    invoice.last_reminder_at = utcnow()
    invoice.updated_at = utcnow()
    db.add(invoice)
    log_action(
        db, invoice.organization_id, AuditAction.EMAIL_SENT, "invoice", invoice.id, user_id,
        new_values={"reminder_count": invoice.reminder_count},
    )
    db.commit()
    db.refresh(invoice)
    logger.info("Reminder #%d for invoice %s", invoice.reminder_count, invoice.invoice_number)
    return invoice


def mark_overdue_invoices(db: Session, organization_id: str, today: date | None = None) -> list[Invoice]:
    """Flag every unpaid invoice past its due date as overdue."""
    today = today or date.today()
    candidates = db.exec(
        select(Invoice).where(
            Invoice.organization_id == organization_id,
            Invoice.status.in_([InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PARTIALLY_PAID]),
            Invoice.due_date < today,
        )
    ).all()
    for invoice in candidates:
        change_invoice_status(db, invoice, InvoiceStatus.OVERDUE, commit=False)
    db.commit()
    if candidates:
        logger.info("%d invoices flagged overdue for organization %s", len(candidates), organization_id)
    return list(candidates)


def delete_invoice(db: Session, invoice: Invoice, user_id: str | None = None) -> None:
    if invoice.status != InvoiceStatus.DRAFT:
        raise BusinessRuleError("Seules les factures en brouillon peuvent être supprimées")
    log_action(db, invoice.organization_id, AuditAction.DELETE, "invoice", invoice.id, user_id,
               old_values=_snapshot(invoice))
    db.delete(invoice)
    db.commit()
    logger.info("Invoice %s deleted", invoice.invoice_number)
