"""Quote lifecycle: edition, status changes, duplication, sharing and conversion."""

import logging
import secrets
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlmodel import Session, select

from core.config import settings
from core.exceptions import BusinessRuleError
from models.base import utcnow
from models.enums import AuditAction, InvoiceType, QuoteStatus
from models.invoice import Invoice
from models.organization import Organization
from models.quote import Quote, QuoteLine
from schemas.quote import QuoteCreate, QuoteUpdate
from services.audit import log_action
from services.calculations import HUNDRED, apply_document_totals, apply_line_totals, effective_tva_rate
from services.invoicing import invoice_from_quote
from services.numbering import generate_quote_number
from services.workflow import INVOICE_TYPE_WORKFLOWS, assert_transition

logger = logging.getLogger(__name__)


def build_quote_lines(lines_in, organization: Organization) -> list[QuoteLine]:
    lines = []
    for index, line_in in enumerate(lines_in):
        line = QuoteLine(
            sort_order=line_in.sort_order if line_in.sort_order is not None else index,
            is_section=line_in.is_section,
            is_optional=line_in.is_optional,
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


def _snapshot(quote: Quote) -> dict:
    return {"quote_number": quote.quote_number, "status": quote.status, "total_ttc": quote.total_ttc}


def create_quote(db: Session, organization: Organization, data: QuoteCreate, user_id: str | None = None) -> Quote:
    issue_date = data.issue_date or date.today()
    validity_date = data.validity_date or issue_date + timedelta(days=organization.quote_validity_days)
    if validity_date < issue_date:
        raise BusinessRuleError("La date de validité doit suivre la date d'émission")

    quote = Quote(
        organization_id=organization.id,
        client_id=data.client_id,
        project_id=data.project_id,
        quote_number=generate_quote_number(db, organization.id, issue_date),
        reference=data.reference,
        status=QuoteStatus.DRAFT,
        issue_date=issue_date,
        validity_date=validity_date,
        discount_percent=data.discount_percent,
        deposit_percent=data.deposit_percent,
        introduction=data.introduction,
        terms=data.terms if data.terms is not None else organization.quote_terms,
        notes=data.notes,
        created_by=user_id,
    )
    quote.lines = build_quote_lines(data.lines, organization)
    apply_document_totals(quote)

    db.add(quote)
    db.flush()
    log_action(db, organization.id, AuditAction.CREATE, "quote", quote.id, user_id, new_values=_snapshot(quote))
    db.commit()
    db.refresh(quote)
    logger.info("Quote %s created", quote.quote_number)
    return quote


def update_quote(
    db: Session, quote: Quote, organization: Organization, data: QuoteUpdate, user_id: str | None = None
) -> Quote:
    if quote.status != QuoteStatus.DRAFT:
        raise BusinessRuleError("Seuls les devis en brouillon peuvent être modifiés")

    changes = data.model_dump(exclude_unset=True, exclude={"lines"})
    for key, value in changes.items():
        setattr(quote, key, value)
    if quote.validity_date < quote.issue_date:
        raise BusinessRuleError("La date de validité doit suivre la date d'émission")
    if data.lines is not None:
        quote.lines = build_quote_lines(data.lines, organization)

    apply_document_totals(quote)
    quote.updated_at = utcnow()
    db.add(quote)
    log_action(db, organization.id, AuditAction.UPDATE, "quote", quote.id, user_id, new_values=changes)
    db.commit()
    db.refresh(quote)
    return quote


def change_quote_status(
    db: Session, quote: Quote, target: QuoteStatus, user_id: str | None = None, commit: bool = True
) -> Quote:
    assert_transition("quote", quote.status, target)
    old_status = quote.status
    quote.status = target
    if target == QuoteStatus.SENT:
        quote.sent_at = utcnow()
    elif target == QuoteStatus.ACCEPTED:
        quote.accepted_date = date.today()
    quote.updated_at = utcnow()
    db.add(quote)
    log_action(
        db, quote.organization_id, AuditAction.STATUS_CHANGE, "quote", quote.id, user_id,
        old_values={"status": old_status}, new_values={"status": target},
    )
    if commit:
        db.commit()
        db.refresh(quote)
    logger.info("Quote %s: %s -> %s", quote.quote_number, old_status.value, target.value)
    return quote


def duplicate_quote(db: Session, quote: Quote, organization: Organization, user_id: str | None = None) -> Quote:
    issue_date = date.today()
    copy = Quote(
        organization_id=organization.id,
        client_id=quote.client_id,
        project_id=quote.project_id,
        quote_number=generate_quote_number(db, organization.id, issue_date),
        reference=f"{quote.reference} (copie)" if quote.reference else "(copie)",
        status=QuoteStatus.DRAFT,
        issue_date=issue_date,
        validity_date=issue_date + timedelta(days=organization.quote_validity_days),
        discount_percent=quote.discount_percent,
        deposit_percent=quote.deposit_percent,
        introduction=quote.introduction,
        terms=quote.terms,
        notes=quote.notes,
        duplicated_from=quote.id,
        created_by=user_id,
    )
    copy.lines = [
        QuoteLine(
            sort_order=line.sort_order,
            is_section=line.is_section,
            is_optional=line.is_optional,
            description=line.description,
            details=line.details,
            quantity=line.quantity,
            unit=line.unit,
            unit_price_ht=line.unit_price_ht,
            tva_rate=line.tva_rate,
            total_ht=line.total_ht,
            total_tva=line.total_tva,
            total_ttc=line.total_ttc,
        )
        for line in quote.lines
    ]
    apply_document_totals(copy)

    db.add(copy)
    db.flush()
    log_action(db, organization.id, AuditAction.DUPLICATE, "quote", quote.id, user_id,
               new_values={"new_quote_id": copy.id, "quote_number": copy.quote_number})
    db.commit()
    db.refresh(copy)
    logger.info("Quote %s duplicated as %s", quote.quote_number, copy.quote_number)
    return copy


def convert_quote_to_invoice(
    db: Session, quote: Quote, organization: Organization, user_id: str | None = None
) -> Invoice:
    """
    Invoice an accepted quote.

    With a deposit percentage the quote yields a deposit invoice for that
    share and becomes partially invoiced; otherwise a standard invoice for the
    full amount and the quote is fully invoiced. Optional lines are dropped.
    """
    if quote.status != QuoteStatus.ACCEPTED:
        raise BusinessRuleError("Seuls les devis acceptés peuvent être convertis en facture")

    has_deposit = bool(quote.deposit_percent and quote.deposit_percent > 0)
    invoice_type = InvoiceType.DEPOSIT if has_deposit else InvoiceType.STANDARD
    factor = quote.deposit_percent / HUNDRED if has_deposit else Decimal("1")

    invoice = invoice_from_quote(db, quote, organization, invoice_type, factor, user_id=user_id)
    change_quote_status(
        db, quote, INVOICE_TYPE_WORKFLOWS[invoice_type]["updates_quote_status"], user_id, commit=False
    )
    log_action(
        db, organization.id, AuditAction.CONVERT, "quote", quote.id, user_id,
        new_values={
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "invoice_type": invoice_type,
            "quote_status": quote.status,
        },
    )
    db.commit()
    db.refresh(invoice)
    logger.info("Quote %s converted into %s", quote.quote_number, invoice.invoice_number)
    return invoice


def delete_quote(db: Session, quote: Quote, user_id: str | None = None) -> None:
    if quote.status != QuoteStatus.DRAFT:
        raise BusinessRuleError("Seuls les devis en brouillon peuvent être supprimés")
    log_action(db, quote.organization_id, AuditAction.DELETE, "quote", quote.id, user_id,
               old_values=_snapshot(quote))
    db.delete(quote)
    db.commit()
    logger.info("Quote %s deleted", quote.quote_number)


def _aware(value: datetime | None) -> datetime | None:
    # Naive datetimes coming back from the DB are UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def share_link_expired(quote: Quote) -> bool:
    expires_at = _aware(quote.share_token_expires_at)
    return expires_at is not None and expires_at < datetime.now(timezone.utc)


def create_share_link(db: Session, quote: Quote, user_id: str | None = None) -> Quote:
    """Give the quote a public token and send it if it was still a draft (or expired)."""
    if quote.status in (QuoteStatus.DRAFT, QuoteStatus.EXPIRED):
        change_quote_status(db, quote, QuoteStatus.SENT, user_id, commit=False)
    elif quote.status == QuoteStatus.REJECTED:
        raise BusinessRuleError("Un devis refusé ne peut pas être partagé")

    if not quote.share_token or share_link_expired(quote):
        quote.share_token = secrets.token_urlsafe(32)
    quote.share_token_expires_at = utcnow() + timedelta(days=settings.share_link_days)
    quote.updated_at = utcnow()
    db.add(quote)
    log_action(db, quote.organization_id, AuditAction.EMAIL_SENT, "quote", quote.id, user_id,
               new_values={"share_token_expires_at": quote.share_token_expires_at})
    db.commit()
    db.refresh(quote)
    return quote


def get_shared_quote(db: Session, token: str) -> Quote | None:
    return db.exec(select(Quote).where(Quote.share_token == token)).first()


def mark_viewed(db: Session, quote: Quote) -> Quote:
    """First opening of a sent quote through its share link."""
    if quote.status == QuoteStatus.SENT:
        change_quote_status(db, quote, QuoteStatus.VIEWED)
    return quote


def sign_quote(
    db: Session, quote: Quote, signer_name: str, signature_data: str, signer_ip: str | None = None
) -> Quote:
    """Record an electronic signature; signing accepts the quote."""
    if quote.signed_at:
        raise BusinessRuleError("Ce devis a déjà été signé")
    if quote.validity_date < date.today():
        raise BusinessRuleError("Ce devis n'est plus valable")

    change_quote_status(db, quote, QuoteStatus.ACCEPTED, commit=False)
    quote.signed_at = utcnow()
    quote.signer_name = signer_name
    quote.signature_data = signature_data
    quote.signer_ip = signer_ip
    db.add(quote)
    db.commit()
    db.refresh(quote)
    logger.info("Quote %s signed by %s", quote.quote_number, signer_name)
    return quote


def expire_quotes(db: Session, organization_id: str, today: date | None = None) -> list[Quote]:
    """Sent or viewed quotes past their validity date become expired."""
    today = today or date.today()
    stale = db.exec(
        select(Quote).where(
            Quote.organization_id == organization_id,
            Quote.status.in_([QuoteStatus.SENT, QuoteStatus.VIEWED]),
            Quote.validity_date < today,
        )
    ).all()
    for quote in stale:
        change_quote_status(db, quote, QuoteStatus.EXPIRED, commit=False)
    db.commit()
    return list(stale)
