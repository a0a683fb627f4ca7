"""Payments received against invoices, and their refunds."""

import logging
from datetime import date

from sqlmodel import Session

from core.exceptions import BusinessRuleError
from models.base import utcnow
from models.enums import AuditAction, InvoiceStatus, PaymentStatus
from models.invoice import Invoice
from models.payment import Payment
from services.audit import log_action
from services.calculations import ZERO, money
from services.workflow import PAYABLE_INVOICE_STATUSES

logger = logging.getLogger(__name__)


def received_total(invoice: Invoice):
    # Refunded payments and their negative counterparts both carry the refunded status
    return money(sum((p.amount for p in invoice.payments if p.status == PaymentStatus.RECEIVED), ZERO))


def apply_payment_totals(invoice: Invoice, last_payment_date: date | None = None) -> None:
    """Recompute paid/due amounts and the payment status of ``invoice``."""
    invoice.amount_paid = received_total(invoice)
    remaining = invoice.total_ttc - invoice.amount_paid
    invoice.amount_due = max(remaining, ZERO)
    invoice.updated_at = utcnow()

    # Closed invoices keep their status, only the amounts move
    if invoice.status in (InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED):
        return
    if invoice.amount_paid > 0 and remaining <= 0:
        invoice.status = InvoiceStatus.PAID
        invoice.paid_date = last_payment_date or invoice.paid_date or date.today()
    elif invoice.amount_paid > 0:
        invoice.status = InvoiceStatus.PARTIALLY_PAID
        invoice.paid_date = None
    elif invoice.status in (InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_PAID):
        invoice.status = InvoiceStatus.SENT
        invoice.paid_date = None


def record_payment(
    db: Session,
    invoice: Invoice,
    amount,
    method,
    payment_date: date | None = None,
    reference: str | None = None,
    notes: str | None = None,
    user_id: str | None = None,
) -> Payment:
    amount = money(amount)
    if amount <= 0:
        raise BusinessRuleError("Le montant du paiement doit être positif")
    if invoice.status not in PAYABLE_INVOICE_STATUSES:
        raise BusinessRuleError(
            f"Impossible d'enregistrer un paiement sur une facture au statut '{invoice.status.value}'"
        )

    payment_date = payment_date or date.today()
    payment = Payment(
        organization_id=invoice.organization_id,
        invoice_id=invoice.id,
        amount=amount,
        payment_date=payment_date,
        method=method,
        status=PaymentStatus.RECEIVED,
        reference=reference,
        notes=notes,
        created_by=user_id,
    )
    # Appending through the relationship adds the payment to the session
    invoice.payments.append(payment)
    old_status = invoice.status
    apply_payment_totals(invoice, payment_date)
    db.add(invoice)
    db.flush()

    log_action(
        db, invoice.organization_id, AuditAction.PAYMENT_RECEIVED, "invoice", invoice.id, user_id,
        old_values={"status": old_status},
        new_values={"payment_id": payment.id, "amount": amount, "method": method, "status": invoice.status},
    )
    db.commit()
    db.refresh(payment)
    logger.info("Payment of %s recorded on invoice %s (%s)", amount, invoice.invoice_number, invoice.status.value)
    return payment


def refund_payment(db: Session, payment: Payment, user_id: str | None = None) -> Payment:
    """
    Refund a received payment.

    A negative payment referencing the original is stored, the original is
    marked refunded and the invoice amounts and status are recomputed.
    """
    if payment.status == PaymentStatus.REFUNDED or payment.refund_of:
        raise BusinessRuleError("Ce paiement est déjà remboursé")
    if payment.status != PaymentStatus.RECEIVED:
        raise BusinessRuleError("Seul un paiement reçu peut être remboursé")

    refund = Payment(
        organization_id=payment.organization_id,
        invoice_id=payment.invoice_id,
        amount=-payment.amount,
        payment_date=date.today(),
        method=payment.method,
        status=PaymentStatus.REFUNDED,
        reference=payment.reference,
        notes=f"Remboursement du paiement {payment.id}",
        refund_of=payment.id,
        created_by=user_id,
    )
    payment.status = PaymentStatus.REFUNDED
    payment.updated_at = utcnow()
    db.add(payment)

    invoice = payment.invoice
    invoice.payments.append(refund)
    apply_payment_totals(invoice)
    db.add(invoice)
    db.flush()

    log_action(
        db, payment.organization_id, AuditAction.UPDATE, "payment", payment.id, user_id,
        old_values={"status": PaymentStatus.RECEIVED},
        new_values={"status": PaymentStatus.REFUNDED, "refund_id": refund.id, "amount": refund.amount},
    )
    db.commit()
    db.refresh(refund)
    logger.info("Payment %s refunded (invoice %s now %s)", payment.id, invoice.invoice_number, invoice.status.value)
    return refund


def update_payment(db: Session, payment: Payment, changes: dict, user_id: str | None = None) -> Payment:
    if payment.status == PaymentStatus.REFUNDED or payment.refund_of:
        raise BusinessRuleError("Un paiement remboursé ne peut plus être modifié")
    if changes.get("status") == PaymentStatus.REFUNDED:
        raise BusinessRuleError("Utiliser le remboursement pour rembourser un paiement")

    old_values = {key: getattr(payment, key) for key in changes}
    for key, value in changes.items():
        setattr(payment, key, value)
    payment.updated_at = utcnow()
    db.add(payment)

    if "status" in changes:
        apply_payment_totals(payment.invoice, payment.payment_date)
        db.add(payment.invoice)

    log_action(db, payment.organization_id, AuditAction.UPDATE, "payment", payment.id, user_id,
               old_values=old_values, new_values=changes)
    db.commit()
    db.refresh(payment)
    return payment
