"""API routes for payments and refunds."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session, select

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.enums import PaymentMethod, PaymentStatus
from models.invoice import Invoice
from models.organization import Organization
from models.payment import Payment
from models.user import User
from routers.common import get_owned_or_404, paginate
from schemas.payment import (
    PaymentListItem,
    PaymentListResponse,
    PaymentRecord,
    PaymentResponse,
    PaymentUpdate,
)
from services import payments as payment_service

router = APIRouter(tags=["payments"])


def _list_item(payment: Payment) -> PaymentListItem:
    item = PaymentListItem.model_validate(payment)
    item.invoice_number = payment.invoice.invoice_number
    item.client_name = payment.invoice.client.display_name if payment.invoice.client else None
    return item


@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    invoice_id: str | None = None,
    method: PaymentMethod | None = None,
    status: PaymentStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    query = select(Payment).where(Payment.organization_id == organization.id)
    if invoice_id:
        query = query.where(Payment.invoice_id == invoice_id)
    if method:
        query = query.where(Payment.method == method)
    if status:
        query = query.where(Payment.status == status)
    if date_from:
        query = query.where(Payment.payment_date >= date_from)
    if date_to:
        query = query.where(Payment.payment_date <= date_to)

    payments, total = paginate(db, query.order_by(Payment.payment_date.desc(), Payment.created_at.desc()), page, limit)
    return PaymentListResponse(payments=[_list_item(p) for p in payments], total=total)


@router.post("/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentRecord,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, data.invoice_id, organization.id, "Invoice")
    return payment_service.record_payment(
        db, invoice, data.amount, data.method, data.payment_date, data.reference, data.notes, current_user.id
    )


@router.get("/payments/{payment_id}", response_model=PaymentListItem)
async def get_payment(
    payment_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return _list_item(get_owned_or_404(db, Payment, payment_id, organization.id, "Payment"))


@router.put("/payments/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: str,
    data: PaymentUpdate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    payment = get_owned_or_404(db, Payment, payment_id, organization.id, "Payment")
    return payment_service.update_payment(db, payment, data.model_dump(exclude_unset=True), current_user.id)


@router.post("/payments/{payment_id}/refund", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def refund_payment(
    payment_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Refund a received payment; returns the negative refund entry."""
    payment = get_owned_or_404(db, Payment, payment_id, organization.id, "Payment")
    return payment_service.refund_payment(db, payment, current_user.id)
