"""API routes for invoices: edition, lifecycle, payments and cancellation."""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session, select, or_

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.client import Client
from models.contract import Contract
from models.enums import InvoiceStatus, InvoiceType
from models.invoice import Invoice
from models.organization import Organization
from models.project import Project
from models.quote import Quote
from models.user import User
from routers.common import get_owned_or_404, paginate
from schemas.invoice import (
    CancelInvoiceResponse,
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceUpdate,
    OverdueSweepResponse,
)
from schemas.payment import PaymentCreate, PaymentResponse
from services import invoicing
from services.payments import record_payment
from services.workflow import PAYABLE_INVOICE_STATUSES

router = APIRouter(tags=["invoices"])


@router.get("/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Invoice number or reference"),
    status: InvoiceStatus | None = None,
    type: InvoiceType | None = None,
    client_id: str | None = None,
    unpaid: bool = Query(False, description="Only invoices still awaiting payment"),
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    query = select(Invoice).where(Invoice.organization_id == organization.id)
    if status:
        query = query.where(Invoice.status == status)
    if type:
        query = query.where(Invoice.type == type)
    if client_id:
        query = query.where(Invoice.client_id == client_id)
    if unpaid:
        query = query.where(Invoice.status.in_(PAYABLE_INVOICE_STATUSES))
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Invoice.invoice_number.ilike(pattern), Invoice.reference.ilike(pattern)))

    invoices, total = paginate(db, query.order_by(Invoice.created_at.desc()), page, limit)
    return InvoiceListResponse(invoices=invoices, total=total)


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: InvoiceCreate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    client = get_owned_or_404(db, Client, data.client_id, organization.id, "Client")
    if data.project_id:
        get_owned_or_404(db, Project, data.project_id, organization.id, "Project")
    if data.quote_id:
        get_owned_or_404(db, Quote, data.quote_id, organization.id, "Quote")
    if data.contract_id:
        get_owned_or_404(db, Contract, data.contract_id, organization.id, "Contract")
    if data.parent_invoice_id:
        get_owned_or_404(db, Invoice, data.parent_invoice_id, organization.id, "Invoice")
    return invoicing.create_invoice(db, organization, client, data, current_user.id)


@router.post("/invoices/overdue-sweep", response_model=OverdueSweepResponse)
async def sweep_overdue(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Flag every unpaid invoice past its due date as overdue."""
    updated = invoicing.mark_overdue_invoices(db, organization.id)
    return OverdueSweepResponse(updated=len(updated))


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")


@router.put("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: str,
    data: InvoiceUpdate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    if data.client_id:
        get_owned_or_404(db, Client, data.client_id, organization.id, "Client")
    return invoicing.update_invoice(db, invoice, organization, data, current_user.id)


@router.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    invoicing.delete_invoice(db, invoice, current_user.id)


@router.post("/invoices/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    return invoicing.change_invoice_status(db, invoice, InvoiceStatus.SENT, current_user.id)


@router.post("/invoices/{invoice_id}/view", response_model=InvoiceResponse)
async def mark_invoice_viewed(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    return invoicing.change_invoice_status(db, invoice, InvoiceStatus.VIEWED, current_user.id)


@router.post("/invoices/{invoice_id}/overdue", response_model=InvoiceResponse)
async def mark_invoice_overdue(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    return invoicing.change_invoice_status(db, invoice, InvoiceStatus.OVERDUE, current_user.id)


@router.post("/invoices/{invoice_id}/pay", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def pay_invoice(
    invoice_id: str,
    data: PaymentCreate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Record a payment received for the invoice."""
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    return record_payment(
        db, invoice, data.amount, data.method, data.payment_date, data.reference, data.notes, current_user.id
    )


@router.post("/invoices/{invoice_id}/cancel", response_model=CancelInvoiceResponse)
async def cancel_invoice(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Cancel an invoice, issuing a credit note when money was already received."""
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    invoice, credit_note = invoicing.cancel_invoice(db, invoice, current_user.id)
    return CancelInvoiceResponse(invoice=invoice, credit_note=credit_note)


@router.post("/invoices/{invoice_id}/final", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_final_invoice(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Final invoice for the balance of the quote behind a paid deposit."""
    deposit = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    return invoicing.create_final_invoice(db, deposit, organization, current_user.id)


@router.post("/invoices/{invoice_id}/remind", response_model=InvoiceResponse)
async def remind_invoice(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    return invoicing.remind_invoice(db, invoice, current_user.id)
