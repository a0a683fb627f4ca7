"""API routes for PDF generation."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.enums import AuditAction
from models.invoice import Invoice
from models.organization import Organization
from models.quote import Quote
from models.user import User
from routers.common import get_owned_or_404
from services.audit import log_action
from services.pdf_generator import generate_invoice_pdf, generate_quote_pdf

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pdf"])


def _pdf_response(pdf_bytes: bytes, filename: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"inline; filename={filename}"
        }
    )


@router.get("/quotes/{quote_id}/pdf")
async def get_quote_pdf(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    quote = get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")

    try:
        pdf_bytes = generate_quote_pdf(quote, organization)
    except Exception as e:
        logger.exception("PDF generation failed for quote %s", quote.id)
        raise HTTPException(status_code=500, detail=f"Failed to generate PDF: {str(e)}")

    log_action(db, organization.id, AuditAction.PDF_GENERATED, "quote", quote.id, user_id=current_user.id)
    db.commit()
    return _pdf_response(pdf_bytes, f"Devis_{quote.quote_number}.pdf")


@router.get("/invoices/{invoice_id}/pdf")
async def get_invoice_pdf(
    invoice_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, organization.id, "Invoice")
    parent_number = None
    if invoice.parent_invoice_id:
        parent = db.get(Invoice, invoice.parent_invoice_id)
        parent_number = parent.invoice_number if parent else None

    try:
        pdf_bytes = generate_invoice_pdf(invoice, organization, parent_number)
    except Exception as e:
        logger.exception("PDF generation failed for invoice %s", invoice.id)
        raise HTTPException(status_code=500, detail=f"Failed to generate PDF: {str(e)}")

    log_action(db, organization.id, AuditAction.PDF_GENERATED, "invoice", invoice.id, user_id=current_user.id)
    db.commit()
    return _pdf_response(pdf_bytes, f"Facture_{invoice.invoice_number}.pdf")
