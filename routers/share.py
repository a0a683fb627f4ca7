"""
Share and sign quotes - public endpoints for electronic signature.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlmodel import Session
from pydantic import BaseModel
from datetime import datetime

from db.session import get_session
from core.security import get_current_organization, get_current_user
from models.organization import Organization
from models.quote import Quote
from models.user import User
from routers.common import client_ip, get_owned_or_404
from schemas.quote import PublicQuoteResponse, ShareLinkResponse, SignatureRequest
from services import quotes as quote_service
from services.pdf_generator import generate_quote_pdf


router = APIRouter(tags=["share"])


class SignResponse(BaseModel):
    success: bool
    message: str
    signed_at: datetime


def _shared_quote_or_404(db: Session, token: str) -> Quote:
    quote = quote_service.get_shared_quote(db, token)
    if not quote:
        raise HTTPException(status_code=404, detail="Devis non trouvé ou lien invalide")
    return quote


# ============ Authenticated Endpoints ============

@router.post("/quotes/{quote_id}/share", response_model=ShareLinkResponse)
async def generate_share_link(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Generate a shareable link for a quote; a draft quote is sent at the same time."""
    quote = get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")
    quote = quote_service.create_share_link(db, quote, current_user.id)

    # The frontend serves the signature page at /sign/[token]
    return ShareLinkResponse(
        share_token=quote.share_token,
        share_url=f"/sign/{quote.share_token}",
        expires_at=quote.share_token_expires_at,
    )


# ============ Public Endpoints (No Auth) ============

@router.get("/public/quotes/{token}", response_model=PublicQuoteResponse)
async def get_public_quote(
    token: str,
    db: Session = Depends(get_session)
):
    """Get quote details by share token (public, no auth required)."""
    quote = _shared_quote_or_404(db, token)
    if quote_service.share_link_expired(quote) and not quote.signed_at:
        raise HTTPException(status_code=410, detail="Ce lien de partage a expiré")

    quote_service.mark_viewed(db, quote)
    organization = db.get(Organization, quote.organization_id)

    return PublicQuoteResponse(
        quote_number=quote.quote_number,
        status=quote.status,
        issue_date=quote.issue_date,
        validity_date=quote.validity_date,
        organization_name=organization.name,
        client_name=quote.client.display_name if quote.client else "Client inconnu",
        introduction=quote.introduction,
        terms=quote.terms,
        discount_percent=quote.discount_percent,
        discount_amount=quote.discount_amount,
        deposit_percent=quote.deposit_percent,
        subtotal_ht=quote.subtotal_ht,
        total_tva=quote.total_tva,
        total_ttc=quote.total_ttc,
        signed_at=quote.signed_at,
        signer_name=quote.signer_name,
        lines=quote.lines,
    )


@router.post("/public/quotes/{token}/sign", response_model=SignResponse)
async def sign_quote(
    token: str,
    sign_data: SignatureRequest,
    request: Request,
    db: Session = Depends(get_session)
):
    """Sign a quote electronically (public, no auth required)."""
    quote = _shared_quote_or_404(db, token)

    if quote_service.share_link_expired(quote):
        raise HTTPException(status_code=410, detail="Ce lien de partage a expiré")
    if not sign_data.accept_terms:
        raise HTTPException(status_code=400, detail="Les conditions doivent être acceptées")

    quote = quote_service.sign_quote(
        db, quote, sign_data.signer_name, sign_data.signature_data, client_ip(request) or "unknown"
    )

    return SignResponse(
        success=True,
        message="Devis signé avec succès",
        signed_at=quote.signed_at
    )


@router.get("/public/quotes/{token}/pdf")
async def get_public_quote_pdf(
    token: str,
    db: Session = Depends(get_session)
):
    """Download quote PDF (public, no auth required)."""
    quote = _shared_quote_or_404(db, token)
    organization = db.get(Organization, quote.organization_id)

    try:
        pdf_bytes = generate_quote_pdf(quote, organization)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to generate PDF: {str(e)}")

    filename = f"Devis_{quote.quote_number}.pdf"

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename={filename}"
        }
    )
