"""API routes for quote management."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlmodel import Session, select, or_

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.client import Client
from models.enums import QuoteStatus
from models.organization import Organization
from models.project import Project
from models.quote import Quote
from models.user import User
from routers.common import get_owned_or_404, paginate
from schemas.invoice import InvoiceResponse
from schemas.quote import QuoteCreate, QuoteListResponse, QuoteResponse, QuoteUpdate
from services import quotes as quote_service
from services.workflow import quote_status_filter

router = APIRouter(tags=["quotes"])


def _check_references(db: Session, organization: Organization, client_id: str | None, project_id: str | None):
    if client_id:
        client = get_owned_or_404(db, Client, client_id, organization.id, "Client")
        if not client.is_active:
            raise HTTPException(status_code=400, detail="Ce client est archivé")
    if project_id:
        get_owned_or_404(db, Project, project_id, organization.id, "Project")


@router.get("/quotes", response_model=QuoteListResponse)
async def list_quotes(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Quote number or reference"),
    status: str | None = Query(None, description="Status, or 'converted' for invoiced quotes"),
    client_id: str | None = None,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """List the organization's quotes with pagination."""
    query = select(Quote).where(Quote.organization_id == organization.id)
    if status:
        try:
            query = query.where(Quote.status.in_(quote_status_filter(status)))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Statut inconnu : {status}")
    if client_id:
        query = query.where(Quote.client_id == client_id)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Quote.quote_number.ilike(pattern), Quote.reference.ilike(pattern)))

    quotes, total = paginate(db, query.order_by(Quote.created_at.desc()), page, limit)
    return QuoteListResponse(quotes=quotes, total=total)


@router.post("/quotes", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_quote(
    quote_data: QuoteCreate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Create a new quote with its lines."""
    _check_references(db, organization, quote_data.client_id, quote_data.project_id)
    return quote_service.create_quote(db, organization, quote_data, current_user.id)


@router.get("/quotes/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")


@router.put("/quotes/{quote_id}", response_model=QuoteResponse)
async def update_quote(
    quote_id: str,
    quote_data: QuoteUpdate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Update a draft quote; lines are replaced when provided."""
    quote = get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")
    _check_references(db, organization, quote_data.client_id, quote_data.project_id)
    return quote_service.update_quote(db, quote, organization, quote_data, current_user.id)


@router.delete("/quotes/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    quote = get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")
    quote_service.delete_quote(db, quote, current_user.id)


@router.post("/quotes/{quote_id}/duplicate", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    quote = get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")
    return quote_service.duplicate_quote(db, quote, organization, current_user.id)


@router.post("/quotes/{quote_id}/convert", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def convert_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Turn an accepted quote into a deposit or standard invoice."""
    quote = get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")
    return quote_service.convert_quote_to_invoice(db, quote, organization, current_user.id)


def _transition(db: Session, organization: Organization, quote_id: str, target: QuoteStatus, user: User) -> Quote:
    quote = get_owned_or_404(db, Quote, quote_id, organization.id, "Quote")
    return quote_service.change_quote_status(db, quote, target, user.id)


@router.post("/quotes/{quote_id}/send", response_model=QuoteResponse)
async def send_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    return _transition(db, organization, quote_id, QuoteStatus.SENT, current_user)


@router.post("/quotes/{quote_id}/view", response_model=QuoteResponse)
async def mark_quote_viewed(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    return _transition(db, organization, quote_id, QuoteStatus.VIEWED, current_user)


@router.post("/quotes/{quote_id}/accept", response_model=QuoteResponse)
async def accept_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    return _transition(db, organization, quote_id, QuoteStatus.ACCEPTED, current_user)


@router.post("/quotes/{quote_id}/reject", response_model=QuoteResponse)
async def reject_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    return _transition(db, organization, quote_id, QuoteStatus.REJECTED, current_user)


@router.post("/quotes/{quote_id}/expire", response_model=QuoteResponse)
async def expire_quote(
    quote_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    return _transition(db, organization, quote_id, QuoteStatus.EXPIRED, current_user)
