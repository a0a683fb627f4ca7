"""API routes for quarterly TVA declarations."""

from fastapi import APIRouter, Depends, Path
from sqlmodel import Session

from core.security import get_current_organization
from db.session import get_session
from models.declaration import TvaDeclaration
from models.organization import Organization
from routers.common import get_owned_or_404
from schemas.declaration import DeclarationNotes, DeclarationResponse, DeclarationUpdate
from services import declarations as declaration_service

router = APIRouter(tags=["declarations"])


@router.get("/declarations", response_model=list[DeclarationResponse])
async def list_declarations(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Declarations of the previous and current year, created on the fly."""
    return declaration_service.list_declarations(db, organization.id)


@router.get("/declarations/{year}/{quarter}", response_model=DeclarationResponse)
async def get_declaration_for_quarter(
    year: int = Path(..., ge=2000, le=2100),
    quarter: int = Path(..., ge=1, le=4),
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return declaration_service.get_or_create_declaration(db, organization.id, year, quarter)


@router.get("/declarations/{declaration_id}", response_model=DeclarationResponse)
async def get_declaration(
    declaration_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return get_owned_or_404(db, TvaDeclaration, declaration_id, organization.id, "Declaration")


@router.put("/declarations/{declaration_id}", response_model=DeclarationResponse)
async def update_declaration(
    declaration_id: str,
    data: DeclarationUpdate,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    declaration = get_owned_or_404(db, TvaDeclaration, declaration_id, organization.id, "Declaration")
    return declaration_service.update_declaration(db, declaration, data.tva_deductible, data.notes)


@router.post("/declarations/{declaration_id}/refresh", response_model=DeclarationResponse)
async def refresh_declaration(
    declaration_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Recompute revenue and collected TVA from the invoices paid in the quarter."""
    declaration = get_owned_or_404(db, TvaDeclaration, declaration_id, organization.id, "Declaration")
    return declaration_service.refresh_declaration(db, declaration)


@router.post("/declarations/{declaration_id}/declare", response_model=DeclarationResponse)
async def declare(
    declaration_id: str,
    data: DeclarationNotes | None = None,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    declaration = get_owned_or_404(db, TvaDeclaration, declaration_id, organization.id, "Declaration")
    return declaration_service.mark_declared(db, declaration, data.notes if data else None)


@router.post("/declarations/{declaration_id}/pay", response_model=DeclarationResponse)
async def pay(
    declaration_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    declaration = get_owned_or_404(db, TvaDeclaration, declaration_id, organization.id, "Declaration")
    return declaration_service.mark_paid(db, declaration)
