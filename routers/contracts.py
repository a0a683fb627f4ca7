"""API routes for recurring service contracts."""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session, select

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.client import Client
from models.contract import Contract
from models.enums import ContractStatus
from models.organization import Organization
from models.project import Project
from models.user import User
from routers.common import get_owned_or_404, paginate
from schemas.contract import (
    ContractCreate,
    ContractListResponse,
    ContractResponse,
    ContractStatusUpdate,
    ContractUpdate,
    RenewalReviewResponse,
)
from schemas.invoice import InvoiceResponse
from services import contracts as contract_service

router = APIRouter(tags=["contracts"])


@router.get("/contracts", response_model=ContractListResponse)
async def list_contracts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: ContractStatus | None = None,
    client_id: str | None = None,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    query = select(Contract).where(Contract.organization_id == organization.id)
    if status:
        query = query.where(Contract.status == status)
    if client_id:
        query = query.where(Contract.client_id == client_id)

    contracts, total = paginate(db, query.order_by(Contract.end_date), page, limit)
    return ContractListResponse(
        contracts=contracts,
        total=total,
        monthly_recurring_revenue=contract_service.monthly_recurring_revenue(db, organization.id),
    )


@router.post("/contracts", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
async def create_contract(
    data: ContractCreate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    get_owned_or_404(db, Client, data.client_id, organization.id, "Client")
    if data.project_id:
        get_owned_or_404(db, Project, data.project_id, organization.id, "Project")
    return contract_service.create_contract(db, organization, data, current_user.id)


@router.post("/contracts/review-renewals", response_model=RenewalReviewResponse)
async def review_renewals(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Move contracts entering their notice window or past their end date."""
    result = contract_service.review_renewals(db, organization.id)
    return RenewalReviewResponse(
        renewal_pending=[c.id for c in result["renewal_pending"]],
        expired=[c.id for c in result["expired"]],
    )


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return get_owned_or_404(db, Contract, contract_id, organization.id, "Contract")


@router.put("/contracts/{contract_id}", response_model=ContractResponse)
async def update_contract(
    contract_id: str,
    data: ContractUpdate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    contract = get_owned_or_404(db, Contract, contract_id, organization.id, "Contract")
    if data.client_id:
        get_owned_or_404(db, Client, data.client_id, organization.id, "Client")
    return contract_service.update_contract(db, contract, data.model_dump(exclude_unset=True), current_user.id)


@router.post("/contracts/{contract_id}/status", response_model=ContractResponse)
async def change_contract_status(
    contract_id: str,
    data: ContractStatusUpdate,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    contract = get_owned_or_404(db, Contract, contract_id, organization.id, "Contract")
    return contract_service.change_contract_status(db, contract, data.status, current_user.id)


@router.post("/contracts/{contract_id}/renew", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
async def renew_contract(
    contract_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Create the next-period contract as a draft; the current one is marked renewed."""
    contract = get_owned_or_404(db, Contract, contract_id, organization.id, "Contract")
    return contract_service.renew_contract(db, contract, current_user.id)


@router.post(
    "/contracts/{contract_id}/generate-invoice",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_invoice(
    contract_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    contract = get_owned_or_404(db, Contract, contract_id, organization.id, "Contract")
    return contract_service.generate_contract_invoice(db, contract, organization, current_user.id)


@router.delete("/contracts/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contract(
    contract_id: str,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    contract = get_owned_or_404(db, Contract, contract_id, organization.id, "Contract")
    contract_service.delete_contract(db, contract, current_user.id)
