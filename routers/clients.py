"""API routes for client management."""

import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlmodel import Session, select, or_

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.base import utcnow
from models.client import Client
from models.enums import AuditAction, PipelineStage
from models.organization import Organization
from models.user import User
from routers.common import client_ip, get_owned_or_404, paginate
from schemas.client import ClientCreate, ClientListResponse, ClientResponse, ClientUpdate
from services.audit import log_action

logger = logging.getLogger(__name__)

router = APIRouter(tags=["clients"])


@router.get("/clients", response_model=ClientListResponse)
async def list_clients(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Company, contact name or email"),
    is_active: bool = Query(True),
    pipeline_stage: PipelineStage | None = None,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    query = select(Client).where(Client.organization_id == organization.id, Client.is_active == is_active)
    if pipeline_stage:
        query = query.where(Client.pipeline_stage == pipeline_stage)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Client.company_name.ilike(pattern),
            Client.contact_first_name.ilike(pattern),
            Client.contact_last_name.ilike(pattern),
            Client.contact_email.ilike(pattern),
        ))

    clients, total = paginate(db, query.order_by(Client.company_name), page, limit)
    return ClientListResponse(clients=clients, total=total)


@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    request: Request,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    client = Client(organization_id=organization.id, **client_data.model_dump())
    db.add(client)
    db.flush()
    log_action(db, organization.id, AuditAction.CREATE, "client", client.id, current_user.id,
               new_values=client_data.model_dump(),
               ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))
    db.commit()
    db.refresh(client)
    logger.info("Client %s created", client.id)
    return client


@router.get("/clients/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return get_owned_or_404(db, Client, client_id, organization.id, "Client")


@router.put("/clients/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    client_data: ClientUpdate,
    request: Request,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Partially update a client."""
    client = get_owned_or_404(db, Client, client_id, organization.id, "Client")
    changes = client_data.model_dump(exclude_unset=True)
    old_values = {key: getattr(client, key) for key in changes}
    for key, value in changes.items():
        setattr(client, key, value)
    client.updated_at = utcnow()

    db.add(client)
    log_action(db, organization.id, AuditAction.UPDATE, "client", client.id, current_user.id,
               old_values=old_values, new_values=changes,
               ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))
    db.commit()
    db.refresh(client)
    return client


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: str,
    request: Request,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Soft delete: the client is deactivated, its documents are kept."""
    client = get_owned_or_404(db, Client, client_id, organization.id, "Client")
    client.is_active = False
    client.updated_at = utcnow()
    db.add(client)
    log_action(db, organization.id, AuditAction.DELETE, "client", client.id, current_user.id,
               old_values={"is_active": True}, new_values={"is_active": False},
               ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))
    db.commit()
