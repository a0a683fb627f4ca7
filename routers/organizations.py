"""API routes for organizations and the user's memberships."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from core.security import get_current_organization, get_current_user
from db.session import get_session
from models.base import utcnow
from models.enums import AuditAction
from models.organization import Organization
from models.user import User
from routers.common import client_ip
from schemas.organization import MembershipResponse, OrganizationCreate, OrganizationResponse, OrganizationUpdate
from services.audit import log_action
from services.organizations import (
    create_organization,
    get_membership,
    leave_organization,
    list_memberships,
    organization_stats,
    reset_organization_data,
    set_primary,
)

router = APIRouter(tags=["organizations"])


def _membership_response(db: Session, membership) -> MembershipResponse:
    stats = organization_stats(db, membership.organization_id)
    return MembershipResponse(
        id=membership.organization_id,
        name=membership.organization.name,
        role=membership.role,
        is_primary=membership.is_primary,
        joined_at=membership.joined_at,
        clients_count=stats["clients"],
        invoices_count=stats["invoices"],
    )


@router.get("/organizations", response_model=list[MembershipResponse])
async def list_organizations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Organizations the current user belongs to, primary first."""
    return [_membership_response(db, m) for m in list_memberships(db, current_user.id)]


@router.post("/organizations", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_new_organization(
    data: OrganizationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    organization = create_organization(db, current_user, **data.model_dump())
    log_action(db, organization.id, AuditAction.CREATE, "organization", organization.id, current_user.id,
               new_values={"name": organization.name})
    db.commit()
    db.refresh(organization)
    return organization


@router.get("/organizations/current", response_model=OrganizationResponse)
async def get_current(organization: Organization = Depends(get_current_organization)):
    return organization


@router.put("/organizations/current", response_model=OrganizationResponse)
async def update_current(
    data: OrganizationUpdate,
    request: Request,
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Update the settings of the current organization (only the fields sent)."""
    changes = data.model_dump(exclude_unset=True)
    old_values = {key: getattr(organization, key) for key in changes}
    for key, value in changes.items():
        setattr(organization, key, value)
    organization.updated_at = utcnow()
    db.add(organization)
    log_action(db, organization.id, AuditAction.UPDATE, "organization", organization.id, current_user.id,
               old_values=old_values, new_values=changes,
               ip_address=client_ip(request), user_agent=request.headers.get("user-agent"))
    db.commit()
    db.refresh(organization)
    return organization


@router.put("/organizations/{organization_id}/primary", response_model=MembershipResponse)
async def make_primary(
    organization_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    try:
        membership = set_primary(db, current_user, organization_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Organization not found")
    db.commit()
    db.refresh(membership)
    return _membership_response(db, membership)


@router.delete("/organizations/current/data", status_code=status.HTTP_204_NO_CONTENT)
async def reset_current_data(
    organization: Organization = Depends(get_current_organization),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Delete every business record of the current organization."""
    membership = get_membership(db, current_user.id, organization.id)
    if membership is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    reset_organization_data(db, organization.id)
    log_action(db, organization.id, AuditAction.DELETE, "organization_data", organization.id, current_user.id)
    db.commit()


@router.delete("/organizations/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave(
    organization_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    """Leave an organization; the last owner cannot leave."""
    try:
        leave_organization(db, current_user, organization_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Organization not found")
    db.commit()
