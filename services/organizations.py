"""Organization membership, bootstrap and data reset."""

import logging

from sqlalchemy import delete
from sqlmodel import Session, select, func

from core.exceptions import BusinessRuleError
from models.audit import AuditLog
from models.client import Client
from models.contract import Contract
from models.declaration import TvaDeclaration
from models.enums import UserRole
from models.fiscal import FiscalObligationOverride
from models.invoice import Invoice, InvoiceLine
from models.organization import Organization, UserOrganization
from models.payment import Payment
from models.project import Project, ProjectMilestone
from models.quote import Quote, QuoteLine
from models.user import User

logger = logging.getLogger(__name__)

DEFAULT_ORGANIZATION_NAME = "Mon entreprise"


def get_membership(db: Session, user_id: str, organization_id: str) -> UserOrganization | None:
    return db.get(UserOrganization, (user_id, organization_id))


def list_memberships(db: Session, user_id: str) -> list[UserOrganization]:
    statement = (
        select(UserOrganization)
        .where(UserOrganization.user_id == user_id)
        .order_by(UserOrganization.is_primary.desc(), UserOrganization.joined_at)
    )
    return list(db.exec(statement).all())


def create_organization(db: Session, user: User, **fields) -> Organization:
    """Create an organization owned by ``user``; it becomes primary if it is the first one."""
    name = (fields.get("name") or "").strip()
    if not name:
        raise BusinessRuleError("Le nom de l'entreprise est requis")
    fields["name"] = name

    has_memberships = bool(list_memberships(db, user.id))
    organization = Organization(**fields)
    db.add(organization)
    db.flush()
    db.add(UserOrganization(
        user_id=user.id,
        organization_id=organization.id,
        role=UserRole.OWNER,
        is_primary=not has_memberships,
    ))
    db.flush()
    logger.info("Organization %s created by user %s", organization.id, user.id)
    return organization


def resolve_organization(db: Session, user: User, requested_id: str | None = None) -> Organization:
    """
    Return the organization to use for ``user``.

    Order: requested organization if the user is a member, primary membership,
    first membership, and finally a freshly created default organization.
    """
    if requested_id:
        membership = get_membership(db, user.id, requested_id)
        if membership:
            return db.get(Organization, requested_id)

    memberships = list_memberships(db, user.id)
    if memberships:
        return db.get(Organization, memberships[0].organization_id)

    organization = create_organization(db, user, name=DEFAULT_ORGANIZATION_NAME)
    db.commit()
    db.refresh(organization)
    return organization


def set_primary(db: Session, user: User, organization_id: str) -> UserOrganization:
    target = get_membership(db, user.id, organization_id)
    if not target:
        raise LookupError(organization_id)
    for membership in list_memberships(db, user.id):
        membership.is_primary = membership.organization_id == organization_id
        db.add(membership)
    return target


def leave_organization(db: Session, user: User, organization_id: str) -> None:
    membership = get_membership(db, user.id, organization_id)
    if not membership:
        raise LookupError(organization_id)

    if membership.role == UserRole.OWNER:
        owners = db.exec(
            select(func.count()).select_from(UserOrganization).where(
                UserOrganization.organization_id == organization_id,
                UserOrganization.role == UserRole.OWNER,
            )
        ).one()
        if owners <= 1:
            raise BusinessRuleError("Impossible de quitter une entreprise dont vous êtes le seul propriétaire")

    was_primary = membership.is_primary
    db.delete(membership)
    db.flush()

    if was_primary:
        remaining = list_memberships(db, user.id)
        if remaining:
            remaining[0].is_primary = True
            db.add(remaining[0])


def organization_stats(db: Session, organization_id: str) -> dict[str, int]:
    clients = db.exec(
        select(func.count()).select_from(Client).where(
            Client.organization_id == organization_id, Client.is_active == True  # noqa: E712
        )
    ).one()
    invoices = db.exec(
        select(func.count()).select_from(Invoice).where(Invoice.organization_id == organization_id)
    ).one()
    return {"clients": clients, "invoices": invoices}


def reset_organization_data(db: Session, organization_id: str) -> None:
    """
    Delete all business data of an organization.
    The organization itself, its memberships and fiscal configuration are kept.
    """
    invoice_ids = select(Invoice.id).where(Invoice.organization_id == organization_id)
    quote_ids = select(Quote.id).where(Quote.organization_id == organization_id)
    project_ids = select(Project.id).where(Project.organization_id == organization_id)

    db.exec(delete(Payment).where(Payment.organization_id == organization_id))
    db.exec(delete(InvoiceLine).where(InvoiceLine.invoice_id.in_(invoice_ids)))
    # Credit notes and final invoices point at their parent invoice
    db.exec(delete(Invoice).where(
        Invoice.organization_id == organization_id, Invoice.parent_invoice_id.is_not(None)
    ))
    db.exec(delete(Invoice).where(Invoice.organization_id == organization_id))
    db.exec(delete(QuoteLine).where(QuoteLine.quote_id.in_(quote_ids)))
    db.exec(delete(Quote).where(Quote.organization_id == organization_id))
    db.exec(delete(Contract).where(
        Contract.organization_id == organization_id, Contract.renewed_from.is_not(None)
    ))
    db.exec(delete(Contract).where(Contract.organization_id == organization_id))
    db.exec(delete(ProjectMilestone).where(ProjectMilestone.project_id.in_(project_ids)))
    db.exec(delete(Project).where(Project.organization_id == organization_id))
    db.exec(delete(Client).where(Client.organization_id == organization_id))
    db.exec(delete(TvaDeclaration).where(TvaDeclaration.organization_id == organization_id))
    db.exec(delete(FiscalObligationOverride).where(
        FiscalObligationOverride.organization_id == organization_id
    ))
    db.exec(delete(AuditLog).where(AuditLog.organization_id == organization_id))
    logger.warning("All business data of organization %s deleted", organization_id)
