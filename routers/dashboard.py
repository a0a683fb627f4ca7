"""API routes for the dashboard, treasury, calendar, notifications and audit trail."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from core.security import get_current_organization
from db.session import get_session
from models.audit import AuditLog
from models.organization import Organization
from routers.common import paginate
from schemas.reporting import (
    ActivityItem,
    AuditLogListResponse,
    CalendarResponse,
    DashboardMetrics,
    NotificationsResponse,
    TreasuryResponse,
)
from services import reporting

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardMetrics)
async def get_dashboard_metrics(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Key figures of the organization: revenue, pipelines and franchise threshold."""
    return reporting.dashboard_metrics(db, organization)


@router.get("/treasury", response_model=TreasuryResponse)
async def get_treasury(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return reporting.treasury(db, organization.id)


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    month: str | None = Query(None, description="Month as YYYY-MM, defaults to the current one"),
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    month = month or reporting.month_key(date.today())
    try:
        year, month_number = reporting.parse_month(month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    events = reporting.calendar_events(db, organization.id, year, month_number)
    return CalendarResponse(month=month, events=events)


@router.get("/notifications", response_model=NotificationsResponse)
async def get_notifications(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    items = reporting.notifications(db, organization.id)
    return NotificationsResponse(notifications=items, total=len(items))


@router.get("/activity", response_model=list[ActivityItem])
async def get_activity(
    limit: int = Query(20, ge=1, le=100),
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return reporting.activity_feed(db, organization.id, limit)


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    entity_type: str | None = None,
    entity_id: str | None = None,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    query = select(AuditLog).where(AuditLog.organization_id == organization.id)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)

    logs, total = paginate(db, query.order_by(AuditLog.created_at.desc()), page, limit)
    return AuditLogListResponse(logs=logs, total=total)
