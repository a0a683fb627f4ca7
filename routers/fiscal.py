"""API routes for the fiscal profile and the calendar of statutory obligations."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from core.security import get_current_organization
from db.session import get_session
from models.organization import Organization
from schemas.fiscal import (
    FiscalConfigResponse,
    FiscalConfigUpdate,
    FiscalOverviewResponse,
    GenerateObligationsResult,
    ObligationUpdate,
)
from services import obligations as obligation_service

router = APIRouter(tags=["fiscal"])


@router.get("/fiscal/config", response_model=FiscalConfigResponse)
async def get_config(
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return obligation_service.get_fiscal_config(db, organization.id)


@router.put("/fiscal/config", response_model=FiscalConfigResponse)
async def update_config(
    data: FiscalConfigUpdate,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Partially update the fiscal profile (only the fields sent)."""
    return obligation_service.update_fiscal_config(db, organization.id, data.model_dump(exclude_unset=True))


@router.get("/fiscal/obligations", response_model=GenerateObligationsResult)
async def get_obligations(
    year: int | None = Query(None, ge=2000, le=2100, description="Calendar year, defaults to the current one"),
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    return obligation_service.obligations_for_year(db, organization.id, year or date.today().year)


@router.get("/fiscal/obligations/range", response_model=FiscalOverviewResponse)
async def get_obligations_range(
    from_year: int = Query(..., ge=2000, le=2100),
    to_year: int = Query(..., ge=2000, le=2100),
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    try:
        years = obligation_service.obligations_for_range(db, organization.id, from_year, to_year)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    config = FiscalConfigResponse.model_validate(obligation_service.get_fiscal_config(db, organization.id))
    return FiscalOverviewResponse(config=config, years=years)


@router.put("/fiscal/obligations/{obligation_key}")
async def update_obligation(
    obligation_key: str,
    data: ObligationUpdate,
    organization: Organization = Depends(get_current_organization),
    db: Session = Depends(get_session)
):
    """Record the status of an obligation (paying it stamps the payment date)."""
    override = obligation_service.update_obligation(
        db, organization.id, obligation_key, data.status, data.amount_override, data.notes
    )
    return {
        "obligation_key": override.obligation_key,
        "status": override.status,
        "amount_override": override.amount_override,
        "notes": override.notes,
        "paid_at": override.paid_at,
    }
