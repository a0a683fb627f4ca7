"""Fiscal profile storage and obligation overrides of an organization."""

import logging
from datetime import date

from sqlmodel import Session, select

from models.base import utcnow
from models.enums import ObligationStatus
from models.fiscal import FiscalConfig, FiscalObligationOverride
from schemas.fiscal import CompanyConfig, GenerateObligationsResult
from services.fiscal_calendar import generate_multi_year_obligations, generate_obligations

logger = logging.getLogger(__name__)


def get_fiscal_config(db: Session, organization_id: str) -> FiscalConfig:
    """Stored fiscal profile, created with defaults on first access."""
    config = db.get(FiscalConfig, organization_id)
    if config is None:
        config = FiscalConfig(organization_id=organization_id)
        db.add(config)
        db.commit()
        db.refresh(config)
    return config


def update_fiscal_config(db: Session, organization_id: str, changes: dict) -> FiscalConfig:
    config = get_fiscal_config(db, organization_id)
    if "tva_by_fiscal_year" in changes and changes["tva_by_fiscal_year"] is not None:
        # JSON column: string keys and values keep the amounts exact
        changes["tva_by_fiscal_year"] = {
            str(year): str(amount) for year, amount in changes["tva_by_fiscal_year"].items()
        }
    for key, value in changes.items():
        setattr(config, key, value)
    config.updated_at = utcnow()
    db.add(config)
    db.commit()
    db.refresh(config)
    logger.info("Fiscal configuration of organization %s updated", organization_id)
    return config


def to_company_config(config: FiscalConfig) -> CompanyConfig:
    return CompanyConfig.model_validate(config)


def _overrides(db: Session, organization_id: str) -> dict[str, FiscalObligationOverride]:
    rows = db.exec(
        select(FiscalObligationOverride).where(FiscalObligationOverride.organization_id == organization_id)
    ).all()
    return {row.obligation_key: row for row in rows}


def _merge(result: GenerateObligationsResult, overrides: dict[str, FiscalObligationOverride]):
    for obligation in result.obligations:
        override = overrides.get(obligation.obligation_key)
        if not override:
            continue
        obligation.status = override.status
        if override.amount_override is not None:
            obligation.amount = override.amount_override
        obligation.notes = override.notes
        obligation.paid_at = override.paid_at
    return result


def obligations_for_year(
    db: Session, organization_id: str, year: int, today: date | None = None
) -> GenerateObligationsResult:
    config = to_company_config(get_fiscal_config(db, organization_id))
    return _merge(generate_obligations(year, config, today), _overrides(db, organization_id))


def obligations_for_range(
    db: Session, organization_id: str, from_year: int, to_year: int, today: date | None = None
) -> list[GenerateObligationsResult]:
    config = to_company_config(get_fiscal_config(db, organization_id))
    overrides = _overrides(db, organization_id)
    return [
        _merge(result, overrides)
        for result in generate_multi_year_obligations(from_year, to_year, config, today)
    ]


def update_obligation(
    db: Session,
    organization_id: str,
    obligation_key: str,
    status: ObligationStatus,
    amount_override=None,
    notes: str | None = None,
) -> FiscalObligationOverride:
    """Store the status of a generated obligation (paid stamps ``paid_at``)."""
    override = db.exec(
        select(FiscalObligationOverride).where(
            FiscalObligationOverride.organization_id == organization_id,
            FiscalObligationOverride.obligation_key == obligation_key,
        )
    ).first()
    if override is None:
        override = FiscalObligationOverride(organization_id=organization_id, obligation_key=obligation_key)

    override.status = status
    override.paid_at = utcnow() if status == ObligationStatus.PAID else None
    if amount_override is not None:
        override.amount_override = amount_override
    if notes is not None:
        override.notes = notes
    override.updated_at = utcnow()

    db.add(override)
    db.commit()
    db.refresh(override)
    logger.info("Obligation %s of organization %s marked %s", obligation_key, organization_id, status.value)
    return override
