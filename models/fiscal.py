from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.enums import ObligationStatus, TvaRegime


class FiscalConfig(SQLModel, table=True):
    """Fiscal profile of an organization (one row per organization)."""
    __tablename__ = "fiscal_config"

    organization_id: str = Field(foreign_key="organization.id", primary_key=True)
    creation_date: date = Field(default=date(2026, 1, 1))
    first_closing_date: date = Field(default=date(2026, 12, 31))
    closing_month: int = Field(default=12, ge=1, le=12)
    closing_day: int = Field(default=31, ge=1, le=31)
    tva_regime: TvaRegime = Field(default=TvaRegime.REEL_SIMPLIFIE)
    urssaf_enabled: bool = Field(default=False)
    # Net annual TVA per fiscal year, keys are years as strings: {"2026": 12000}
    tva_by_fiscal_year: dict = Field(default_factory=dict, sa_column=Column(JSON))
    cfe_estimated_amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    updated_at: datetime = Field(default_factory=utcnow)


class FiscalObligationOverride(SQLModel, table=True):
    """
    Stored state of a generated obligation.

    Obligations are recomputed on every read; only the status, an adjusted
    amount and notes are persisted, keyed by the deterministic obligation key.
    """
    __tablename__ = "fiscal_obligation"
    __table_args__ = (
        UniqueConstraint("organization_id", "obligation_key", name="fiscal_oblig_org_key"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)
    obligation_key: str = Field(max_length=100)
    status: ObligationStatus = Field(default=ObligationStatus.PENDING)
    amount_override: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(default=None)
    paid_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
