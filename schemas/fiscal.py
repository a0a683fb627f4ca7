"""Pydantic schemas for the fiscal calendar and its API."""

from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from decimal import Decimal

from models.enums import ObligationStatus, ObligationType, TvaRegime
from schemas.common import reject_null


class CompanyConfig(BaseModel):
    """Fiscal profile fed to the obligation generator."""
    creation_date: date
    first_closing_date: date
    closing_month: int = Field(12, ge=1, le=12)
    closing_day: int = Field(31, ge=1, le=31)
    tva_regime: TvaRegime = TvaRegime.REEL_SIMPLIFIE
    urssaf_enabled: bool = False
    # Net annual TVA per fiscal year, needed for the following year's acomptes
    tva_by_fiscal_year: dict[int, Decimal] = Field(default_factory=dict)
    cfe_estimated_amount: Decimal | None = None

    model_config = {"from_attributes": True}


class Obligation(BaseModel):
    id: str
    obligation_key: str
    type: ObligationType
    label: str
    description: str
    due_date: date
    fiscal_year: int
    calendar_year: int
    recurring: bool = True
    is_first_year: bool = False
    status: ObligationStatus = ObligationStatus.PENDING
    amount: Decimal | None = None
    warning_date: date
    tags: list[str] = []
    legal_reference: str | None = None
    # Set when a stored override exists
    notes: str | None = None
    paid_at: datetime | None = None


class GenerateObligationsResult(BaseModel):
    year: int
    obligations: list[Obligation]
    config: CompanyConfig
    warnings: list[str] = []


class FiscalConfigUpdate(BaseModel):
    """Partial update of an organization's fiscal profile."""
    creation_date: date | None = None
    first_closing_date: date | None = None
    closing_month: int | None = Field(None, ge=1, le=12)
    closing_day: int | None = Field(None, ge=1, le=31)
    tva_regime: TvaRegime | None = None
    urssaf_enabled: bool | None = None
    tva_by_fiscal_year: dict[int, Decimal] | None = None
    cfe_estimated_amount: Decimal | None = Field(None, ge=0)

    check_not_null = reject_null(
        "creation_date", "first_closing_date", "closing_month", "closing_day",
        "tva_regime", "urssaf_enabled", "tva_by_fiscal_year",
    )

    @model_validator(mode="after")
    def check_dates(self):
        if self.creation_date and self.first_closing_date and self.first_closing_date < self.creation_date:
            raise ValueError("La date de première clôture doit suivre la date de création")
        return self


class FiscalConfigResponse(CompanyConfig):
    organization_id: str
    updated_at: datetime


class ObligationUpdate(BaseModel):
    status: ObligationStatus
    amount_override: Decimal | None = Field(None, ge=0)
    notes: str | None = None


class FiscalOverviewResponse(BaseModel):
    config: FiscalConfigResponse
    years: list[GenerateObligationsResult]
