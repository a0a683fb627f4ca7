from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from decimal import Decimal

from models.enums import BillingFrequency, ContractStatus
from schemas.common import reject_null


class ContractCreate(BaseModel):
    client_id: str
    project_id: str | None = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_date: date
    end_date: date
    auto_renew: bool = True
    renewal_notice_days: int = Field(60, ge=0)
    annual_amount_ht: Decimal = Field(..., ge=0)
    billing_frequency: BillingFrequency = BillingFrequency.MONTHLY
    next_billing_date: date | None = None
    terms: str | None = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("La date de fin doit être postérieure à la date de début")
        return self


class ContractUpdate(BaseModel):
    client_id: str | None = None
    project_id: str | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    auto_renew: bool | None = None
    renewal_notice_days: int | None = Field(None, ge=0)
    annual_amount_ht: Decimal | None = Field(None, ge=0)
    billing_frequency: BillingFrequency | None = None
    next_billing_date: date | None = None
    terms: str | None = None

    check_not_null = reject_null(
        "client_id", "name", "start_date", "end_date", "auto_renew",
        "renewal_notice_days", "annual_amount_ht", "billing_frequency",
    )


class ContractStatusUpdate(BaseModel):
    status: ContractStatus


class ContractResponse(BaseModel):
    id: str
    organization_id: str
    client_id: str
    project_id: str | None
    contract_number: str
    name: str
    description: str | None
    status: ContractStatus
    start_date: date
    end_date: date
    auto_renew: bool
    renewal_notice_days: int
    renewed_from: str | None
    annual_amount_ht: Decimal
    billing_frequency: BillingFrequency
    next_billing_date: date | None
    last_billed_date: date | None
    terms: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ContractListResponse(BaseModel):
    contracts: list[ContractResponse]
    total: int
    monthly_recurring_revenue: Decimal


class RenewalReviewResponse(BaseModel):
    renewal_pending: list[str]
    expired: list[str]
