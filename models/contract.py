from sqlmodel import SQLModel, Field, Relationship
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.client import Client
from models.enums import BillingFrequency, ContractStatus


class Contract(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)
    client_id: str = Field(foreign_key="client.id", index=True)
    project_id: Optional[str] = Field(default=None, foreign_key="project.id")

    contract_number: str = Field(index=True, max_length=50)
    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None)
    status: ContractStatus = Field(default=ContractStatus.DRAFT, index=True)

    start_date: date
    end_date: date
    auto_renew: bool = Field(default=True)
    renewal_notice_days: int = Field(default=60)
    renewed_from: Optional[str] = Field(default=None, foreign_key="contract.id")

    # Billing
    annual_amount_ht: Decimal = Field(max_digits=12, decimal_places=2)
    billing_frequency: BillingFrequency = Field(default=BillingFrequency.MONTHLY)
    next_billing_date: Optional[date] = Field(default=None)
    last_billed_date: Optional[date] = Field(default=None)

    terms: Optional[str] = Field(default=None)
    created_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    client: Optional[Client] = Relationship()
