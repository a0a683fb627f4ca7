from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal

from models.enums import DeclarationStatus


class DeclarationUpdate(BaseModel):
    tva_deductible: Decimal | None = Field(None, ge=0)
    notes: str | None = None


class DeclarationNotes(BaseModel):
    notes: str | None = None


class DeclarationResponse(BaseModel):
    id: str
    organization_id: str
    year: int
    quarter: int
    period_start: date
    period_end: date
    payment_due_date: date
    ca_ht: Decimal
    tva_collected: Decimal
    tva_deductible: Decimal
    tva_to_pay: Decimal
    status: DeclarationStatus
    declared_at: datetime | None
    paid_at: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
