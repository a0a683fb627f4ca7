from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal

from models.enums import PaymentMethod, PaymentStatus
from schemas.common import reject_null


class PaymentCreate(BaseModel):
    """Payment recorded against an invoice."""
    amount: Decimal = Field(..., gt=0)
    payment_date: date | None = None
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: str | None = Field(None, max_length=255)
    notes: str | None = None


class PaymentRecord(PaymentCreate):
    invoice_id: str


class PaymentUpdate(BaseModel):
    status: PaymentStatus | None = None
    reference: str | None = Field(None, max_length=255)
    notes: str | None = None

    check_not_null = reject_null("status")


class PaymentResponse(BaseModel):
    id: str
    organization_id: str
    invoice_id: str
    amount: Decimal
    payment_date: date
    method: PaymentMethod
    status: PaymentStatus
    reference: str | None
    notes: str | None
    refund_of: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentListItem(PaymentResponse):
    invoice_number: str | None = None
    client_name: str | None = None


class PaymentListResponse(BaseModel):
    payments: list[PaymentListItem]
    total: int
