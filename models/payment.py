from sqlmodel import SQLModel, Field, Relationship
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.enums import PaymentMethod, PaymentStatus
from models.invoice import Invoice


class Payment(SQLModel, table=True):
    """Money received against an invoice. Refunds are stored as negative payments."""
    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)
    invoice_id: str = Field(foreign_key="invoice.id", index=True)

    amount: Decimal = Field(max_digits=12, decimal_places=2)
    payment_date: date
    method: PaymentMethod = Field(default=PaymentMethod.BANK_TRANSFER)
    status: PaymentStatus = Field(default=PaymentStatus.RECEIVED, index=True)
    reference: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None)
    refund_of: Optional[str] = Field(default=None, foreign_key="payment.id")

    created_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    invoice: Optional[Invoice] = Relationship(back_populates="payments")
