"""Pydantic schemas for Invoice API endpoints."""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal

from models.enums import InvoiceStatus, InvoiceType
from schemas.common import reject_null
from schemas.payment import PaymentResponse


class InvoiceLineCreate(BaseModel):
    sort_order: int | None = None
    is_section: bool = False
    description: str = Field(..., min_length=1)
    details: str | None = None
    quantity: Decimal = Field(Decimal("1"), ge=0)
    unit: str = Field("unit", max_length=20)
    unit_price_ht: Decimal = Field(Decimal("0"), ge=0)
    tva_rate: Decimal = Field(Decimal("20"), ge=0, le=100)


class InvoiceLineResponse(BaseModel):
    id: str
    sort_order: int
    is_section: bool
    description: str
    details: str | None
    quantity: Decimal
    unit: str
    unit_price_ht: Decimal
    tva_rate: Decimal
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal

    model_config = {"from_attributes": True}


class InvoiceCreate(BaseModel):
    client_id: str
    type: InvoiceType = InvoiceType.STANDARD
    project_id: str | None = None
    quote_id: str | None = None
    contract_id: str | None = None
    parent_invoice_id: str | None = None
    reference: str | None = Field(None, max_length=255)
    issue_date: date | None = None
    due_date: date | None = None
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    introduction: str | None = None
    footer_notes: str | None = None
    notes: str | None = None
    lines: list[InvoiceLineCreate] = Field(..., min_length=1)


class InvoiceUpdate(BaseModel):
    """Draft invoices only. Lines are replaced when provided."""
    client_id: str | None = None
    project_id: str | None = None
    reference: str | None = Field(None, max_length=255)
    issue_date: date | None = None
    due_date: date | None = None
    discount_percent: Decimal | None = Field(None, ge=0, le=100)
    introduction: str | None = None
    footer_notes: str | None = None
    notes: str | None = None
    lines: list[InvoiceLineCreate] | None = Field(None, min_length=1)

    check_not_null = reject_null("client_id", "issue_date", "due_date", "discount_percent", "lines")


class InvoiceSummary(BaseModel):
    id: str
    organization_id: str
    client_id: str
    project_id: str | None
    quote_id: str | None
    contract_id: str | None
    parent_invoice_id: str | None
    invoice_number: str
    reference: str | None
    type: InvoiceType
    status: InvoiceStatus
    issue_date: date
    due_date: date
    paid_date: date | None
    discount_percent: Decimal
    discount_amount: Decimal
    subtotal_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    reminder_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InvoiceResponse(InvoiceSummary):
    introduction: str | None
    footer_notes: str | None
    notes: str | None
    sent_at: datetime | None
    last_reminder_at: datetime | None
    lines: list[InvoiceLineResponse] = []
    payments: list[PaymentResponse] = []


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceSummary]
    total: int


class CancelInvoiceResponse(BaseModel):
    invoice: InvoiceResponse
    credit_note: InvoiceResponse | None = None


class OverdueSweepResponse(BaseModel):
    updated: int
