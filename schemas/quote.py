"""Pydantic schemas for Quote API endpoints."""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal

from models.enums import QuoteStatus
from schemas.common import reject_null


class QuoteLineCreate(BaseModel):
    """A quote line; sections are titles and carry no amount."""
    sort_order: int | None = None
    is_section: bool = False
    is_optional: bool = False
    description: str = Field(..., min_length=1)
    details: str | None = None
    quantity: Decimal = Field(Decimal("1"), ge=0)
    unit: str = Field("unit", max_length=20)
    unit_price_ht: Decimal = Field(Decimal("0"), ge=0)
    tva_rate: Decimal = Field(Decimal("20"), ge=0, le=100)


class QuoteLineResponse(BaseModel):
    id: str
    sort_order: int
    is_section: bool
    is_optional: bool
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


class QuoteCreate(BaseModel):
    """Schema for creating a new quote with lines."""
    client_id: str
    project_id: str | None = None
    reference: str | None = Field(None, max_length=255)
    issue_date: date | None = None
    validity_date: date | None = None
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    deposit_percent: Decimal | None = Field(None, gt=0, le=100)
    introduction: str | None = None
    terms: str | None = None
    notes: str | None = None
    lines: list[QuoteLineCreate] = Field(..., min_length=1)


class QuoteUpdate(BaseModel):
    """Schema for updating a draft quote. Lines are replaced when provided."""
    client_id: str | None = None
    project_id: str | None = None
    reference: str | None = Field(None, max_length=255)
    issue_date: date | None = None
    validity_date: date | None = None
    discount_percent: Decimal | None = Field(None, ge=0, le=100)
    deposit_percent: Decimal | None = Field(None, gt=0, le=100)
    introduction: str | None = None
    terms: str | None = None
    notes: str | None = None
    lines: list[QuoteLineCreate] | None = Field(None, min_length=1)

    check_not_null = reject_null("client_id", "issue_date", "validity_date", "discount_percent", "lines")


class QuoteSummary(BaseModel):
    id: str
    organization_id: str
    client_id: str
    project_id: str | None
    quote_number: str
    reference: str | None
    status: QuoteStatus
    issue_date: date
    validity_date: date
    accepted_date: date | None
    discount_percent: Decimal
    discount_amount: Decimal
    deposit_percent: Decimal | None
    subtotal_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class QuoteResponse(QuoteSummary):
    """Schema for quote API responses."""
    introduction: str | None
    terms: str | None
    notes: str | None
    duplicated_from: str | None
    sent_at: datetime | None
    share_token: str | None
    share_token_expires_at: datetime | None
    signed_at: datetime | None
    signer_name: str | None
    lines: list[QuoteLineResponse] = []


class QuoteListResponse(BaseModel):
    quotes: list[QuoteSummary]
    total: int


class ShareLinkResponse(BaseModel):
    share_token: str
    share_url: str
    expires_at: datetime


class SignatureRequest(BaseModel):
    signer_name: str = Field(..., min_length=2, max_length=255)
    signature_data: str = Field(..., min_length=1, description="Signature image as a data URL")
    accept_terms: bool = True


class PublicQuoteResponse(BaseModel):
    """What a client sees through a share link."""
    quote_number: str
    status: QuoteStatus
    issue_date: date
    validity_date: date
    organization_name: str
    client_name: str
    introduction: str | None
    terms: str | None
    discount_percent: Decimal
    discount_amount: Decimal
    deposit_percent: Decimal | None
    subtotal_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    signed_at: datetime | None
    signer_name: str | None
    lines: list[QuoteLineResponse]
