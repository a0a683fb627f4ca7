"""Pydantic schemas for Client API endpoints."""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal

from models.enums import PipelineStage
from schemas.common import reject_null

EMAIL_PATTERN = r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$"
SIRET_PATTERN = r"^(\d{14})?$"


class ClientBase(BaseModel):
    """Base schema for client data."""
    company_name: str = Field(..., min_length=1, max_length=255)
    legal_name: str | None = Field(None, max_length=255)
    siret: str | None = Field(None, pattern=SIRET_PATTERN)
    tva_number: str | None = Field(None, max_length=20)
    contact_first_name: str | None = Field(None, max_length=100)
    contact_last_name: str | None = Field(None, max_length=100)
    contact_email: str | None = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    contact_phone: str | None = Field(None, max_length=20)
    contact_position: str | None = Field(None, max_length=100)
    address_line1: str | None = Field(None, max_length=255)
    address_line2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=10)
    country: str = Field("FR", min_length=2, max_length=2)
    payment_terms: int | None = Field(None, gt=0)
    tva_rate: Decimal | None = Field(None, ge=0, le=100)
    notes: str | None = Field(None)
    pipeline_stage: PipelineStage = PipelineStage.PROSPECT


class ClientCreate(ClientBase):
    """Schema for creating a new client."""
    pass


class ClientUpdate(BaseModel):
    """Schema for updating an existing client."""
    company_name: str | None = Field(None, min_length=1, max_length=255)
    legal_name: str | None = Field(None, max_length=255)
    siret: str | None = Field(None, pattern=SIRET_PATTERN)
    tva_number: str | None = Field(None, max_length=20)
    contact_first_name: str | None = Field(None, max_length=100)
    contact_last_name: str | None = Field(None, max_length=100)
    contact_email: str | None = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    contact_phone: str | None = Field(None, max_length=20)
    contact_position: str | None = Field(None, max_length=100)
    address_line1: str | None = Field(None, max_length=255)
    address_line2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=10)
    country: str | None = Field(None, min_length=2, max_length=2)
    payment_terms: int | None = Field(None, gt=0)
    tva_rate: Decimal | None = Field(None, ge=0, le=100)
    notes: str | None = Field(None)
    pipeline_stage: PipelineStage | None = None
    is_active: bool | None = None

    check_not_null = reject_null("company_name", "country", "pipeline_stage", "is_active")


class ClientResponse(ClientBase):
    """Schema for client API responses."""
    id: str
    organization_id: str
    display_name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientListResponse(BaseModel):
    """Schema for paginated client list responses."""
    clients: list[ClientResponse]
    total: int
