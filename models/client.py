from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.enums import PipelineStage


class Client(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)

    company_name: str = Field(max_length=255)
    legal_name: Optional[str] = Field(default=None, max_length=255)
    siret: Optional[str] = Field(default=None, max_length=14)
    tva_number: Optional[str] = Field(default=None, max_length=20)

    contact_first_name: Optional[str] = Field(default=None, max_length=100)
    contact_last_name: Optional[str] = Field(default=None, max_length=100)
    contact_email: Optional[str] = Field(default=None, max_length=255)
    contact_phone: Optional[str] = Field(default=None, max_length=20)
    contact_position: Optional[str] = Field(default=None, max_length=100)

    address_line1: Optional[str] = Field(default=None, max_length=255)
    address_line2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    country: str = Field(default="FR", max_length=2)

    payment_terms: Optional[int] = Field(default=None)
    tva_rate: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    notes: Optional[str] = Field(default=None)
    pipeline_stage: PipelineStage = Field(default=PipelineStage.PROSPECT)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        if self.company_name:
            return self.company_name
        parts = [p for p in (self.contact_first_name, self.contact_last_name) if p]
        return " ".join(parts) if parts else "Client inconnu"

    @property
    def full_address(self) -> str:
        city_line = " ".join(p for p in (self.postal_code, self.city) if p)
        return "\n".join(p for p in (self.address_line1, self.address_line2, city_line) if p)
