from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from models.enums import TaxStatus, UserRole
from schemas.common import reject_null


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    legal_name: Optional[str] = None
    siren: Optional[str] = Field(None, pattern=r"^(\d{9})?$")
    siret: Optional[str] = Field(None, pattern=r"^(\d{14})?$")
    tva_number: Optional[str] = None
    tax_status: TaxStatus = TaxStatus.ASSUJETTI

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Le nom de l'entreprise est requis")
        return value.strip()


class OrganizationUpdate(BaseModel):
    """Organization settings; only the fields sent are changed."""

    # Identity
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    legal_name: Optional[str] = None
    siren: Optional[str] = Field(None, pattern=r"^(\d{9})?$")
    siret: Optional[str] = Field(None, pattern=r"^(\d{14})?$")
    tva_number: Optional[str] = None

    # Address & contact
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None

    # Defaults
    default_payment_terms: Optional[int] = Field(None, gt=0)
    default_tva_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    quote_validity_days: Optional[int] = Field(None, gt=0)
    tax_status: Optional[TaxStatus] = None

    # Bank
    account_holder: Optional[str] = None
    bank_name: Optional[str] = None
    iban: Optional[str] = Field(None, max_length=34)
    bic: Optional[str] = Field(None, max_length=11)

    # Legal text customization
    legal_mentions: Optional[str] = None
    quote_terms: Optional[str] = None
    pdf_footer_text: Optional[str] = None
    vat_exemption_text: Optional[str] = None
    late_payment_penalties: Optional[str] = None

    check_not_null = reject_null(
        "name", "country", "default_payment_terms", "default_tva_rate", "quote_validity_days",
        "tax_status", "vat_exemption_text", "late_payment_penalties",
    )


class OrganizationResponse(BaseModel):
    id: str
    name: str
    legal_name: Optional[str]
    siren: Optional[str]
    siret: Optional[str]
    tva_number: Optional[str]
    address_line1: Optional[str]
    address_line2: Optional[str]
    city: Optional[str]
    postal_code: Optional[str]
    country: str
    phone: Optional[str]
    email: Optional[str]
    website: Optional[str]
    logo_url: Optional[str]
    default_payment_terms: int
    default_tva_rate: Decimal
    quote_validity_days: int
    tax_status: TaxStatus
    account_holder: Optional[str]
    bank_name: Optional[str]
    iban: Optional[str]
    bic: Optional[str]
    legal_mentions: Optional[str]
    quote_terms: Optional[str]
    pdf_footer_text: Optional[str]
    vat_exemption_text: str
    late_payment_penalties: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MembershipResponse(BaseModel):
    """An organization as seen by one of its members."""
    id: str
    name: str
    role: UserRole
    is_primary: bool
    joined_at: datetime
    clients_count: int = 0
    invoices_count: int = 0
