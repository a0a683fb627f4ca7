from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.enums import TaxStatus, UserRole

if TYPE_CHECKING:
    from models.user import User


class Organization(SQLModel, table=True):
    """Issuing company. Every business record is scoped to one organization."""
    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(max_length=255)
    legal_name: Optional[str] = Field(default=None, max_length=255)
    siren: Optional[str] = Field(default=None, max_length=9)
    siret: Optional[str] = Field(default=None, max_length=14)
    tva_number: Optional[str] = Field(default=None, max_length=20)

    # Address
    address_line1: Optional[str] = Field(default=None, max_length=255)
    address_line2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    country: str = Field(default="FR", max_length=2)

    # Contact
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    website: Optional[str] = Field(default=None, max_length=255)
    logo_url: Optional[str] = Field(default=None, max_length=500)

    # Defaults
    default_payment_terms: int = Field(default=30)
    default_tva_rate: Decimal = Field(default=Decimal("20.00"), max_digits=5, decimal_places=2)
    quote_validity_days: int = Field(default=30)
    tax_status: TaxStatus = Field(default=TaxStatus.ASSUJETTI)

    # Bank details
    account_holder: Optional[str] = Field(default=None, max_length=255)
    bank_name: Optional[str] = Field(default=None, max_length=255)
    iban: Optional[str] = Field(default=None, max_length=34)
    bic: Optional[str] = Field(default=None, max_length=11)

    # Legal texts printed on documents
    legal_mentions: Optional[str] = Field(default=None)
    quote_terms: Optional[str] = Field(default=None)
    pdf_footer_text: Optional[str] = Field(default=None)
    vat_exemption_text: str = Field(default="TVA non applicable, art. 293 B du CGI")
    late_payment_penalties: str = Field(default="3 fois le taux d'intérêt légal")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    memberships: list["UserOrganization"] = Relationship(
        back_populates="organization",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    @property
    def is_vat_applicable(self) -> bool:
        return self.tax_status != TaxStatus.FRANCHISE

    @property
    def full_address(self) -> str:
        city_line = " ".join(p for p in (self.postal_code, self.city) if p)
        return "\n".join(p for p in (self.address_line1, self.address_line2, city_line) if p)


class UserOrganization(SQLModel, table=True):
    __tablename__ = "user_organization"

    user_id: str = Field(foreign_key="user.id", primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", primary_key=True)
    role: UserRole = Field(default=UserRole.OWNER)
    is_primary: bool = Field(default=False)
    joined_at: datetime = Field(default_factory=utcnow)

    user: Optional["User"] = Relationship(back_populates="memberships")
    organization: Optional[Organization] = Relationship(back_populates="memberships")
