from sqlmodel import SQLModel, Field, Relationship
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.client import Client
from models.enums import QuoteStatus


class Quote(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)
    client_id: str = Field(foreign_key="client.id", index=True)
    project_id: Optional[str] = Field(default=None, foreign_key="project.id")

    quote_number: str = Field(index=True, max_length=50)
    reference: Optional[str] = Field(default=None, max_length=255)
    status: QuoteStatus = Field(default=QuoteStatus.DRAFT, index=True)

    issue_date: date
    validity_date: date
    accepted_date: Optional[date] = Field(default=None)
    sent_at: Optional[datetime] = Field(default=None)

    # Amounts
    discount_percent: Decimal = Field(default=Decimal("0.00"), max_digits=5, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    deposit_percent: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    subtotal_ht: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)

    introduction: Optional[str] = Field(default=None)
    terms: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    duplicated_from: Optional[str] = Field(default=None)

    # Sharing & electronic signature
    share_token: Optional[str] = Field(default=None, index=True, unique=True)
    share_token_expires_at: Optional[datetime] = Field(default=None)
    signed_at: Optional[datetime] = Field(default=None)
    signer_name: Optional[str] = Field(default=None, max_length=255)
    signer_ip: Optional[str] = Field(default=None, max_length=45)
    signature_data: Optional[str] = Field(default=None)

    created_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    client: Optional[Client] = Relationship()
    lines: list["QuoteLine"] = Relationship(
        back_populates="quote",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "QuoteLine.sort_order",
        },
    )

    @property
    def net_ht(self) -> Decimal:
        return self.subtotal_ht - self.discount_amount


class QuoteLine(SQLModel, table=True):
    __tablename__ = "quote_line"

    id: str = Field(default_factory=new_id, primary_key=True)
    quote_id: str = Field(foreign_key="quote.id", index=True)
    sort_order: int = Field(default=0)
    is_section: bool = Field(default=False)
    is_optional: bool = Field(default=False)
    description: str
    details: Optional[str] = Field(default=None)
    quantity: Decimal = Field(default=Decimal("1"), max_digits=12, decimal_places=4)
    unit: str = Field(default="unit", max_length=20)
    unit_price_ht: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    tva_rate: Decimal = Field(default=Decimal("20.00"), max_digits=5, decimal_places=2)
    total_ht: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)

    quote: Optional[Quote] = Relationship(back_populates="lines")
