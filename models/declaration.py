from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.enums import DeclarationStatus


class TvaDeclaration(SQLModel, table=True):
    """Quarterly TVA return of an organization."""
    __tablename__ = "tva_declaration"
    __table_args__ = (
        UniqueConstraint("organization_id", "year", "quarter", name="tva_decl_org_year_quarter"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)
    year: int
    quarter: int = Field(ge=1, le=4)
    period_start: date
    period_end: date
    payment_due_date: date

    ca_ht: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    tva_collected: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    tva_deductible: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    tva_to_pay: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)

    status: DeclarationStatus = Field(default=DeclarationStatus.PENDING)
    declared_at: Optional[datetime] = Field(default=None)
    paid_at: Optional[datetime] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
