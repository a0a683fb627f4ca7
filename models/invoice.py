from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import date, datetime
from decimal import Decimal

from models.base import new_id, utcnow
from models.client import Client
from models.enums import InvoiceStatus, InvoiceType

if TYPE_CHECKING:
    from models.payment import Payment


class Invoice(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    organization_id: str = Field(foreign_key="organization.id", index=True)
    client_id: str = Field(foreign_key="client.id", index=True)
    project_id: Optional[str] = Field(default=None, foreign_key="project.id")
    quote_id: Optional[str] = Field(default=None, foreign_key="quote.id", index=True)
    contract_id: Optional[str] = Field(default=None, foreign_key="contract.id", index=True)
    parent_invoice_id: Optional[str] = Field(default=None, foreign_key="invoice.id", index=True)

    invoice_number: str = Field(index=True, max_length=50)
    reference: Optional[str] = Field(default=None, max_length=255)
    type: InvoiceType = Field(default=InvoiceType.STANDARD)
    status: InvoiceStatus = Field(default=InvoiceStatus.DRAFT, index=True)

    issue_date: date
    due_date: date
    paid_date: Optional[date] = Field(default=None)
    sent_at: Optional[datetime] = Field(default=None)

    # Amounts
    discount_percent: Decimal = Field(default=Decimal("0.00"), max_digits=5, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    subtotal_ht: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    amount_paid: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    amount_due: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)

    introduction: Optional[str] = Field(default=None)
    footer_notes: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    # Dunning
    reminder_count: int = Field(default=0)
    last_reminder_at: Optional[datetime] = Field(default=None)

    created_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    client: Optional[Client] = Relationship()
    lines: list["InvoiceLine"] = Relationship(
        back_populates="invoice",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "InvoiceLine.sort_order",
        },
    )
    payments: list["Payment"] = Relationship(
        back_populates="invoice",
        sa_relationship_kwargs={"order_by": "Payment.payment_date"},
    )

    @property
    def net_ht(self) -> Decimal:
        return self.subtotal_ht - self.discount_amount


class InvoiceLine(SQLModel, table=True):
    __tablename__ = "invoice_line"

    id: str = Field(default_factory=new_id, primary_key=True)
    invoice_id: str = Field(foreign_key="invoice.id", index=True)
    sort_order: int = Field(default=0)
    is_section: bool = Field(default=False)
    description: str
    details: Optional[str] = Field(default=None)
    quantity: Decimal = Field(default=Decimal("1"), max_digits=12, decimal_places=4)
    unit: str = Field(default="unit", max_length=20)
    unit_price_ht: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    tva_rate: Decimal = Field(default=Decimal("20.00"), max_digits=5, decimal_places=2)
    total_ht: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)

    invoice: Optional[Invoice] = Relationship(back_populates="lines")
