"""Response models for the dashboard, treasury, calendar and activity endpoints."""

from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal

from models.enums import AuditAction
from schemas.invoice import InvoiceSummary
from schemas.payment import PaymentResponse


class MonthlyRevenue(BaseModel):
    month: str  # YYYY-MM
    total: Decimal


class RevenueStats(BaseModel):
    this_month: Decimal
    last_month: Decimal
    this_year: Decimal


class InvoiceStats(BaseModel):
    total: int
    unpaid: int
    overdue: int
    total_due: Decimal


class QuoteStats(BaseModel):
    total: int
    pending: int
    accepted_this_month: int
    conversion_rate: float


class ContractStats(BaseModel):
    active: int
    renewal_pending: int
    monthly_recurring: Decimal


class ClientStats(BaseModel):
    total: int
    new_this_month: int


class ThresholdStatus(BaseModel):
    revenue: Decimal
    base_threshold: Decimal
    max_threshold: Decimal
    status: str  # "ok", "warning", "exceeded", "assujetti"
    message: str


class DashboardMetrics(BaseModel):
    revenue: RevenueStats
    invoices: InvoiceStats
    quotes: QuoteStats
    contracts: ContractStats
    clients: ClientStats
    recent_invoices: list[InvoiceSummary]
    recent_payments: list[PaymentResponse]
    monthly_revenue: list[MonthlyRevenue]
    threshold_status: ThresholdStatus


class ClientRevenue(BaseModel):
    client_id: str
    client_name: str
    total: Decimal


class UnpaidInvoice(BaseModel):
    id: str
    invoice_number: str
    client_name: str
    due_date: date
    amount_due: Decimal
    days_overdue: int


class TreasuryForecast(BaseModel):
    invoices_due: Decimal
    contract_billing: Decimal
    total: Decimal


class TreasuryResponse(BaseModel):
    received_this_month: Decimal
    pending: Decimal
    overdue: Decimal
    monthly_recurring: Decimal
    monthly_revenue: list[MonthlyRevenue]
    top_clients: list[ClientRevenue]
    oldest_unpaid: list[UnpaidInvoice]
    forecast_30_days: TreasuryForecast


class CalendarEvent(BaseModel):
    type: str
    date: date
    title: str
    amount: Decimal | None = None
    status: str | None = None
    color: str
    entity_id: str


class CalendarResponse(BaseModel):
    month: str
    events: list[CalendarEvent]


class Notification(BaseModel):
    type: str
    urgency: str  # "high", "medium", "low"
    title: str
    message: str
    date: date
    entity_type: str
    entity_id: str


class NotificationsResponse(BaseModel):
    notifications: list[Notification]
    total: int


class ActivityItem(BaseModel):
    type: str
    entity_id: str
    title: str
    amount: Decimal | None = None
    status: str | None = None
    created_at: datetime


class AuditLogResponse(BaseModel):
    id: str
    user_id: str | None
    action: AuditAction
    entity_type: str
    entity_id: str
    old_values: dict | None
    new_values: dict | None
    ip_address: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogResponse]
    total: int
