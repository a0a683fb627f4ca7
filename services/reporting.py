"""Read-only aggregates: dashboard, treasury, calendar, notifications and activity feed."""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal

from sqlmodel import Session, select, func

from models.client import Client
from models.contract import Contract
from models.enums import ContractStatus, InvoiceStatus, PaymentStatus, QuoteStatus, TaxStatus, ObligationStatus
from models.invoice import Invoice
from models.organization import Organization
from models.payment import Payment
from models.quote import Quote
from schemas.reporting import (
    ActivityItem,
    CalendarEvent,
    ClientRevenue,
    ClientStats,
    ContractStats,
    DashboardMetrics,
    InvoiceStats,
    MonthlyRevenue,
    Notification,
    QuoteStats,
    RevenueStats,
    ThresholdStatus,
    TreasuryForecast,
    TreasuryResponse,
    UnpaidInvoice,
)
from services.calculations import ZERO, money
from services.contracts import monthly_recurring_revenue, period_amount
from services.obligations import obligations_for_year
from services.workflow import PAYABLE_INVOICE_STATUSES

# Micro-entreprise franchise thresholds for services
FRANCHISE_BASE_THRESHOLD = Decimal("37500")
FRANCHISE_MAX_THRESHOLD = Decimal("41250")

URGENCY_RANK = {"high": 0, "medium": 1, "low": 2}
MAX_NOTIFICATIONS = 20

EVENT_COLORS = {
    "invoice": "#3b82f6",
    "quote": "#8b5cf6",
    "payment": "#22c55e",
    "contract": "#f59e0b",
    "fiscal": "#ef4444",
}


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    next_start = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, next_start - timedelta(days=1)


def last_months(today: date, count: int = 12) -> list[str]:
    """Keys of the ``count`` months ending with the month of ``today``, oldest first."""
    keys = []
    year, month = today.year, today.month
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def _received_payments(db: Session, organization_id: str, start: date | None = None, end: date | None = None):
    statement = select(Payment).where(
        Payment.organization_id == organization_id,
        Payment.status == PaymentStatus.RECEIVED,
    )
    if start:
        statement = statement.where(Payment.payment_date >= start)
    if end:
        statement = statement.where(Payment.payment_date <= end)
    return db.exec(statement).all()


def _sum(amounts) -> Decimal:
    return money(sum((Decimal(a) for a in amounts), ZERO))


def _unpaid_invoices(db: Session, organization_id: str) -> list[Invoice]:
    return list(db.exec(
        select(Invoice).where(
            Invoice.organization_id == organization_id,
            Invoice.status.in_(PAYABLE_INVOICE_STATUSES),
        )
    ).all())


def _is_late(invoice: Invoice, today: date) -> bool:
    return invoice.status == InvoiceStatus.OVERDUE or invoice.due_date < today


def monthly_revenue_series(db: Session, organization_id: str, today: date, count: int = 12) -> list[MonthlyRevenue]:
    """Received payments per month over the last ``count`` months, empty months included."""
    keys = last_months(today, count)
    start = date(int(keys[0][:4]), int(keys[0][5:]), 1)
    totals = defaultdict(lambda: ZERO)
    for payment in _received_payments(db, organization_id, start, today):
        totals[month_key(payment.payment_date)] += payment.amount
    return [MonthlyRevenue(month=key, total=money(totals[key])) for key in keys]


def threshold_status(organization: Organization, revenue: Decimal) -> ThresholdStatus:
    status = "ok"
    message = "En dessous du seuil de franchise (37 500 €)."
    if organization.tax_status == TaxStatus.ASSUJETTI:
        status = "assujetti"
        message = "Vous êtes assujetti à la TVA."
    elif revenue > FRANCHISE_MAX_THRESHOLD:
        status = "exceeded"
        message = "Seuil majoré (41 250 €) dépassé ! Passage à la TVA obligatoire."
    elif revenue > FRANCHISE_BASE_THRESHOLD:
        status = "warning"
        message = "Seuil de base (37 500 €) dépassé. Attention au seuil majoré."
    return ThresholdStatus(
        revenue=revenue,
        base_threshold=FRANCHISE_BASE_THRESHOLD,
        max_threshold=FRANCHISE_MAX_THRESHOLD,
        status=status,
        message=message,
    )


def dashboard_metrics(db: Session, organization: Organization, today: date | None = None) -> DashboardMetrics:
    today = today or date.today()
    org_id = organization.id

    month_start, month_end = month_bounds(today.year, today.month)
    previous = month_start - timedelta(days=1)
    last_month_start, last_month_end = month_bounds(previous.year, previous.month)
    year_start = date(today.year, 1, 1)

    this_year = _sum(p.amount for p in _received_payments(db, org_id, year_start, today))
    revenue = RevenueStats(
        this_month=_sum(p.amount for p in _received_payments(db, org_id, month_start, month_end)),
        last_month=_sum(p.amount for p in _received_payments(db, org_id, last_month_start, last_month_end)),
        this_year=this_year,
    )

    total_invoices = db.exec(select(func.count(Invoice.id)).where(Invoice.organization_id == org_id)).one()
    unpaid = _unpaid_invoices(db, org_id)
    invoices = InvoiceStats(
        total=total_invoices or 0,
        unpaid=len(unpaid),
        overdue=sum(1 for invoice in unpaid if _is_late(invoice, today)),
        total_due=_sum(invoice.amount_due for invoice in unpaid),
    )

    quotes = db.exec(select(Quote).where(Quote.organization_id == org_id)).all()
    won = {QuoteStatus.ACCEPTED, QuoteStatus.PARTIALLY_INVOICED, QuoteStatus.FULLY_INVOICED}
    decided = [q for q in quotes if q.status != QuoteStatus.DRAFT]
    quote_stats = QuoteStats(
        total=len(quotes),
        pending=sum(1 for q in quotes if q.status in (QuoteStatus.SENT, QuoteStatus.VIEWED)),
        accepted_this_month=sum(
            1 for q in quotes if q.accepted_date and month_start <= q.accepted_date <= month_end
        ),
        conversion_rate=round(100 * sum(1 for q in decided if q.status in won) / len(decided), 1) if decided else 0.0,
    )

    contract_counts = dict(db.exec(
        select(Contract.status, func.count(Contract.id))
        .where(Contract.organization_id == org_id)
        .group_by(Contract.status)
    ).all())
    contracts = ContractStats(
        active=contract_counts.get(ContractStatus.ACTIVE, 0),
        renewal_pending=contract_counts.get(ContractStatus.RENEWAL_PENDING, 0),
        monthly_recurring=monthly_recurring_revenue(db, org_id),
    )

    clients = db.exec(select(Client).where(Client.organization_id == org_id, Client.is_active == True)).all()  # noqa: E712
    client_stats = ClientStats(
        total=len(clients),
        new_this_month=sum(1 for c in clients if c.created_at.date() >= month_start),
    )

    recent_invoices = db.exec(
        select(Invoice).where(Invoice.organization_id == org_id).order_by(Invoice.created_at.desc()).limit(5)
    ).all()
    recent_payments = db.exec(
        select(Payment)
        .where(Payment.organization_id == org_id, Payment.status == PaymentStatus.RECEIVED)
        .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
        .limit(5)
    ).all()

    return DashboardMetrics(
        revenue=revenue,
        invoices=invoices,
        quotes=quote_stats,
        contracts=contracts,
        clients=client_stats,
        recent_invoices=recent_invoices,
        recent_payments=recent_payments,
        monthly_revenue=monthly_revenue_series(db, org_id, today),
        threshold_status=threshold_status(organization, this_year),
    )


def treasury(db: Session, organization_id: str, today: date | None = None) -> TreasuryResponse:
    today = today or date.today()
    month_start, month_end = month_bounds(today.year, today.month)

    unpaid = _unpaid_invoices(db, organization_id)
    clients = {c.id: c for c in db.exec(select(Client).where(Client.organization_id == organization_id)).all()}

    def client_name(client_id: str) -> str:
        client = clients.get(client_id)
        return client.display_name if client else "Client inconnu"

    by_client = defaultdict(lambda: ZERO)
    for payment in _received_payments(db, organization_id):
        by_client[payment.invoice.client_id] += payment.amount
    top_clients = [
        ClientRevenue(client_id=client_id, client_name=client_name(client_id), total=money(total))
        for client_id, total in sorted(by_client.items(), key=lambda item: item[1], reverse=True)[:8]
    ]

    oldest = sorted(unpaid, key=lambda invoice: invoice.due_date)[:10]
    oldest_unpaid = [
        UnpaidInvoice(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            client_name=client_name(invoice.client_id),
            due_date=invoice.due_date,
            amount_due=invoice.amount_due,
            days_overdue=max((today - invoice.due_date).days, 0),
        )
        for invoice in oldest
    ]

    horizon = today + timedelta(days=30)
    invoices_due = _sum(i.amount_due for i in unpaid if i.due_date <= horizon and not _is_late(i, today))
    billable = db.exec(
        select(Contract).where(
            Contract.organization_id == organization_id,
            Contract.status == ContractStatus.ACTIVE,
            Contract.next_billing_date != None,  # noqa: E711
            Contract.next_billing_date <= horizon,
        )
    ).all()
    contract_billing = _sum(period_amount(c.annual_amount_ht, c.billing_frequency) for c in billable)

    return TreasuryResponse(
        received_this_month=_sum(p.amount for p in _received_payments(db, organization_id, month_start, month_end)),
        pending=_sum(i.amount_due for i in unpaid),
        overdue=_sum(i.amount_due for i in unpaid if _is_late(i, today)),
        monthly_recurring=monthly_recurring_revenue(db, organization_id),
        monthly_revenue=monthly_revenue_series(db, organization_id, today),
        top_clients=top_clients,
        oldest_unpaid=oldest_unpaid,
        forecast_30_days=TreasuryForecast(
            invoices_due=invoices_due,
            contract_billing=contract_billing,
            total=money(invoices_due + contract_billing),
        ),
    )


def parse_month(value: str) -> tuple[int, int]:
    """``YYYY-MM`` to (year, month); ValueError when malformed."""
    try:
        year_part, month_part = value.split("-")
        year, month = int(year_part), int(month_part)
    except ValueError:
        raise ValueError(f"Mois invalide '{value}', format attendu AAAA-MM")
    if not 1 <= month <= 12:
        raise ValueError(f"Mois invalide '{value}', format attendu AAAA-MM")
    return year, month


def calendar_events(db: Session, organization_id: str, year: int, month: int) -> list[CalendarEvent]:
    start, end = month_bounds(year, month)
    events = []

    invoices = db.exec(
        select(Invoice).where(
            Invoice.organization_id == organization_id,
            Invoice.status != InvoiceStatus.CANCELLED,
            Invoice.due_date >= start,
            Invoice.due_date <= end,
        )
    ).all()
    for invoice in invoices:
        events.append(CalendarEvent(
            type="invoice_due", date=invoice.due_date, title=f"Échéance {invoice.invoice_number}",
            amount=invoice.amount_due, status=invoice.status.value, color=EVENT_COLORS["invoice"],
            entity_id=invoice.id,
        ))

    quotes = db.exec(
        select(Quote).where(
            Quote.organization_id == organization_id,
            Quote.status != QuoteStatus.REJECTED,
            Quote.validity_date >= start,
            Quote.validity_date <= end,
        )
    ).all()
    for quote in quotes:
        events.append(CalendarEvent(
            type="quote_expiry", date=quote.validity_date, title=f"Fin de validité {quote.quote_number}",
            amount=quote.total_ttc, status=quote.status.value, color=EVENT_COLORS["quote"], entity_id=quote.id,
        ))

    for payment in _received_payments(db, organization_id, start, end):
        events.append(CalendarEvent(
            type="payment", date=payment.payment_date, title=f"Paiement {payment.invoice.invoice_number}",
            amount=payment.amount, status=payment.status.value, color=EVENT_COLORS["payment"],
            entity_id=payment.id,
        ))

    contracts = db.exec(
        select(Contract).where(
            Contract.organization_id == organization_id,
            Contract.end_date >= start,
            Contract.end_date <= end,
        )
    ).all()
    for contract in contracts:
        events.append(CalendarEvent(
            type="contract_end", date=contract.end_date, title=f"Fin du contrat {contract.name}",
            amount=contract.annual_amount_ht, status=contract.status.value, color=EVENT_COLORS["contract"],
            entity_id=contract.id,
        ))

    for obligation in obligations_for_year(db, organization_id, year).obligations:
        if start <= obligation.due_date <= end:
            events.append(CalendarEvent(
                type="fiscal", date=obligation.due_date, title=obligation.label, amount=obligation.amount,
                status=obligation.status.value, color=EVENT_COLORS["fiscal"], entity_id=obligation.id,
            ))

    return sorted(events, key=lambda event: (event.date, event.type))


def notifications(db: Session, organization_id: str, today: date | None = None) -> list[Notification]:
    """Things needing attention, most urgent first."""
    today = today or date.today()
    week = today + timedelta(days=7)
    items = []

    for invoice in _unpaid_invoices(db, organization_id):
        if invoice.due_date < today:
            days_late = (today - invoice.due_date).days
            urgency = "high" if days_late > 30 else "medium" if days_late > 7 else "low"
            items.append(Notification(
                type="invoice_overdue", urgency=urgency,
                title=f"Facture {invoice.invoice_number} en retard",
                message=f"{invoice.amount_due} € en retard de {days_late} jour(s)",
                date=invoice.due_date, entity_type="invoice", entity_id=invoice.id,
            ))
        elif invoice.due_date <= week:
            items.append(Notification(
                type="invoice_due_soon", urgency="low",
                title=f"Facture {invoice.invoice_number} bientôt échue",
                message=f"{invoice.amount_due} € attendus le {invoice.due_date.strftime('%d/%m/%Y')}",
                date=invoice.due_date, entity_type="invoice", entity_id=invoice.id,
            ))

    contracts = db.exec(
        select(Contract).where(
            Contract.organization_id == organization_id,
            Contract.status.in_([ContractStatus.ACTIVE, ContractStatus.RENEWAL_PENDING]),
        )
    ).all()
    for contract in contracts:
        if contract.end_date - timedelta(days=contract.renewal_notice_days) <= today <= contract.end_date:
            items.append(Notification(
                type="contract_renewal", urgency="medium",
                title=f"Renouvellement du contrat {contract.name}",
                message=f"Le contrat {contract.contract_number} se termine le {contract.end_date.strftime('%d/%m/%Y')}",
                date=contract.end_date, entity_type="contract", entity_id=contract.id,
            ))

    quotes = db.exec(
        select(Quote).where(
            Quote.organization_id == organization_id,
            Quote.status.in_([QuoteStatus.SENT, QuoteStatus.VIEWED]),
            Quote.validity_date >= today,
            Quote.validity_date <= week,
        )
    ).all()
    for quote in quotes:
        items.append(Notification(
            type="quote_expiring", urgency="low",
            title=f"Devis {quote.quote_number} bientôt expiré",
            message=f"Valable jusqu'au {quote.validity_date.strftime('%d/%m/%Y')}",
            date=quote.validity_date, entity_type="quote", entity_id=quote.id,
        ))

    horizon = today + timedelta(days=30)
    obligations = []
    for year in {today.year, horizon.year}:
        obligations.extend(obligations_for_year(db, organization_id, year, today).obligations)
    for obligation in obligations:
        if obligation.status == ObligationStatus.PAID or obligation.due_date > horizon:
            continue
        if obligation.status == ObligationStatus.OVERDUE:
            urgency = "high"
        elif obligation.due_date <= week:
            urgency = "medium"
        else:
            urgency = "low"
        items.append(Notification(
            type="fiscal_obligation", urgency=urgency, title=obligation.label,
            message=f"Échéance le {obligation.due_date.strftime('%d/%m/%Y')}",
            date=obligation.due_date, entity_type="fiscal_obligation", entity_id=obligation.obligation_key,
        ))

    items.sort(key=lambda n: (URGENCY_RANK[n.urgency], n.date))
    return items[:MAX_NOTIFICATIONS]


def activity_feed(db: Session, organization_id: str, limit: int = 20) -> list[ActivityItem]:
    """Latest documents, payments and clients merged, newest first."""
    items = []

    for invoice in db.exec(
        select(Invoice).where(Invoice.organization_id == organization_id)
        .order_by(Invoice.created_at.desc()).limit(limit)
    ).all():
        items.append(ActivityItem(
            type="invoice", entity_id=invoice.id, title=f"Facture {invoice.invoice_number}",
            amount=invoice.total_ttc, status=invoice.status.value, created_at=invoice.created_at,
        ))

    for payment in db.exec(
        select(Payment).where(Payment.organization_id == organization_id)
        .order_by(Payment.created_at.desc()).limit(limit)
    ).all():
        items.append(ActivityItem(
            type="payment", entity_id=payment.id, title=f"Paiement {payment.invoice.invoice_number}",
            amount=payment.amount, status=payment.status.value, created_at=payment.created_at,
        ))

    for quote in db.exec(
        select(Quote).where(Quote.organization_id == organization_id)
        .order_by(Quote.created_at.desc()).limit(limit)
    ).all():
        items.append(ActivityItem(
            type="quote", entity_id=quote.id, title=f"Devis {quote.quote_number}",
            amount=quote.total_ttc, status=quote.status.value, created_at=quote.created_at,
        ))

    for client in db.exec(
        select(Client).where(Client.organization_id == organization_id)
        .order_by(Client.created_at.desc()).limit(limit)
    ).all():
        items.append(ActivityItem(
            type="client", entity_id=client.id, title=f"Client {client.display_name}",
            created_at=client.created_at,
        ))

    for contract in db.exec(
        select(Contract).where(Contract.organization_id == organization_id)
        .order_by(Contract.created_at.desc()).limit(limit)
    ).all():
        items.append(ActivityItem(
            type="contract", entity_id=contract.id, title=f"Contrat {contract.name}",
            amount=contract.annual_amount_ht, status=contract.status.value, created_at=contract.created_at,
        ))

    items.sort(key=lambda item: _naive(item.created_at), reverse=True)
    return items[:limit]


def _naive(value):
    # SQLite hands back naive datetimes, in-memory objects are aware
    return value.replace(tzinfo=None) if value.tzinfo else value
