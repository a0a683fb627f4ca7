"""CSV exports (semicolon separated, UTF-8 with BOM so spreadsheet tools read accents)."""

import csv
import io
from datetime import date

from sqlmodel import Session, select

from models.client import Client
from models.enums import PaymentStatus
from models.invoice import Invoice
from models.payment import Payment
from models.quote import Quote
from services.workflow import INVOICE_STATUS_LABELS, INVOICE_TYPE_LABELS, QUOTE_STATUS_LABELS

BOM = "\ufeff"

PAYMENT_METHOD_LABELS = {
    "bank_transfer": "Virement",
    "check": "Chèque",
    "card": "Carte bancaire",
    "cash": "Espèces",
    "paypal": "PayPal",
    "stripe": "Stripe",
    "other": "Autre",
}


def _fmt_date(value) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def _fmt_amount(value) -> str:
    # French spreadsheets expect a decimal comma
    return f"{value:.2f}".replace(".", ",") if value is not None else ""


def to_csv(headers: list[str], rows) -> str:
    output = io.StringIO()
    writer = csv.writer(output, delimiter=";", quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return BOM + output.getvalue()


def _client_names(db: Session, organization_id: str) -> dict[str, str]:
    clients = db.exec(select(Client).where(Client.organization_id == organization_id)).all()
    return {client.id: client.display_name for client in clients}


def export_clients(db: Session, organization_id: str) -> str:
    clients = db.exec(
        select(Client).where(Client.organization_id == organization_id).order_by(Client.company_name)
    ).all()
    headers = ["Société", "Raison sociale", "SIRET", "N° TVA", "Contact", "Email", "Téléphone",
               "Adresse", "Code postal", "Ville", "Pays", "Délai de paiement", "Étape", "Actif"]
    rows = [
        [
            c.company_name,
            c.legal_name or "",
            c.siret or "",
            c.tva_number or "",
            " ".join(p for p in (c.contact_first_name, c.contact_last_name) if p),
            c.contact_email or "",
            c.contact_phone or "",
            " ".join(p for p in (c.address_line1, c.address_line2) if p),
            c.postal_code or "",
            c.city or "",
            c.country,
            c.payment_terms or "",
            c.pipeline_stage.value,
            "Oui" if c.is_active else "Non",
        ]
        for c in clients
    ]
    return to_csv(headers, rows)


def export_invoices(db: Session, organization_id: str) -> str:
    names = _client_names(db, organization_id)
    invoices = db.exec(
        select(Invoice).where(Invoice.organization_id == organization_id).order_by(Invoice.issue_date)
    ).all()
    headers = ["Numéro", "Type", "Statut", "Client", "Date d'émission", "Échéance", "Date de paiement",
               "Total HT", "Remise", "TVA", "Total TTC", "Payé", "Reste dû"]
    rows = [
        [
            i.invoice_number,
            INVOICE_TYPE_LABELS[i.type],
            INVOICE_STATUS_LABELS[i.status],
            names.get(i.client_id, ""),
            _fmt_date(i.issue_date),
            _fmt_date(i.due_date),
            _fmt_date(i.paid_date),
            _fmt_amount(i.subtotal_ht),
            _fmt_amount(i.discount_amount),
            _fmt_amount(i.total_tva),
            _fmt_amount(i.total_ttc),
            _fmt_amount(i.amount_paid),
            _fmt_amount(i.amount_due),
        ]
        for i in invoices
    ]
    return to_csv(headers, rows)


def export_quotes(db: Session, organization_id: str) -> str:
    names = _client_names(db, organization_id)
    quotes = db.exec(
        select(Quote).where(Quote.organization_id == organization_id).order_by(Quote.issue_date)
    ).all()
    headers = ["Numéro", "Référence", "Statut", "Client", "Date d'émission", "Validité",
               "Total HT", "Remise", "TVA", "Total TTC", "Acompte (%)"]
    rows = [
        [
            q.quote_number,
            q.reference or "",
            QUOTE_STATUS_LABELS[q.status],
            names.get(q.client_id, ""),
            _fmt_date(q.issue_date),
            _fmt_date(q.validity_date),
            _fmt_amount(q.subtotal_ht),
            _fmt_amount(q.discount_amount),
            _fmt_amount(q.total_tva),
            _fmt_amount(q.total_ttc),
            _fmt_amount(q.deposit_percent),
        ]
        for q in quotes
    ]
    return to_csv(headers, rows)


def export_payments(db: Session, organization_id: str) -> str:
    names = _client_names(db, organization_id)
    payments = db.exec(
        select(Payment).where(Payment.organization_id == organization_id).order_by(Payment.payment_date)
    ).all()
    headers = ["Date", "Facture", "Client", "Montant", "Mode de paiement", "Statut", "Référence", "Notes"]
    rows = [
        [
            _fmt_date(p.payment_date),
            p.invoice.invoice_number,
            names.get(p.invoice.client_id, ""),
            _fmt_amount(p.amount),
            PAYMENT_METHOD_LABELS[p.method.value],
            p.status.value,
            p.reference or "",
            p.notes or "",
        ]
        for p in payments
    ]
    return to_csv(headers, rows)


def export_revenue(db: Session, organization_id: str) -> str:
    """Livre des recettes: every payment received, in chronological order."""
    names = _client_names(db, organization_id)
    payments = db.exec(
        select(Payment)
        .where(Payment.organization_id == organization_id, Payment.status == PaymentStatus.RECEIVED)
        .order_by(Payment.payment_date)
    ).all()
    headers = ["Date Encaissement", "N° Facture", "Client", "Montant", "Mode de Paiement"]
    rows = [
        [
            _fmt_date(p.payment_date),
            p.invoice.invoice_number,
            names.get(p.invoice.client_id, "Inconnu"),
            _fmt_amount(p.amount),
            PAYMENT_METHOD_LABELS[p.method.value],
        ]
        for p in payments
    ]
    return to_csv(headers, rows)


EXPORTERS = {
    "clients": export_clients,
    "invoices": export_invoices,
    "quotes": export_quotes,
    "payments": export_payments,
}


def export_filename(entity: str, on: date | None = None) -> str:
    on = on or date.today()
    return f"{entity}_{on.strftime('%Y%m%d')}.csv"
