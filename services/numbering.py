"""
Document numbering.

Quotes and invoices are numbered ``{PREFIX}-{YY}{MM}-{SEQ}`` with a three
digit sequence restarting every month, per organization and per prefix:

    DV-2601-001  devis de janvier 2026
    FA-2601-001  facture d'acompte de janvier 2026
    FS-2601-002  facture de solde de janvier 2026

Contracts are numbered ``CT-{YYYY}-{SEQ}`` with a yearly sequence.
"""

from datetime import date
from typing import NamedTuple

from sqlmodel import Session, select

from models.contract import Contract
from models.enums import InvoiceType
from models.invoice import Invoice
from models.quote import Quote

PREFIXES: dict[str, tuple[str, str]] = {
    "quote": ("DV", "Devis"),
    "invoice_standard": ("FC", "Facture"),
    "invoice_deposit": ("FA", "Facture d'Acompte"),
    "invoice_final": ("FS", "Facture de Solde"),
    "invoice_credit_note": ("AV", "Avoir"),
    "invoice_recurring": ("FR", "Facture Récurrente"),
}

FRENCH_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


class ParsedNumber(NamedTuple):
    prefix: str
    year: int
    month: int
    sequence: int
    type: str


def number_prefix(kind: str, on: date | None = None) -> str:
    if kind not in PREFIXES:
        raise ValueError(f"Type inconnu: {kind}")
    on = on or date.today()
    return f"{PREFIXES[kind][0]}-{on.strftime('%y%m')}"


def extract_sequence(number: str) -> int:
    parts = number.split("-")
    if len(parts) != 3:
        return 0
    try:
        return int(parts[2])
    except ValueError:
        return 0


def next_sequence(existing: list[str]) -> int:
    return max((extract_sequence(n) for n in existing), default=0) + 1


def generate_quote_number(db: Session, organization_id: str, on: date | None = None) -> str:
    prefix = number_prefix("quote", on)
    existing = db.exec(
        select(Quote.quote_number).where(
            Quote.organization_id == organization_id,
            Quote.quote_number.like(f"{prefix}-%"),
        )
    ).all()
    return f"{prefix}-{next_sequence(list(existing)):03d}"


def generate_invoice_number(
    db: Session,
    organization_id: str,
    invoice_type: InvoiceType = InvoiceType.STANDARD,
    on: date | None = None,
) -> str:
    prefix = number_prefix(f"invoice_{InvoiceType(invoice_type).value}", on)
    existing = db.exec(
        select(Invoice.invoice_number).where(
            Invoice.organization_id == organization_id,
            Invoice.invoice_number.like(f"{prefix}-%"),
        )
    ).all()
    return f"{prefix}-{next_sequence(list(existing)):03d}"


def generate_contract_number(db: Session, organization_id: str, on: date | None = None) -> str:
    year = (on or date.today()).year
    prefix = f"CT-{year}"
    existing = db.exec(
        select(Contract.contract_number).where(
            Contract.organization_id == organization_id,
            Contract.contract_number.like(f"{prefix}-%"),
        )
    ).all()
    return f"{prefix}-{next_sequence(list(existing)):03d}"


def parse_number(number: str) -> ParsedNumber | None:
    parts = number.split("-")
    if len(parts) != 3:
        return None
    prefix, year_month, seq = parts
    if len(year_month) != 4 or not year_month.isdigit() or not seq.isdigit():
        return None
    kind = next((k for k, (p, _) in PREFIXES.items() if p == prefix), "unknown")
    return ParsedNumber(
        prefix=prefix,
        year=2000 + int(year_month[:2]),
        month=int(year_month[2:]),
        sequence=int(seq),
        type=kind,
    )


def validate_number(number: str) -> bool:
    parsed = parse_number(number)
    if not parsed:
        return False
    return 2020 <= parsed.year <= 2050 and 1 <= parsed.month <= 12 and parsed.sequence >= 1


def describe_number(number: str) -> str:
    """Human label, e.g. ``Facture d'Acompte janvier 2026 - N°1``."""
    parsed = parse_number(number)
    if not parsed:
        return "Numéro invalide"
    if parsed.type not in PREFIXES or not 1 <= parsed.month <= 12:
        return "Type inconnu"
    label = PREFIXES[parsed.type][1]
    return f"{label} {FRENCH_MONTHS[parsed.month - 1]} {parsed.year} - N°{parsed.sequence}"
