"""
Line and document totals for quotes and invoices.

All amounts are Decimal, rounded half-up to the cent. A document discount is
a percentage applied to the HT subtotal; the TVA is reduced by the same
percentage so that TTC = (HT - discount) + discounted TVA.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple, Protocol

from models.enums import TaxStatus

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


class LineLike(Protocol):
    quantity: Decimal
    unit_price_ht: Decimal
    tva_rate: Decimal
    is_section: bool


class LineTotals(NamedTuple):
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal


class DocumentTotals(NamedTuple):
    subtotal_ht: Decimal
    discount_amount: Decimal
    total_tva: Decimal
    total_ttc: Decimal


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    """Round to the cent, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_line_totals(quantity, unit_price_ht, tva_rate, is_section: bool = False) -> LineTotals:
    if is_section:
        return LineTotals(ZERO, ZERO, ZERO)
    total_ht = money(to_decimal(quantity) * to_decimal(unit_price_ht))
    total_tva = money(total_ht * to_decimal(tva_rate) / HUNDRED)
    return LineTotals(total_ht, total_tva, total_ht + total_tva)


def apply_line_totals(line: LineLike) -> LineLike:
    """Store computed totals on a quote or invoice line model."""
    totals = compute_line_totals(line.quantity, line.unit_price_ht, line.tva_rate, line.is_section)
    line.total_ht, line.total_tva, line.total_ttc = totals
    return line


def compute_document_totals(lines: Iterable[LineLike], discount_percent=0) -> DocumentTotals:
    """Sum billable lines (sections and optional lines excluded) and apply the discount."""
    subtotal_ht = Decimal("0")
    tva = Decimal("0")
    for line in lines:
        if line.is_section or getattr(line, "is_optional", False):
            continue
        ht = to_decimal(line.quantity) * to_decimal(line.unit_price_ht)
        subtotal_ht += ht
        tva += ht * to_decimal(line.tva_rate) / HUNDRED

    pct = to_decimal(discount_percent) / HUNDRED
    discount_amount = money(subtotal_ht * pct)
    subtotal_ht = money(subtotal_ht)
    total_tva = money(tva * (1 - pct))
    total_ttc = subtotal_ht - discount_amount + total_tva
    return DocumentTotals(subtotal_ht, discount_amount, total_tva, total_ttc)


def deposit_amount(total_ttc, deposit_percent) -> Decimal:
    return money(to_decimal(total_ttc) * to_decimal(deposit_percent) / HUNDRED)


def scale_quantity(quantity, factor) -> Decimal:
    """Quantity billed on a partial (deposit or final) invoice."""
    return (to_decimal(quantity) * to_decimal(factor)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def apply_document_totals(document) -> None:
    """Store subtotal, discount, TVA and TTC on a quote or invoice from its lines."""
    totals = compute_document_totals(document.lines, document.discount_percent)
    document.subtotal_ht = totals.subtotal_ht
    document.discount_amount = totals.discount_amount
    document.total_tva = totals.total_tva
    document.total_ttc = totals.total_ttc


def effective_tva_rate(tax_status: TaxStatus, rate) -> Decimal:
    """Organizations under the franchise en base bill no TVA (art. 293 B du CGI)."""
    if tax_status == TaxStatus.FRANCHISE:
        return ZERO
    return to_decimal(rate)
