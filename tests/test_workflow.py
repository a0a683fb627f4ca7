"""Tests for the status transition tables."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from core.exceptions import BusinessRuleError, InvalidTransitionError
from models.enums import InvoiceStatus, InvoiceType, QuoteStatus
from services.workflow import (
    allowed_transitions,
    assert_transition,
    can_transition,
    check_final_invoice_allowed,
    quote_status_filter,
)


def test_quote_transitions():
    assert can_transition("quote", "draft", "sent")
    assert can_transition("quote", QuoteStatus.EXPIRED, QuoteStatus.SENT)
    assert not can_transition("quote", "draft", "accepted")
    assert not can_transition("quote", "rejected", "sent")


def test_terminal_statuses():
    assert allowed_transitions("invoice", "cancelled") == []
    assert allowed_transitions("contract", "renewed") == []
    assert allowed_transitions("quote", "fully_invoiced") == []


def test_allowed_transitions_are_sorted():
    assert allowed_transitions("contract", "draft") == ["active", "terminated"]
    assert allowed_transitions("project", "completed") == ["in_progress"]


def test_assert_transition_message():
    with pytest.raises(InvalidTransitionError) as exc_info:
        assert_transition("invoice", InvoiceStatus.PAID, InvoiceStatus.DRAFT)

    assert str(exc_info.value) == "Transition invoice 'paid' -> 'draft' non autorisée"
    assert isinstance(exc_info.value, ValueError)


def test_quote_status_filter():
    assert quote_status_filter("converted") == [QuoteStatus.PARTIALLY_INVOICED, QuoteStatus.FULLY_INVOICED]
    assert quote_status_filter("sent") == [QuoteStatus.SENT]
    with pytest.raises(ValueError):
        quote_status_filter("archived")


def deposit(**overrides):
    values = dict(
        type=InvoiceType.DEPOSIT,
        quote_id="quote-1",
        status=InvoiceStatus.PAID,
        total_ttc=Decimal("396.00"),
        amount_paid=Decimal("396.00"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_final_invoice_allowed_after_paid_deposit():
    check_final_invoice_allowed(deposit(), existing_final_count=0)


@pytest.mark.parametrize("overrides, count, message", [
    ({"type": InvoiceType.STANDARD}, 0, "pas un acompte"),
    ({"quote_id": None}, 0, "devis d'origine"),
    ({"status": InvoiceStatus.SENT}, 0, "doit être réglé"),
    ({"status": InvoiceStatus.PARTIALLY_PAID, "amount_paid": Decimal("1.00")}, 0, "doit être réglé"),
    ({}, 1, "existe déjà"),
])
def test_final_invoice_refused(overrides, count, message):
    with pytest.raises(BusinessRuleError, match=message):
        check_final_invoice_allowed(deposit(**overrides), existing_final_count=count)
