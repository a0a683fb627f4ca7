"""Tests for the fiscal obligations calendar and business-day arithmetic."""

from datetime import date
from decimal import Decimal

import pytest

from models.enums import ObligationStatus, ObligationType, TvaRegime
from schemas.fiscal import CompanyConfig
from services.business_days import (
    adjust_to_business_day,
    is_business_day,
    next_business_day,
    nth_business_day_after,
    nth_business_day_of_month,
)
from services.fiscal_calendar import generate_multi_year_obligations, generate_obligations

# Obligations are computed as seen from the start of 2026
TODAY = date(2026, 1, 1)


@pytest.fixture
def config() -> CompanyConfig:
    return CompanyConfig(
        creation_date=date(2026, 1, 1),
        first_closing_date=date(2026, 12, 31),
        tva_by_fiscal_year={2026: Decimal("10000"), 2027: Decimal("12000")},
        cfe_estimated_amount=Decimal("450"),
    )


# ============ Business days ============

def test_public_holidays_and_weekends():
    assert not is_business_day(date(2026, 7, 14))   # Fête nationale
    assert not is_business_day(date(2026, 5, 1))    # Fête du travail
    assert not is_business_day(date(2026, 1, 3))    # Saturday
    assert is_business_day(date(2026, 1, 5))


def test_next_and_adjusted_business_day():
    assert adjust_to_business_day(date(2026, 7, 14)) == date(2026, 7, 15)
    assert adjust_to_business_day(date(2026, 7, 15)) == date(2026, 7, 15)
    # Friday -> Monday
    assert next_business_day(date(2026, 1, 9)) == date(2026, 1, 12)


def test_nth_business_day_of_month():
    # 1 May 2026 is a Friday and a holiday
    assert nth_business_day_of_month(2026, 5, 1) == date(2026, 5, 4)
    assert nth_business_day_of_month(2026, 5, 2) == date(2026, 5, 5)
    with pytest.raises(ValueError):
        nth_business_day_of_month(2026, 5, 0)
    with pytest.raises(ValueError):
        nth_business_day_of_month(2026, 5, 25)


def test_nth_business_day_after():
    assert nth_business_day_after(date(2026, 1, 9), 1) == date(2026, 1, 12)
    assert nth_business_day_after(date(2026, 1, 9), 3) == date(2026, 1, 14)


# ============ Obligations ============

def test_creation_year_has_no_obligation(config):
    """First fiscal year: no acompte, no filing and CFE exemption."""
    result = generate_obligations(2026, config, TODAY)

    assert result.obligations == []
    assert result.warnings == []


def test_second_year_obligations(config):
    result = generate_obligations(2027, config, TODAY)
    by_key = {o.obligation_key: o for o in result.obligations}

    assert set(by_key) == {
        "TVA_CA12_2027", "LIASSE_2027", "TVA_ACOMPTE_JUILLET_2027", "TVA_ACOMPTE_DECEMBRE_2027", "CFE_2027",
    }
    ca12 = by_key["TVA_CA12_2027"]
    assert ca12.type == ObligationType.TVA_CA12
    assert ca12.is_first_year is True
    assert ca12.fiscal_year == 2026
    # 1 May 2027 is a Saturday: 2nd business day is Tuesday 4 May
    assert ca12.due_date == date(2027, 5, 4)
    assert by_key["LIASSE_2027"].due_date == date(2027, 5, 4)

    assert by_key["TVA_ACOMPTE_JUILLET_2027"].amount == Decimal("5500.00")
    assert by_key["TVA_ACOMPTE_DECEMBRE_2027"].amount == Decimal("4000.00")
    assert by_key["TVA_ACOMPTE_JUILLET_2027"].due_date == date(2027, 7, 15)

    cfe = by_key["CFE_2027"]
    assert cfe.is_first_year is True
    assert cfe.amount == Decimal("450")
    assert cfe.due_date == date(2027, 12, 15)


def test_obligations_are_sorted_with_warning_dates(config):
    result = generate_obligations(2027, config, TODAY)

    due_dates = [o.due_date for o in result.obligations]
    assert due_dates == sorted(due_dates)
    for obligation in result.obligations:
        assert (obligation.due_date - obligation.warning_date).days == 30


def test_third_year_moves_acompte_to_business_day(config):
    result = generate_obligations(2028, config, TODAY)
    by_key = {o.obligation_key: o for o in result.obligations}

    assert len(result.obligations) == 5
    # 15 July 2028 is a Saturday
    assert by_key["TVA_ACOMPTE_JUILLET_2028"].due_date == date(2028, 7, 17)
    assert by_key["TVA_ACOMPTE_JUILLET_2028"].amount == Decimal("6600.00")
    assert by_key["TVA_CA12_2028"].is_first_year is False
    assert by_key["CFE_2028"].is_first_year is False


def test_missing_tva_base_leaves_amounts_empty(config):
    config.tva_by_fiscal_year = {}

    result = generate_obligations(2027, config, TODAY)

    acomptes = [o for o in result.obligations if o.type == ObligationType.TVA_ACOMPTE]
    assert all(o.amount is None for o in acomptes)
    assert len(result.warnings) == 1
    assert "2026" in result.warnings[0]


def test_past_obligations_are_overdue(config):
    result = generate_obligations(2027, config, today=date(2027, 6, 1))
    by_key = {o.obligation_key: o for o in result.obligations}

    assert by_key["TVA_CA12_2027"].status == ObligationStatus.OVERDUE
    assert by_key["CFE_2027"].status == ObligationStatus.PENDING


def test_reel_normal_is_not_generated(config):
    config.tva_regime = TvaRegime.REEL_NORMAL

    result = generate_obligations(2027, config, TODAY)

    assert all(o.type not in (ObligationType.TVA_CA12, ObligationType.TVA_ACOMPTE) for o in result.obligations)
    assert any("CA3" in w for w in result.warnings)


def test_multi_year(config):
    results = generate_multi_year_obligations(2026, 2028, config, TODAY)

    assert [r.year for r in results] == [2026, 2027, 2028]
    assert [len(r.obligations) for r in results] == [0, 5, 5]
    with pytest.raises(ValueError):
        generate_multi_year_obligations(2028, 2026, config, TODAY)
