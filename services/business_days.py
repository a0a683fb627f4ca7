"""
French business-day arithmetic.

Only fixed-date public holidays are taken into account; Easter-based holidays
(lundi de Pâques, Ascension, Pentecôte) are not.
"""

from datetime import date, timedelta

# (month, day)
FIXED_PUBLIC_HOLIDAYS = {
    (1, 1),    # Jour de l'an
    (5, 1),    # Fête du travail
    (5, 8),    # Victoire 1945
    (7, 14),   # Fête nationale
    (8, 15),   # Assomption
    (11, 1),   # Toussaint
    (11, 11),  # Armistice
    (12, 25),  # Noël
}


def is_french_public_holiday(day: date) -> bool:
    return (day.month, day.day) in FIXED_PUBLIC_HOLIDAYS


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def is_business_day(day: date) -> bool:
    return not is_weekend(day) and not is_french_public_holiday(day)


def next_business_day(day: date) -> date:
    """First business day strictly after ``day``."""
    candidate = day + timedelta(days=1)
    while not is_business_day(candidate):
        candidate += timedelta(days=1)
    return candidate


def adjust_to_business_day(day: date) -> date:
    """``day`` itself when it is a business day, otherwise the next one."""
    if is_business_day(day):
        return day
    return next_business_day(day)


def nth_business_day_of_month(year: int, month: int, n: int) -> date:
    """The ``n``-th business day (1-based) of a month."""
    if n < 1:
        raise ValueError("n must be >= 1")

    day = date(year, month, 1)
    count = 0
    while day.month == month:
        if is_business_day(day):
            count += 1
            if count == n:
                return day
        day += timedelta(days=1)
    raise ValueError(f"Month {year}-{month:02d} has fewer than {n} business days")


def nth_business_day_after(day: date, n: int) -> date:
    """The ``n``-th business day strictly after ``day``."""
    if n < 1:
        raise ValueError("n must be >= 1")
    current = day
    for _ in range(n):
        current = next_business_day(current)
    return current
