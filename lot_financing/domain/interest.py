"""Late-payment interest on overdue payments"""

from datetime import date
from decimal import Decimal

from lot_financing.domain.money import ZERO, to_money

DAYS_PER_YEAR = 365
GRACE_DAYS = 1


def overdue_days(due_date: date, today: date) -> int:
    return (today - due_date).days


def calculate_overdue_interest(
    amount: Decimal,
    annual_rate_percent: Decimal,
    due_date: date,
    today: date,
    grace_days: int = GRACE_DAYS,
    days_per_year: int = DAYS_PER_YEAR,
) -> Decimal:
    """
    Simple daily interest on the scheduled amount.

        daily_rate = rate / 100 / 365
        interest = round(amount x daily_rate x overdue_days, 2)

    Payments overdue by `grace_days` or less accrue nothing, so a payment
    exactly one day late is free and two days late pays for both days.
    """
    days = overdue_days(due_date, today)
    if days <= grace_days:
        return ZERO

    # Single division keeps full precision until the final rounding
    interest = Decimal(amount) * Decimal(annual_rate_percent) * days / (100 * days_per_year)
    return to_money(interest)
