"""Date manipulation utilities"""

from datetime import date, datetime, timezone
from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping to the last day of shorter months (Jan 30 + 1 = Feb 29)"""
    return from_date + relativedelta(months=months)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_date(value: date | datetime) -> date:
    """Normalize a datetime to its calendar date"""
    if isinstance(value, datetime):
        return value.date()
    return value
