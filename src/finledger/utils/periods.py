"""Calendar arithmetic for ledger windows.

Budget windows, billing cycles and snapshot dates are all anchored to a
day-of-month. These helpers keep that arithmetic in one place.
"""

import calendar
from datetime import date, datetime
from typing import Iterator

from dateutil.relativedelta import relativedelta

from finledger.domain.errors import ValidationError

ISO_FORMAT = "%Y-%m-%d"


def parse_iso_date(value: str | date) -> date:
    """Parse a strict ``YYYY-MM-DD`` date.

    Args:
        value: ISO date string, or a date which is returned unchanged

    Returns:
        Parsed date

    Raises:
        ValidationError: If the string is not a valid ISO calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), ISO_FORMAT).date()
    except (ValueError, AttributeError):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")


def month_end(value: date) -> date:
    """Return the last calendar day of the month containing ``value``."""
    last_day = calendar.monthrange(value.year, value.month)[1]
    return value.replace(day=last_day)


def previous_month_end(value: date) -> date:
    """Return the last day of the month before the one containing ``value``."""
    return value.replace(day=1) - relativedelta(days=1)


def add_months(value: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length.

    ``add_months(date(2024, 1, 31), 1)`` is ``date(2024, 2, 29)``.
    """
    return value + relativedelta(months=months)


def add_period(value: date, period: str) -> date:
    """Return the next anchor after ``value`` for a MONTHLY or YEARLY period.

    Raises:
        ValidationError: If the period kind is unknown
    """
    if period == "MONTHLY":
        return add_months(value, 1)
    if period == "YEARLY":
        return value + relativedelta(years=1)
    raise ValidationError(f"Invalid period: {period}")


def anchored_date(year: int, month: int, day: int) -> date:
    """Build a date for a day-of-month anchor.

    A day that does not exist in the month falls back to the 28th, which
    exists in every month.
    """
    try:
        return date(year, month, day)
    except ValueError:
        return date(year, month, 28)


def iter_month_ends(start: date, stop: date) -> Iterator[date]:
    """Yield month-ends from the month of ``start`` while they are before ``stop``."""
    current = month_end(start)
    while current < stop:
        yield current
        current = month_end(current.replace(day=1) + relativedelta(months=1))
