"""Date parsing utilities for user-entered dates."""

from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and relative
    forms: "today", "yesterday", "tomorrow", "last/this/next month",
    "last/this/next year", "last/this/next week", "last monday".

    Args:
        date_str: Date string in various formats
        today: Reference date for relative forms (defaults to date.today())

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = today or date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    word, _, period = date_str.partition(" ")
    if word in ("last", "this", "next") and period:
        offset = {"last": -1, "this": 0, "next": 1}[word]
        if period == "month":
            return (today + relativedelta(months=offset)).replace(day=1)
        if period == "year":
            return today.replace(month=1, day=1) + relativedelta(years=offset)
        if period == "week":
            monday = today - timedelta(days=today.weekday())
            return monday + timedelta(weeks=offset)
        if word == "last" and period in _WEEKDAYS:
            days_ago = (today.weekday() - _WEEKDAYS.index(period)) % 7
            return today - timedelta(days=days_ago or 7)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Args:
        period: One of this-month, this-year, last-month, last-year
        today: Reference date (defaults to date.today())

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()

    if period == "this-month":
        return (today.replace(day=1), today)
    if period == "this-year":
        return (today.replace(month=1, day=1), today)
    if period == "last-month":
        first_of_month = today.replace(day=1)
        return (first_of_month - relativedelta(months=1), first_of_month - timedelta(days=1))
    if period == "last-year":
        first_of_year = today.replace(month=1, day=1)
        return (first_of_year - relativedelta(years=1), first_of_year - timedelta(days=1))

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-month, this-year, last-month, last-year"
    )
