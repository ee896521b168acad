"""Tests for calendar helpers."""

from datetime import date

import pytest

from finledger.domain.errors import ValidationError
from finledger.utils.periods import (
    add_months,
    add_period,
    anchored_date,
    iter_month_ends,
    month_end,
    parse_iso_date,
    previous_month_end,
)


def test_add_months_clamps_to_month_length():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2025, 3, 31), -1) == date(2025, 2, 28)


def test_add_period():
    assert add_period(date(2025, 1, 15), "MONTHLY") == date(2025, 2, 15)
    assert add_period(date(2024, 2, 29), "YEARLY") == date(2025, 2, 28)
    with pytest.raises(ValidationError):
        add_period(date(2025, 1, 1), "WEEKLY")


def test_month_end_helpers():
    assert month_end(date(2024, 2, 10)) == date(2024, 2, 29)
    assert previous_month_end(date(2025, 3, 12)) == date(2025, 2, 28)
    assert previous_month_end(date(2025, 1, 1)) == date(2024, 12, 31)


def test_anchored_date_falls_back_to_28th():
    assert anchored_date(2025, 2, 30) == date(2025, 2, 28)
    assert anchored_date(2025, 4, 15) == date(2025, 4, 15)


def test_iter_month_ends_excludes_stop():
    ends = list(iter_month_ends(date(2024, 11, 20), date(2025, 2, 1)))
    assert ends == [date(2024, 11, 30), date(2024, 12, 31), date(2025, 1, 31)]


def test_parse_iso_date():
    assert parse_iso_date("2025-01-05") == date(2025, 1, 5)
    assert parse_iso_date(date(2025, 1, 5)) == date(2025, 1, 5)
    for bad in ["2025-13-01", "2025-02-30", "05/01/2025", ""]:
        with pytest.raises(ValidationError, match="Invalid date format"):
            parse_iso_date(bad)
