"""Tests for CLI date filter helper."""

from datetime import date

import click
import pytest

from finledger.cli.date_filters import parse_date_or_exit, resolve_cli_date_range
from finledger.utils.date_parser import get_date_range


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def test_resolve_cli_date_range_rejects_multiple_periods(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date=None,
            end_date=None,
            period_flags={"this-month": True, "last-month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "Only one period option" in capsys.readouterr().err


def test_resolve_cli_date_range_rejects_period_with_start_end(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date="2024-01-01",
            end_date=None,
            period_flags={"this-month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "cannot be combined" in capsys.readouterr().err


def test_resolve_cli_date_range_returns_period_range():
    start, end = resolve_cli_date_range(
        _ctx(), start_date=None, end_date=None, period_flags={"last-year": True}
    )
    assert (start, end) == get_date_range("last-year")


def test_resolve_cli_date_range_explicit_dates():
    start, end = resolve_cli_date_range(
        _ctx(), start_date="2024-01-01", end_date="2024-01-31", period_flags={}
    )
    assert (start, end) == (date(2024, 1, 1), date(2024, 1, 31))


def test_resolve_cli_date_range_default_range():
    default = (date(2024, 5, 1), date(2024, 5, 31))
    assert (
        resolve_cli_date_range(_ctx(), start_date=None, end_date=None, period_flags={}, default_range=default)
        == default
    )


def test_parse_date_or_exit_reports_bad_input(capsys):
    assert parse_date_or_exit(_ctx(), None) is None
    with pytest.raises(click.exceptions.Exit):
        parse_date_or_exit(_ctx(), "not a date", "start date")
    assert "Invalid start date" in capsys.readouterr().err
