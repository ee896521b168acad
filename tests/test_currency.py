"""Tests for exchange rates and conversion."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.domain.errors import NoRateFound, NotFoundError, ValidationError
from finledger.domain.money import liability_magnitude, round_money
from finledger.domain.settings import SettingsService


def test_identity_rate(currency_service):
    assert currency_service.get_exchange_rate("USD", "usd", date(2020, 1, 1)) == Decimal("1")


def test_direct_rate_uses_latest_effective_on_or_before(currency_service):
    currency_service.set_exchange_rate("USD", "LKR", Decimal("300"), "2025-01-01")
    currency_service.set_exchange_rate("USD", "LKR", Decimal("295"), "2025-02-01")

    assert currency_service.get_exchange_rate("USD", "LKR", date(2025, 1, 31)) == Decimal("300")
    assert currency_service.get_exchange_rate("USD", "LKR", date(2025, 2, 1)) == Decimal("295")


def test_inverse_rate_fallback(currency_service):
    currency_service.set_exchange_rate("USD", "LKR", Decimal("300"), "2025-01-01")

    rate = currency_service.get_exchange_rate("LKR", "USD", date(2025, 1, 5))

    assert rate == Decimal("1") / Decimal("300")


def test_no_rate_before_first_effective_date(currency_service):
    currency_service.set_exchange_rate("USD", "LKR", Decimal("300"), "2025-01-01")

    with pytest.raises(NoRateFound, match="No exchange rate found for USD → LKR"):
        currency_service.get_exchange_rate("USD", "LKR", date(2024, 12, 1))


def test_same_day_rate_is_replaced(currency_service):
    first = currency_service.set_exchange_rate("EUR", "USD", Decimal("1.08"), "2025-01-01")
    second = currency_service.set_exchange_rate("EUR", "USD", Decimal("1.10"), "2025-01-01")

    assert first == second
    assert len(currency_service.list_exchange_rates()) == 1
    assert currency_service.get_exchange_rate("EUR", "USD", date(2025, 1, 1)) == Decimal("1.10")


def test_rate_validation(currency_service):
    with pytest.raises(ValidationError, match="From and to currencies must be different"):
        currency_service.set_exchange_rate("USD", "USD", Decimal("1"), "2025-01-01")
    with pytest.raises(ValidationError, match="Exchange rate must be greater than zero"):
        currency_service.set_exchange_rate("USD", "LKR", Decimal("0"), "2025-01-01")
    with pytest.raises(ValidationError, match="Currency code must be 3 characters"):
        currency_service.set_exchange_rate("US", "LKR", Decimal("1"), "2025-01-01")


def test_convert_rounds_to_target_currency(currency_service):
    currency_service.set_exchange_rate("USD", "JPY", Decimal("151.237"), "2025-01-01")

    result = currency_service.convert(Decimal("10.50"), "USD", "JPY", "2025-01-02")

    assert result.rate == Decimal("151.237")
    assert result.converted_amount == Decimal("1588")
    assert result.on_date == date(2025, 1, 2)


def test_convert_rejects_negative_amount(currency_service):
    with pytest.raises(ValidationError, match="Amount cannot be negative"):
        currency_service.convert(Decimal("-1"), "USD", "LKR")


def test_round_money_half_up():
    assert round_money(Decimal("2.345")) == Decimal("2.35")
    assert round_money(Decimal("1587.5"), "JPY") == Decimal("1588")
    assert round_money(0.1 + 0.2) == Decimal("0.30")


def test_liability_magnitude_never_negative():
    assert liability_magnitude(Decimal("-120.50")) == Decimal("120.50")
    assert liability_magnitude(Decimal("15")) == Decimal("0")


def test_delete_rate(currency_service):
    rate_id = currency_service.set_exchange_rate("USD", "LKR", Decimal("300"), "2025-01-01")

    currency_service.delete_exchange_rate(rate_id)

    assert currency_service.list_exchange_rates() == []
    with pytest.raises(NotFoundError, match="Exchange rate not found"):
        currency_service.delete_exchange_rate(rate_id)


def test_rate_summaries(currency_service):
    currency_service.set_exchange_rate("USD", "LKR", Decimal("300"), "2025-01-01")
    currency_service.set_exchange_rate("USD", "LKR", Decimal("295"), "2025-02-01")
    currency_service.set_exchange_rate("EUR", "LKR", Decimal("320"), "2025-01-15")

    summaries = {(s.from_currency, s.to_currency): s for s in currency_service.rate_summaries()}

    assert summaries[("USD", "LKR")].latest_rate == Decimal("295")
    assert summaries[("USD", "LKR")].history_count == 2
    assert summaries[("EUR", "LKR")].effective_date == date(2025, 1, 15)


def test_supported_currencies(currency_service):
    codes = {c.code: c for c in currency_service.supported_currencies()}
    assert "LKR" in codes and "USD" in codes
    assert codes["JPY"].decimals == 0


def test_convert_balances_to_primary(currency_service, account_service, groups, temp_db):
    SettingsService(temp_db).set_primary_currency("LKR")
    account_service.create_account(group_id=groups["asset"], name="Dollars", initial_balance=100, currency="USD")
    account_service.create_account(group_id=groups["asset"], name="Euros", initial_balance=50, currency="EUR")
    account_service.create_account(group_id=groups["asset"], name="Cash", initial_balance=2000)
    currency_service.set_exchange_rate("USD", "LKR", Decimal("300"), "2025-01-01")

    rows = {r.account_name: r for r in currency_service.convert_balances_to_primary(date(2025, 3, 1))}

    assert rows["Dollars"].converted_balance == Decimal("30000.00")
    assert rows["Cash"].rate == Decimal("1")
    assert rows["Cash"].converted_balance == Decimal("2000.00")
    # No EUR rate: reported unconverted with a zero rate
    assert rows["Euros"].rate == Decimal("0")
    assert rows["Euros"].converted_balance == Decimal("50.00")
