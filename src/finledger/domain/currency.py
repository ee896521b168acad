"""Currency catalogue, exchange rates and conversion.

Rate resolution for (from, to, date):

1. identity when both codes match;
2. the most recent (from, to) row effective on or before the date;
3. the most recent (to, from) row on or before the date, inverted;
4. otherwise :class:`NoRateFound`.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.account import normalize_currency_code
from finledger.domain.balance import BalanceService
from finledger.domain.entities import (
    ConvertedBalance,
    Currency,
    CurrencyConversion,
    ExchangeRate,
    RateSummary,
)
from finledger.domain.errors import (
    ConsistencyError,
    NoRateFound,
    NotFoundError,
    ValidationError,
    no_rate_found,
)
from finledger.domain.money import ZERO, round_money, to_decimal
from finledger.domain.settings import SettingsService
from finledger.utils.periods import parse_iso_date

logger = logging.getLogger(__name__)

ONE = Decimal("1")
DEFAULT_RATE_LIST_LIMIT = 100

SUPPORTED_CURRENCIES = [
    Currency(code="LKR", name="Sri Lankan Rupee", symbol="Rs", decimals=2),
    Currency(code="USD", name="US Dollar", symbol="$", decimals=2),
    Currency(code="EUR", name="Euro", symbol="€", decimals=2),
    Currency(code="GBP", name="British Pound", symbol="£", decimals=2),
    Currency(code="INR", name="Indian Rupee", symbol="₹", decimals=2),
    Currency(code="AUD", name="Australian Dollar", symbol="A$", decimals=2),
    Currency(code="CAD", name="Canadian Dollar", symbol="C$", decimals=2),
    Currency(code="JPY", name="Japanese Yen", symbol="¥", decimals=0),
    Currency(code="SGD", name="Singapore Dollar", symbol="S$", decimals=2),
    Currency(code="AED", name="UAE Dirham", symbol="AED", decimals=2),
]


class CurrencyService:
    """Service for exchange rates and currency conversion."""

    def __init__(self, db: Database):
        """Initialize currency service.

        Args:
            db: Database instance
        """
        self.db = db

    def supported_currencies(self) -> list[Currency]:
        """Return the catalogue of supported currencies."""
        return list(SUPPORTED_CURRENCIES)

    def set_exchange_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate,
        effective_date: date | str,
    ) -> int:
        """Record the rate for a pair from a date, replacing that day's rate.

        Args:
            from_currency: Source currency code
            to_currency: Target currency code
            rate: Units of target per unit of source, greater than zero
            effective_date: Date (or YYYY-MM-DD) the rate applies from

        Returns:
            Exchange rate ID

        Raises:
            ValidationError: If codes, rate or date are invalid
        """
        source = normalize_currency_code(from_currency)
        target = normalize_currency_code(to_currency)
        if source == target:
            raise ValidationError("From and to currencies must be different")
        try:
            value = to_decimal(rate)
        except ArithmeticError:
            raise ValidationError(f"Invalid exchange rate: {rate}")
        if value <= ZERO:
            raise ValidationError("Exchange rate must be greater than zero")
        effective = parse_iso_date(effective_date)

        rate_id = self.db.upsert_exchange_rate(source, target, value, effective)
        logger.debug("Set rate %s→%s = %s from %s", source, target, value, effective)
        return rate_id

    def get_exchange_rate(
        self, from_currency: str, to_currency: str, on_date: Optional[date | str] = None
    ) -> Decimal:
        """Resolve the rate from one currency to another on a date.

        Args:
            from_currency: Source currency code
            to_currency: Target currency code
            on_date: Date to resolve for (defaults to today)

        Returns:
            Rate as Decimal

        Raises:
            NoRateFound: If neither a direct nor an inverse rate exists
            ConsistencyError: If a stored inverse rate is not positive
        """
        source = normalize_currency_code(from_currency)
        target = normalize_currency_code(to_currency)
        when = parse_iso_date(on_date) if on_date is not None else date.today()

        if source == target:
            return ONE

        direct = self.db.find_latest_rate(source, target, when)
        if direct is not None:
            return direct.rate

        inverse = self.db.find_latest_rate(target, source, when)
        if inverse is not None:
            if inverse.rate <= ZERO:
                raise ConsistencyError(
                    f"Stored exchange rate {target} → {source} is not positive"
                )
            return ONE / inverse.rate

        raise NoRateFound(no_rate_found(source, target, when))

    def convert(
        self,
        amount,
        from_currency: str,
        to_currency: str,
        on_date: Optional[date | str] = None,
    ) -> CurrencyConversion:
        """Convert an amount, rounding to the target currency's decimals.

        Raises:
            ValidationError: If the amount is negative
            NoRateFound: If no rate can be resolved
        """
        value = to_decimal(amount)
        if value < ZERO:
            raise ValidationError("Amount cannot be negative")
        when = parse_iso_date(on_date) if on_date is not None else date.today()
        target = normalize_currency_code(to_currency)
        rate = self.get_exchange_rate(from_currency, target, when)
        return CurrencyConversion(
            amount=value,
            from_currency=normalize_currency_code(from_currency),
            to_currency=target,
            rate=rate,
            converted_amount=round_money(value * rate, target),
            on_date=when,
        )

    def list_exchange_rates(
        self,
        from_currency: Optional[str] = None,
        to_currency: Optional[str] = None,
        limit: int = DEFAULT_RATE_LIST_LIMIT,
    ) -> list[ExchangeRate]:
        """Rates newest first, optionally filtered by pair side."""
        return self.db.list_exchange_rates(
            from_currency=normalize_currency_code(from_currency) if from_currency else None,
            to_currency=normalize_currency_code(to_currency) if to_currency else None,
            limit=limit,
        )

    def delete_exchange_rate(self, rate_id: int) -> None:
        """Delete a rate.

        Raises:
            NotFoundError: If the rate does not exist
        """
        if not self.db.delete_exchange_rate(rate_id):
            raise NotFoundError("Exchange rate not found")

    def rate_summaries(self) -> list[RateSummary]:
        """Latest rate for each stored pair together with its history size."""
        summaries: dict[tuple[str, str], RateSummary] = {}
        counts: dict[tuple[str, str], int] = {}
        # Rows arrive newest first, so the first row seen per pair is the latest.
        for row in self.db.list_exchange_rates():
            pair = (row.from_currency, row.to_currency)
            counts[pair] = counts.get(pair, 0) + 1
            if pair not in summaries:
                summaries[pair] = RateSummary(
                    from_currency=row.from_currency,
                    to_currency=row.to_currency,
                    latest_rate=row.rate,
                    effective_date=row.effective_date,
                    history_count=0,
                )
        return [
            RateSummary(
                from_currency=s.from_currency,
                to_currency=s.to_currency,
                latest_rate=s.latest_rate,
                effective_date=s.effective_date,
                history_count=counts[pair],
            )
            for pair, s in sorted(summaries.items())
        ]

    def convert_balances_to_primary(self, today: Optional[date] = None) -> list[ConvertedBalance]:
        """Express every account balance in the primary currency.

        An account whose rate cannot be resolved is reported with rate 0 and
        its balance unconverted instead of failing the whole batch.
        """
        today = today or date.today()
        primary = SettingsService(self.db).primary_currency()
        balances = BalanceService(self.db)

        converted = []
        for account in self.db.list_accounts():
            balance = balances.balance_as_of(account.id)
            try:
                rate = self.get_exchange_rate(account.currency, primary, today)
                amount = round_money(balance * rate, primary)
            except NoRateFound:
                logger.debug("No %s→%s rate for account %s", account.currency, primary, account.id)
                rate = ZERO
                amount = balance
            converted.append(
                ConvertedBalance(
                    account_id=account.id,
                    account_name=account.name,
                    currency=account.currency,
                    balance=balance,
                    primary_currency=primary,
                    rate=rate,
                    converted_balance=amount,
                )
            )
        return converted
