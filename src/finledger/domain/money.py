"""Fixed-point money helpers.

All monetary values are ``Decimal``. Rounding happens at the boundary of an
operation (when a figure is returned to a caller), never on intermediate sums.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Currencies whose minor unit is the major unit.
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND"})

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Coerce a number to Decimal without float representation noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def decimal_places(currency: Optional[str]) -> int:
    """Return the number of minor-unit digits used by a currency."""
    if currency is not None and currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return 0
    return 2


def round_money(value: Number, currency: Optional[str] = None) -> Decimal:
    """Round half-up to the currency's decimal convention.

    Args:
        value: Amount to round
        currency: Optional ISO code; zero-decimal currencies round to units

    Returns:
        Rounded Decimal
    """
    places = decimal_places(currency)
    quantum = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def liability_magnitude(balance: Number) -> Decimal:
    """Return the amount owed on a liability account.

    Liabilities carry a negative signed ledger balance while money is owed.
    An overpaid liability (positive balance) owes nothing, never a negative
    amount.
    """
    balance = to_decimal(balance)
    if balance >= ZERO:
        return ZERO
    return -balance
