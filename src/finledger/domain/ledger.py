"""Journal posting rules.

Every write into the ledger goes through :func:`post_journal`. It takes a set
of signed legs (positive = debit, negative = credit), refuses any set that
does not sum to zero, and turns the legs into storable postings.

INCOME and EXPENSE touch a single real account. Their balancing leg is booked
against the category side, represented by a leg whose ``account_id`` is
``None``. That leg takes part in the balance check but is not stored.
"""

from decimal import Decimal
from typing import Iterable, Optional

from finledger.domain.entities import Posting, TransactionKind
from finledger.domain.errors import ConsistencyError, InvalidKind, NonPositiveAmount
from finledger.domain.money import ZERO

Leg = tuple[Optional[int], Decimal]


def post_journal(legs: Iterable[Leg]) -> list[Posting]:
    """Validate a set of signed legs and return the postings to store.

    Args:
        legs: (account_id, signed_amount) pairs; account_id None marks the
            off-ledger category side

    Returns:
        Postings for the real accounts, in leg order

    Raises:
        ConsistencyError: If the set is empty, has a zero leg, or does not
            sum to zero
    """
    legs = list(legs)
    if not legs:
        raise ConsistencyError("Journal posting requires at least one leg")

    total = ZERO
    postings = []
    for account_id, amount in legs:
        if amount == ZERO:
            raise ConsistencyError("Journal leg amount cannot be zero")
        total += amount
        if account_id is None:
            continue
        if amount > ZERO:
            postings.append(Posting(account_id=account_id, debit=amount, credit=ZERO))
        else:
            postings.append(Posting(account_id=account_id, debit=ZERO, credit=-amount))

    if total != ZERO:
        raise ConsistencyError(f"Journal postings do not balance (off by {total})")
    return postings


def legs_for(
    kind: TransactionKind,
    amount: Decimal,
    account_id: int,
    to_account_id: Optional[int] = None,
) -> list[Leg]:
    """Build the balanced legs for a transaction kind.

    INCOME debits the source, EXPENSE credits it, TRANSFER credits the
    source and debits the destination.
    """
    if amount <= ZERO:
        raise NonPositiveAmount("Amount must be greater than zero")
    if kind == TransactionKind.INCOME:
        return [(account_id, amount), (None, -amount)]
    if kind == TransactionKind.EXPENSE:
        return [(account_id, -amount), (None, amount)]
    if kind == TransactionKind.TRANSFER:
        return [(account_id, -amount), (to_account_id, amount)]
    raise InvalidKind("Invalid transaction type")
