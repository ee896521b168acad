"""Tests for journal posting rules."""

from decimal import Decimal

import pytest

from finledger.domain.entities import Posting, TransactionKind
from finledger.domain.errors import ConsistencyError, InvalidKind, NonPositiveAmount
from finledger.domain.ledger import legs_for, post_journal


def test_post_journal_transfer_legs():
    postings = post_journal([(1, Decimal("-50")), (2, Decimal("50"))])

    assert postings == [
        Posting(account_id=1, debit=Decimal("0"), credit=Decimal("50")),
        Posting(account_id=2, debit=Decimal("50"), credit=Decimal("0")),
    ]


def test_post_journal_drops_category_side():
    postings = post_journal([(1, Decimal("25.10")), (None, Decimal("-25.10"))])

    assert len(postings) == 1
    assert postings[0].account_id == 1
    assert postings[0].debit == Decimal("25.10")


def test_post_journal_rejects_unbalanced_set():
    with pytest.raises(ConsistencyError, match="do not balance"):
        post_journal([(1, Decimal("-50")), (2, Decimal("49.99"))])


def test_post_journal_rejects_empty_set():
    with pytest.raises(ConsistencyError):
        post_journal([])


def test_post_journal_rejects_zero_leg():
    with pytest.raises(ConsistencyError):
        post_journal([(1, Decimal("0")), (2, Decimal("0"))])


@pytest.mark.parametrize(
    "kind, expected",
    [
        (TransactionKind.INCOME, [(1, Decimal("10")), (None, Decimal("-10"))]),
        (TransactionKind.EXPENSE, [(1, Decimal("-10")), (None, Decimal("10"))]),
        (TransactionKind.TRANSFER, [(1, Decimal("-10")), (2, Decimal("10"))]),
    ],
)
def test_legs_for_each_kind(kind, expected):
    assert legs_for(kind, Decimal("10"), 1, 2) == expected


def test_legs_for_rejects_non_positive_amount():
    with pytest.raises(NonPositiveAmount):
        legs_for(TransactionKind.EXPENSE, Decimal("0"), 1)


def test_legs_for_rejects_unknown_kind():
    with pytest.raises(InvalidKind):
        legs_for("REFUND", Decimal("1"), 1)
