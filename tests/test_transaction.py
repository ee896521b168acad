"""Tests for the transaction service."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.domain.entities import TransactionKind, TransactionPatch
from finledger.domain.errors import (
    AccountNotFound,
    CategoryNotFound,
    InvalidKind,
    NonPositiveAmount,
    NotFoundError,
    SelfTransfer,
    ValidationError,
)


def test_expense_credits_source_account(transaction_service, checking, categories):
    txn_id = transaction_service.create_transaction(
        date="2025-01-10",
        kind="EXPENSE",
        amount=Decimal("42.50"),
        account_id=checking.id,
        category_id=categories["Groceries"],
        memo="Market",
    )

    entries = transaction_service.get_journal_entries(txn_id)
    assert len(entries) == 1
    assert entries[0].account_id == checking.id
    assert entries[0].debit == Decimal("0")
    assert entries[0].credit == Decimal("42.50")

    txn = transaction_service.get_transaction(txn_id)
    assert txn.kind == TransactionKind.EXPENSE
    assert txn.date == date(2025, 1, 10)
    assert txn.memo == "Market"
    assert txn.to_account_id is None


def test_income_debits_source_account(transaction_service, checking):
    txn_id = transaction_service.create_transaction(
        date=date(2025, 1, 31), kind="income", amount="3000", account_id=checking.id
    )

    (entry,) = transaction_service.get_journal_entries(txn_id)
    assert entry.debit == Decimal("3000")
    assert entry.credit == Decimal("0")


def test_transfer_writes_two_balanced_entries(transaction_service, checking, savings):
    txn_id = transaction_service.create_transaction(
        date="2025-02-01",
        kind="TRANSFER",
        amount=Decimal("200"),
        account_id=checking.id,
        to_account_id=savings.id,
    )

    entries = {e.account_id: e for e in transaction_service.get_journal_entries(txn_id)}
    assert entries[checking.id].credit == Decimal("200")
    assert entries[savings.id].debit == Decimal("200")
    assert sum(e.debit - e.credit for e in entries.values()) == Decimal("0")


def test_to_account_is_ignored_for_non_transfers(transaction_service, checking, savings):
    txn_id = transaction_service.create_transaction(
        date="2025-02-01",
        kind="EXPENSE",
        amount=Decimal("5"),
        account_id=checking.id,
        to_account_id=savings.id,
    )

    assert transaction_service.get_transaction(txn_id).to_account_id is None
    assert len(transaction_service.get_journal_entries(txn_id)) == 1


def test_validation_rejects_unknown_kind_first(transaction_service):
    with pytest.raises(InvalidKind, match="Invalid transaction type"):
        transaction_service.create_transaction(
            date="2025-01-01", kind="REFUND", amount=Decimal("-1"), account_id=999
        )


def test_validation_rejects_non_positive_amount_before_account(transaction_service):
    with pytest.raises(NonPositiveAmount, match="Amount must be greater than zero"):
        transaction_service.create_transaction(
            date="2025-01-01", kind="EXPENSE", amount=Decimal("0"), account_id=999
        )


def test_validation_rejects_missing_account(transaction_service):
    with pytest.raises(AccountNotFound, match="Account does not exist"):
        transaction_service.create_transaction(
            date="2025-01-01", kind="EXPENSE", amount=Decimal("1"), account_id=999
        )


def test_transfer_requires_destination(transaction_service, checking):
    with pytest.raises(ValidationError, match="Transfer requires to_account_id"):
        transaction_service.create_transaction(
            date="2025-01-01", kind="TRANSFER", amount=Decimal("1"), account_id=checking.id
        )


def test_transfer_to_same_account_rejected(transaction_service, checking):
    with pytest.raises(SelfTransfer, match="Cannot transfer to the same account"):
        transaction_service.create_transaction(
            date="2025-01-01",
            kind="TRANSFER",
            amount=Decimal("1"),
            account_id=checking.id,
            to_account_id=checking.id,
        )


def test_transfer_to_missing_account_rejected(transaction_service, checking):
    with pytest.raises(AccountNotFound, match="Destination account does not exist"):
        transaction_service.create_transaction(
            date="2025-01-01",
            kind="TRANSFER",
            amount=Decimal("1"),
            account_id=checking.id,
            to_account_id=999,
        )


def test_missing_category_rejected(transaction_service, checking):
    with pytest.raises(CategoryNotFound, match="Category does not exist"):
        transaction_service.create_transaction(
            date="2025-01-01",
            kind="EXPENSE",
            amount=Decimal("1"),
            account_id=checking.id,
            category_id=999,
        )


def test_malformed_date_rejected(transaction_service, checking):
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        transaction_service.create_transaction(
            date="01/02/2025", kind="EXPENSE", amount=Decimal("1"), account_id=checking.id
        )


def test_failed_validation_writes_nothing(transaction_service, checking, temp_db):
    with pytest.raises(SelfTransfer):
        transaction_service.create_transaction(
            date="2025-01-01",
            kind="TRANSFER",
            amount=Decimal("1"),
            account_id=checking.id,
            to_account_id=checking.id,
        )

    assert transaction_service.list_transactions() == []
    assert temp_db.sum_postings(checking.id) == (Decimal("0"), Decimal("0"))


def test_list_transactions_newest_first_with_filters(transaction_service, checking, categories):
    for day, kind in [("2025-01-01", "INCOME"), ("2025-01-05", "EXPENSE"), ("2025-01-03", "EXPENSE")]:
        transaction_service.create_transaction(
            date=day, kind=kind, amount=Decimal("10"), account_id=checking.id
        )

    all_txns = transaction_service.list_transactions()
    assert [t.date.day for t in all_txns] == [5, 3, 1]

    expenses = transaction_service.list_transactions(kind="EXPENSE")
    assert len(expenses) == 2

    ranged = transaction_service.list_transactions(
        start_date=date(2025, 1, 2), end_date=date(2025, 1, 4)
    )
    assert [t.date for t in ranged] == [date(2025, 1, 3)]

    assert len(transaction_service.list_transactions(limit=1)) == 1


def test_update_changes_descriptive_fields(transaction_service, checking, categories):
    txn_id = transaction_service.create_transaction(
        date="2025-01-01",
        kind="EXPENSE",
        amount=Decimal("10"),
        account_id=checking.id,
        category_id=categories["Dining"],
    )

    transaction_service.update_transaction(
        txn_id, TransactionPatch(date=date(2025, 1, 2), memo="Lunch", photo_ref="img-1")
    )
    txn = transaction_service.get_transaction(txn_id)
    assert txn.date == date(2025, 1, 2)
    assert txn.memo == "Lunch"
    assert txn.photo_ref == "img-1"
    assert txn.category_id == categories["Dining"]
    assert txn.amount == Decimal("10")

    transaction_service.update_transaction(txn_id, TransactionPatch(clear_category=True))
    assert transaction_service.get_transaction(txn_id).category_id is None


def test_update_rejects_empty_patch(transaction_service, checking):
    txn_id = transaction_service.create_transaction(
        date="2025-01-01", kind="EXPENSE", amount=Decimal("10"), account_id=checking.id
    )
    with pytest.raises(ValidationError, match="No fields to update"):
        transaction_service.update_transaction(txn_id, TransactionPatch())


def test_update_rejects_unknown_category(transaction_service, checking):
    txn_id = transaction_service.create_transaction(
        date="2025-01-01", kind="EXPENSE", amount=Decimal("10"), account_id=checking.id
    )
    with pytest.raises(CategoryNotFound):
        transaction_service.update_transaction(txn_id, TransactionPatch(category_id=999))


def test_delete_removes_journal_entries(transaction_service, checking, savings, temp_db):
    txn_id = transaction_service.create_transaction(
        date="2025-01-01",
        kind="TRANSFER",
        amount=Decimal("75"),
        account_id=checking.id,
        to_account_id=savings.id,
    )

    transaction_service.delete_transaction(txn_id)

    assert transaction_service.get_transaction(txn_id) is None
    assert temp_db.get_journal_entries(txn_id) == []
    assert temp_db.sum_postings(savings.id) == (Decimal("0"), Decimal("0"))


def test_delete_missing_transaction(transaction_service):
    with pytest.raises(NotFoundError):
        transaction_service.delete_transaction(12345)
