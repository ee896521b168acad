"""Tests for backup export and restore."""

import json
from datetime import date
from decimal import Decimal

import pytest

from finledger.database.factories import create_sqlite_database
from finledger.domain.backup import (
    EXPORT_FORMAT_VERSION,
    BackupService,
    export_from_dict,
    export_to_dict,
)
from finledger.domain.balance import BalanceService
from finledger.domain.budget import BudgetService
from finledger.domain.entities import LedgerExport, TransactionKind
from finledger.domain.errors import ConflictError, ValidationError


@pytest.fixture
def populated(temp_db, transaction_service, budget_service, checking, savings, visa, categories):
    transaction_service.create_transaction(
        date="2025-01-05", kind="EXPENSE", amount=Decimal("45.50"), account_id=visa.id,
        category_id=categories["Dining"], memo="Dinner",
    )
    transaction_service.create_transaction(
        date="2025-01-03", kind="TRANSFER", amount=Decimal("200"), account_id=checking.id,
        to_account_id=savings.id,
    )
    budget_service.create_budget(categories["Food"], Decimal("300"), "MONTHLY", "2025-01-01")
    return temp_db


@pytest.fixture
def empty_db(tmp_path):
    db = create_sqlite_database(database_path=str(tmp_path / "restored.db"))
    db.connect()
    db.initialize_schema()
    yield db
    db.disconnect()


def test_export_ledger_orders_transactions_by_date(populated):
    export = BackupService(populated).export_ledger()

    assert [g.name for g in export.account_groups] == ["Bank", "Credit Cards"]
    assert len(export.accounts) == 3
    assert len(export.categories) == 5
    assert [t.date for t in export.transactions] == [date(2025, 1, 3), date(2025, 1, 5)]
    assert len(export.budgets) == 1


def test_export_to_dict_is_json_ready(populated):
    data = export_to_dict(BackupService(populated).export_ledger())

    text = json.dumps(data)
    assert data["version"] == EXPORT_FORMAT_VERSION
    assert data["transactions"][1]["amount"] == "45.50"
    assert data["transactions"][1]["kind"] == "EXPENSE"
    assert data["transactions"][0]["date"] == "2025-01-03"
    assert export_from_dict(json.loads(text)) == BackupService(populated).export_ledger()


def test_restore_replays_into_empty_ledger(populated, empty_db):
    export = export_from_dict(json.loads(json.dumps(export_to_dict(BackupService(populated).export_ledger()))))

    counts = BackupService(empty_db).restore_ledger(export)

    assert counts == {
        "account_groups": 2,
        "accounts": 3,
        "categories": 5,
        "transactions": 2,
        "budgets": 1,
    }
    restored = {a.name: a for a in empty_db.list_accounts()}
    balances = BalanceService(empty_db)
    assert balances.balance_as_of(restored["Checking"].id) == Decimal("800.00")
    assert balances.balance_as_of(restored["Savings"].id) == Decimal("200.00")
    assert balances.balance_as_of(restored["Visa"].id) == Decimal("-45.50")

    dining = next(c for c in empty_db.list_categories() if c.name == "Dining")
    food = next(c for c in empty_db.list_categories() if c.name == "Food")
    assert dining.parent_id == food.id
    (budget,) = BudgetService(empty_db).list_budgets()
    assert budget.category_id == food.id

    for txn in empty_db.list_transactions():
        entries = empty_db.get_journal_entries(txn.id)
        if txn.kind == TransactionKind.TRANSFER:
            assert len(entries) == 2
            assert sum(e.debit for e in entries) == sum(e.credit for e in entries) == txn.amount
        else:
            (entry,) = entries
            assert entry.account_id == txn.account_id
            signed = entry.debit - entry.credit
            assert signed == (txn.amount if txn.kind == TransactionKind.INCOME else -txn.amount)


def test_restore_requires_empty_ledger(populated):
    service = BackupService(populated)

    with pytest.raises(ConflictError, match="Restore requires an empty ledger"):
        service.restore_ledger(service.export_ledger())


def test_export_from_dict_rejects_unknown_version():
    with pytest.raises(ValidationError, match="Unsupported backup version: 99"):
        export_from_dict({"version": 99})


def test_export_from_dict_rejects_malformed_rows():
    data = {
        "version": EXPORT_FORMAT_VERSION,
        "account_groups": [{"id": 1, "name": "Bank"}],
        "accounts": [],
        "categories": [],
        "transactions": [],
        "budgets": [],
    }

    with pytest.raises(ValidationError, match="Invalid backup data"):
        export_from_dict(data)


def test_restore_rejects_dangling_references(populated, empty_db):
    export = BackupService(populated).export_ledger()
    broken = LedgerExport(
        account_groups=export.account_groups,
        accounts=export.accounts,
        categories=[c for c in export.categories if c.name != "Dining"],
        transactions=export.transactions,
        budgets=export.budgets,
    )

    with pytest.raises(ValidationError, match="Invalid backup data: transaction .* references missing category"):
        BackupService(empty_db).restore_ledger(broken)

    assert empty_db.list_accounts() == []
    assert empty_db.list_categories() == []


def test_restore_rejects_account_with_missing_group(populated, empty_db):
    export = BackupService(populated).export_ledger()
    broken = LedgerExport(
        account_groups=[g for g in export.account_groups if g.name != "Credit Cards"],
        accounts=export.accounts,
        categories=export.categories,
        transactions=export.transactions,
        budgets=export.budgets,
    )

    with pytest.raises(ValidationError, match="Invalid backup data: account .* references missing group"):
        BackupService(empty_db).restore_ledger(broken)
