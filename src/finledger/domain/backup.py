"""Backup export and restore replay.

Export produces a flat enumeration of ledger data. Restore never copies
journal entries: every transaction is replayed through the transaction
service so postings are rebuilt by the same rules that wrote them.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from finledger.database.base import Database
from finledger.domain.entities import (
    Account,
    AccountGroup,
    AccountType,
    Budget,
    BudgetPeriod,
    Category,
    CategoryKind,
    LedgerExport,
    Transaction,
    TransactionKind,
)
from finledger.domain.errors import ConflictError, ValidationError
from finledger.domain.transaction import TransactionService

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = 1


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def export_to_dict(export: LedgerExport) -> dict[str, Any]:
    """Convert an export into JSON-compatible primitives.

    Money is written as strings so no precision is lost.
    """
    sections = {
        "account_groups": export.account_groups,
        "accounts": export.accounts,
        "categories": export.categories,
        "transactions": export.transactions,
        "budgets": export.budgets,
    }
    data: dict[str, Any] = {"version": EXPORT_FORMAT_VERSION}
    for name, rows in sections.items():
        data[name] = [{key: _plain(val) for key, val in vars(row).items()} for row in rows]
    return data


def _opt(value, convert):
    return convert(value) if value is not None else None


def export_from_dict(data: dict[str, Any]) -> LedgerExport:
    """Rebuild a LedgerExport from ``export_to_dict`` output.

    Raises:
        ValidationError: If the version is unsupported or a field is missing
    """
    if data.get("version") != EXPORT_FORMAT_VERSION:
        raise ValidationError(f"Unsupported backup version: {data.get('version')}")
    try:
        return LedgerExport(
            account_groups=[
                AccountGroup(id=g["id"], name=g["name"], type=AccountType(g["type"]))
                for g in data["account_groups"]
            ],
            accounts=[
                Account(
                    id=a["id"],
                    group_id=a["group_id"],
                    name=a["name"],
                    initial_balance=Decimal(a["initial_balance"]),
                    currency=a["currency"],
                    created_at=datetime.fromisoformat(a["created_at"]),
                    type=AccountType(a["type"]),
                )
                for a in data["accounts"]
            ],
            categories=[
                Category(
                    id=c["id"],
                    name=c["name"],
                    parent_id=c["parent_id"],
                    kind=CategoryKind(c["kind"]),
                    created_at=datetime.fromisoformat(c["created_at"]),
                )
                for c in data["categories"]
            ],
            transactions=[
                Transaction(
                    id=t["id"],
                    date=date.fromisoformat(t["date"]),
                    kind=TransactionKind(t["kind"]),
                    amount=Decimal(t["amount"]),
                    account_id=t["account_id"],
                    to_account_id=t["to_account_id"],
                    category_id=t["category_id"],
                    memo=t["memo"],
                    photo_ref=t["photo_ref"],
                    created_at=datetime.fromisoformat(t["created_at"]),
                )
                for t in data["transactions"]
            ],
            budgets=[
                Budget(
                    id=b["id"],
                    category_id=b["category_id"],
                    amount=Decimal(b["amount"]),
                    period=BudgetPeriod(b["period"]),
                    start_date=date.fromisoformat(b["start_date"]),
                    created_at=_opt(b["created_at"], datetime.fromisoformat),
                )
                for b in data["budgets"]
            ],
        )
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise ValidationError(f"Invalid backup data: {e}")


def check_references(export: LedgerExport) -> None:
    """Reject an export whose rows point at ids it does not contain.

    Raises:
        ValidationError: On the first dangling reference
    """
    group_ids = {g.id for g in export.account_groups}
    account_ids = {a.id for a in export.accounts}
    category_ids = {c.id for c in export.categories}
    root_ids = {c.id for c in export.categories if c.parent_id is None}

    def invalid(message: str) -> ValidationError:
        return ValidationError(f"Invalid backup data: {message}")

    for account in export.accounts:
        if account.group_id not in group_ids:
            raise invalid(f"account {account.id} references missing group {account.group_id}")
    for category in export.categories:
        if category.parent_id is not None and category.parent_id not in root_ids:
            raise invalid(f"category {category.id} references missing parent {category.parent_id}")
    for txn in export.transactions:
        if txn.account_id not in account_ids:
            raise invalid(f"transaction {txn.id} references missing account {txn.account_id}")
        if txn.to_account_id is not None and txn.to_account_id not in account_ids:
            raise invalid(f"transaction {txn.id} references missing account {txn.to_account_id}")
        if txn.category_id is not None and txn.category_id not in category_ids:
            raise invalid(f"transaction {txn.id} references missing category {txn.category_id}")
    for budget in export.budgets:
        if budget.category_id not in category_ids:
            raise invalid(f"budget {budget.id} references missing category {budget.category_id}")


class BackupService:
    """Service for exporting and restoring ledger data."""

    def __init__(self, db: Database):
        """Initialize backup service.

        Args:
            db: Database instance
        """
        self.db = db

    def export_ledger(self) -> LedgerExport:
        """Enumerate groups, accounts, categories, transactions and budgets."""
        transactions = self.db.list_transactions()
        transactions.sort(key=lambda t: (t.date, t.id))
        return LedgerExport(
            account_groups=self.db.list_account_groups(),
            accounts=self.db.list_accounts(),
            categories=self.db.list_categories(),
            transactions=transactions,
            budgets=self.db.list_budgets(),
        )

    def restore_ledger(self, export: LedgerExport) -> dict[str, int]:
        """Recreate an export in an empty ledger.

        IDs are reassigned; references are remapped. The whole restore is
        one unit of work, so a failure leaves the ledger empty.

        Args:
            export: Data produced by ``export_ledger``

        Returns:
            Count of restored rows per kind

        Raises:
            ConflictError: If the ledger already has accounts or transactions
            ValidationError: If a row references an id missing from the export
        """
        if self.db.list_accounts() or self.db.earliest_transaction_date() is not None:
            raise ConflictError("Restore requires an empty ledger")
        check_references(export)

        transactions = TransactionService(self.db)
        group_ids: dict[int, int] = {}
        account_ids: dict[int, int] = {}
        category_ids: dict[int, int] = {}

        with self.db.atomic():
            existing_groups = {g.name: g.id for g in self.db.list_account_groups()}
            for group in export.account_groups:
                group_ids[group.id] = existing_groups.get(group.name) or self.db.create_account_group(
                    name=group.name, type=group.type.value
                )

            for account in export.accounts:
                account_ids[account.id] = self.db.create_account(
                    group_id=group_ids[account.group_id],
                    name=account.name,
                    initial_balance=account.initial_balance,
                    currency=account.currency,
                )

            # Roots first so children can point at their new parent ID.
            ordered = sorted(export.categories, key=lambda c: c.parent_id is not None)
            for category in ordered:
                category_ids[category.id] = self.db.create_category(
                    name=category.name,
                    parent_id=category_ids[category.parent_id] if category.parent_id is not None else None,
                    kind=category.kind.value,
                )

            for txn in sorted(export.transactions, key=lambda t: (t.date, t.id)):
                transactions.create_transaction(
                    date=txn.date,
                    kind=txn.kind,
                    amount=txn.amount,
                    account_id=account_ids[txn.account_id],
                    to_account_id=account_ids[txn.to_account_id] if txn.to_account_id is not None else None,
                    category_id=category_ids[txn.category_id] if txn.category_id is not None else None,
                    memo=txn.memo,
                    photo_ref=txn.photo_ref,
                )

            for budget in export.budgets:
                self.db.create_budget(
                    category_id=category_ids[budget.category_id],
                    amount=budget.amount,
                    period=budget.period.value,
                    start_date=budget.start_date,
                )

        counts = {
            "account_groups": len(export.account_groups),
            "accounts": len(export.accounts),
            "categories": len(export.categories),
            "transactions": len(export.transactions),
            "budgets": len(export.budgets),
        }
        logger.info("Restored ledger: %s", counts)
        return counts
