"""Tests for the account service."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.domain.entities import AccountType
from finledger.domain.errors import (
    AccountNotFound,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from finledger.domain.settings import SettingsService
from finledger.utils.account_resolver import resolve_account


def test_create_group_normalises_type(account_service):
    group_id = account_service.create_group("Wallets", "asset")

    (group,) = account_service.list_groups()
    assert group.id == group_id
    assert group.type == AccountType.ASSET


def test_create_group_rejects_unknown_type(account_service):
    with pytest.raises(ValidationError, match="Invalid account group type"):
        account_service.create_group("Stocks", "EQUITY")


def test_create_group_rejects_duplicate_name(account_service, groups):
    with pytest.raises(ConflictError):
        account_service.create_group("Bank", "ASSET")


def test_account_takes_type_from_group(checking, visa):
    assert checking.type == AccountType.ASSET
    assert visa.type == AccountType.LIABILITY
    assert checking.initial_balance == Decimal("1000.00")


def test_account_currency_defaults_to_primary(account_service, groups, temp_db):
    SettingsService(temp_db).set_primary_currency("usd")

    account_id = account_service.create_account(group_id=groups["asset"], name="Wallet")

    assert account_service.get_account(account_id).currency == "USD"


def test_account_currency_must_be_three_letters(account_service, groups):
    with pytest.raises(ValidationError, match="Currency code must be 3 characters"):
        account_service.create_account(group_id=groups["asset"], name="Wallet", currency="US")


def test_create_account_rejects_duplicate_name(account_service, groups, checking):
    with pytest.raises(ConflictError, match="already exists"):
        account_service.create_account(group_id=groups["asset"], name="Checking")


def test_create_account_requires_group(account_service):
    with pytest.raises(NotFoundError):
        account_service.create_account(group_id=42, name="Orphan")


def test_list_accounts_with_balances(account_service, transaction_service, checking, savings):
    transaction_service.create_transaction(
        date="2025-01-02", kind="EXPENSE", amount=Decimal("100"), account_id=checking.id
    )

    balances = {row.account.name: row.balance for row in account_service.list_accounts_with_balances()}
    assert balances == {"Checking": Decimal("900.00"), "Savings": Decimal("0.00")}


def test_delete_account(account_service, savings):
    account_service.delete_account(savings.id)
    assert account_service.get_account(savings.id) is None


def test_delete_account_blocked_by_transactions(account_service, transaction_service, checking, savings):
    transaction_service.create_transaction(
        date=date(2025, 1, 2),
        kind="TRANSFER",
        amount=Decimal("1"),
        account_id=checking.id,
        to_account_id=savings.id,
    )

    # Destination side counts as a reference too
    with pytest.raises(DependencyError, match="Cannot delete account with existing transactions"):
        account_service.delete_account(savings.id)


def test_delete_account_blocked_by_card_settings(account_service, card_service, visa, checking):
    card_service.create_card_settings(
        account_id=visa.id,
        credit_limit=Decimal("1000"),
        statement_day=25,
        payment_due_day=15,
        settlement_account_id=checking.id,
    )

    with pytest.raises(DependencyError):
        account_service.delete_account(visa.id)
    with pytest.raises(DependencyError, match="settlement account"):
        account_service.delete_account(checking.id)


def test_delete_account_blocked_by_recurring(account_service, recurring_service, checking, savings):
    recurring_service.create_recurring(
        name="Savings sweep",
        kind="TRANSFER",
        amount=Decimal("50"),
        account_id=checking.id,
        to_account_id=savings.id,
        frequency="MONTHLY",
        start_date="2025-01-01",
    )

    with pytest.raises(DependencyError, match="Cannot delete account with recurring transactions"):
        account_service.delete_account(checking.id)
    with pytest.raises(DependencyError, match="Cannot delete account with recurring transactions"):
        account_service.delete_account(savings.id)

    assert account_service.get_account(checking.id) is not None
    assert account_service.get_account(savings.id) is not None


def test_delete_account_blocked_by_installment_plan(account_service, installment_service, visa, categories):
    installment_service.create_plan(
        name="Laptop",
        total_amount=Decimal("1200"),
        num_installments=12,
        account_id=visa.id,
        category_id=categories["Transport"],
        start_date="2025-01-15",
    )

    with pytest.raises(DependencyError, match="Cannot delete account with installment plans"):
        account_service.delete_account(visa.id)
    assert account_service.get_account(visa.id) is not None


def test_delete_missing_account(account_service):
    with pytest.raises(AccountNotFound):
        account_service.delete_account(999)


def test_resolve_account_by_id_or_name(account_service, checking):
    assert resolve_account(account_service, checking.id) == checking.id
    assert resolve_account(account_service, str(checking.id)) == checking.id
    assert resolve_account(account_service, "Checking") == checking.id


def test_resolve_account_not_found(account_service, checking):
    with pytest.raises(AccountNotFound, match="'Nope' not found"):
        resolve_account(account_service, "Nope")
