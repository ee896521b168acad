"""Shared pytest fixtures for finledger tests."""

import os
import tempfile
from decimal import Decimal

import pytest

from finledger.database.factories import create_sqlite_database
from finledger.domain.account import AccountService
from finledger.domain.balance import BalanceService
from finledger.domain.billing import CreditCardService
from finledger.domain.budget import BudgetService
from finledger.domain.category import CategoryService
from finledger.domain.installment import InstallmentService
from finledger.domain.currency import CurrencyService
from finledger.domain.networth import NetWorthService
from finledger.domain.recurring import RecurringService
from finledger.domain.summary import SummaryService
from finledger.domain.template import TemplateService
from finledger.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    return TransactionService(temp_db)


@pytest.fixture
def balance_service(temp_db):
    return BalanceService(temp_db)


@pytest.fixture
def budget_service(temp_db):
    return BudgetService(temp_db)


@pytest.fixture
def card_service(temp_db):
    return CreditCardService(temp_db)


@pytest.fixture
def currency_service(temp_db):
    return CurrencyService(temp_db)


@pytest.fixture
def networth_service(temp_db):
    return NetWorthService(temp_db)


@pytest.fixture
def recurring_service(temp_db):
    return RecurringService(temp_db)


@pytest.fixture
def installment_service(temp_db):
    return InstallmentService(temp_db)


@pytest.fixture
def summary_service(temp_db):
    return SummaryService(temp_db)


@pytest.fixture
def template_service(temp_db):
    return TemplateService(temp_db)


@pytest.fixture
def groups(account_service):
    """Create one ASSET and one LIABILITY group."""
    return {
        "asset": account_service.create_group("Bank", "ASSET"),
        "liability": account_service.create_group("Credit Cards", "LIABILITY"),
    }


@pytest.fixture
def checking(account_service, groups):
    """ASSET account with a 1000.00 opening balance."""
    account_id = account_service.create_account(
        group_id=groups["asset"], name="Checking", initial_balance=Decimal("1000.00")
    )
    return account_service.get_account(account_id)


@pytest.fixture
def savings(account_service, groups):
    """ASSET account with a zero opening balance."""
    account_id = account_service.create_account(group_id=groups["asset"], name="Savings")
    return account_service.get_account(account_id)


@pytest.fixture
def visa(account_service, groups):
    """LIABILITY account used as a credit card."""
    account_id = account_service.create_account(group_id=groups["liability"], name="Visa")
    return account_service.get_account(account_id)


@pytest.fixture
def categories(category_service):
    """A small category tree keyed by name."""
    food = category_service.create_category("Food", "EXPENSE")
    return {
        "Food": food,
        "Groceries": category_service.create_category("Groceries", "EXPENSE", parent_id=food),
        "Dining": category_service.create_category("Dining", "EXPENSE", parent_id=food),
        "Transport": category_service.create_category("Transport", "EXPENSE"),
        "Salary": category_service.create_category("Salary", "INCOME"),
    }


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
