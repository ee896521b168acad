"""Tests for database mappers."""

from datetime import date, datetime
from decimal import Decimal

from finledger.database import models as orm
from finledger.database.mappers import (
    account_to_domain,
    category_to_domain,
    exchange_rate_to_domain,
    installment_plan_to_domain,
    journal_entry_to_domain,
    recurring_to_domain,
    transaction_to_domain,
)
from finledger.domain.entities import (
    AccountType,
    CategoryKind,
    Frequency,
    InstallmentFrequency,
    InstallmentStatus,
    TransactionKind,
)


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_takes_type_from_group(self):
        group = orm.AccountGroup(id=2, name="Credit Cards", type="LIABILITY")
        orm_account = orm.Account(
            id=1,
            group_id=2,
            name="Visa",
            initial_balance=Decimal("0"),
            currency="USD",
            created_at=datetime(2025, 1, 1, 9, 0),
        )
        orm_account.group = group

        account = account_to_domain(orm_account)

        assert account.type == AccountType.LIABILITY
        assert account.currency == "USD"
        assert account.initial_balance == Decimal("0")


class TestCategoryMapper:
    """Tests for Category mapper."""

    def test_subcategory(self):
        orm_category = orm.Category(
            id=3, name="Groceries", parent_id=1, kind="EXPENSE", created_at=datetime(2025, 1, 1)
        )

        category = category_to_domain(orm_category)

        assert category.parent_id == 1
        assert category.kind == CategoryKind.EXPENSE


class TestTransactionMapper:
    """Tests for Transaction and JournalEntry mappers."""

    def test_transfer(self):
        orm_transaction = orm.Transaction(
            id=7,
            date=date(2025, 1, 15),
            kind="TRANSFER",
            amount=Decimal("125.50"),
            account_id=1,
            to_account_id=2,
            category_id=None,
            memo="Card payment",
            photo_ref=None,
            created_at=datetime(2025, 1, 15, 12, 0),
        )

        txn = transaction_to_domain(orm_transaction)

        assert txn.kind == TransactionKind.TRANSFER
        assert txn.amount == Decimal("125.50")
        assert txn.to_account_id == 2
        assert txn.category_id is None

    def test_journal_entry_missing_side_is_zero(self):
        orm_entry = orm.JournalEntry(id=1, transaction_id=7, account_id=1, debit=Decimal("10"), credit=None)

        entry = journal_entry_to_domain(orm_entry)

        assert entry.debit == Decimal("10")
        assert entry.credit == Decimal("0")


class TestRateAndScheduleMappers:
    """Tests for exchange rate and recurring transaction mappers."""

    def test_exchange_rate(self):
        orm_rate = orm.ExchangeRate(
            id=1,
            from_currency="USD",
            to_currency="LKR",
            rate=Decimal("300.125"),
            effective_date=date(2025, 1, 1),
            created_at=datetime(2025, 1, 1),
        )

        rate = exchange_rate_to_domain(orm_rate)

        assert rate.rate == Decimal("300.125")
        assert rate.effective_date == date(2025, 1, 1)

    def test_recurring_flags(self):
        orm_recurring = orm.RecurringTransaction(
            id=1,
            name="Rent",
            description=None,
            kind="EXPENSE",
            amount=Decimal("500"),
            account_id=1,
            to_account_id=None,
            category_id=None,
            frequency="MONTHLY",
            interval_days=None,
            start_date=date(2025, 1, 31),
            end_date=None,
            next_execution_date=date(2025, 2, 28),
            last_executed_date=date(2025, 1, 31),
            execution_count=1,
            is_active=True,
            created_at=datetime(2025, 1, 1),
        )

        recurring = recurring_to_domain(orm_recurring)

        assert recurring.frequency == Frequency.MONTHLY
        assert recurring.is_active is True
        assert recurring.execution_count == 1


class TestInstallmentPlanMapper:
    """Tests for InstallmentPlan mapper."""

    def test_plan_enums_and_remaining(self):
        orm_plan = orm.InstallmentPlan(
            id=4,
            name="Laptop",
            total_amount=Decimal("1000"),
            num_installments=3,
            amount_per_installment=Decimal("333.33"),
            account_id=1,
            category_id=2,
            start_date=date(2025, 1, 31),
            frequency="WEEKLY",
            next_due_date=date(2025, 2, 7),
            installments_paid=1,
            total_paid=Decimal("333.33"),
            status="ACTIVE",
            memo=None,
            created_at=datetime(2025, 1, 1, 9, 0),
        )

        plan = installment_plan_to_domain(orm_plan)

        assert plan.frequency == InstallmentFrequency.WEEKLY
        assert plan.status == InstallmentStatus.ACTIVE
        assert plan.remaining_amount == Decimal("666.67")
        assert plan.remaining_installments == 2
