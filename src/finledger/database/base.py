"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

# Import entities directly to avoid pulling services in through domain/__init__.py
from finledger.domain.entities import (
    Account,
    AccountGroup,
    AppConfig,
    Budget,
    BudgetPatch,
    Category,
    CategoryPatch,
    CreditCardSettings,
    CreditCardSettingsPatch,
    CreditCardStatement,
    DatedPosting,
    ExchangeRate,
    JournalEntry,
    NetWorthSnapshot,
    Posting,
    InstallmentPayment,
    InstallmentPlan,
    RecurringTransaction,
    StatementStatus,
    TemplatePatch,
    Transaction,
    TransactionPatch,
    TransactionTemplate,
)


class Database(ABC):
    """Abstract database interface for finledger.

    Implementations store rows and answer aggregate queries. Business rules
    live in the domain services; the only rule enforced here is that a
    transaction and its postings are written together or not at all.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open a unit of work.

        Writes inside the block become visible together when the outermost
        block exits. Any exception rolls back every write made in the unit.
        Nested blocks join the enclosing unit.
        """
        pass

    # Account group operations
    @abstractmethod
    def create_account_group(self, name: str, type: str) -> int:
        """Create an account group. Returns group ID."""
        pass

    @abstractmethod
    def get_account_group(self, group_id: int) -> Optional[AccountGroup]:
        """Get account group by ID."""
        pass

    @abstractmethod
    def list_account_groups(self) -> list[AccountGroup]:
        """List all account groups."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, group_id: int, name: str, initial_balance: Decimal, currency: str
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts ordered by name."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account row. Callers check references first."""
        pass

    @abstractmethod
    def count_account_transactions(self, account_id: int) -> int:
        """Count transactions using the account as source or destination."""
        pass

    # Category operations
    @abstractmethod
    def create_category(self, name: str, parent_id: Optional[int], kind: str) -> int:
        """Create a new category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self, parent_id: Optional[int] = None) -> list[Category]:
        """List categories, optionally only the children of ``parent_id``."""
        pass

    @abstractmethod
    def update_category(self, category_id: int, patch: CategoryPatch) -> None:
        """Apply a category patch."""
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> None:
        """Delete a category row."""
        pass

    @abstractmethod
    def count_category_transactions(self, category_id: int) -> int:
        """Count transactions assigned to a category."""
        pass

    @abstractmethod
    def count_category_budgets(self, category_id: int) -> int:
        """Count budgets tracking a category."""
        pass

    # Transaction and journal operations
    @abstractmethod
    def insert_transaction(
        self,
        date: date,
        kind: str,
        amount: Decimal,
        account_id: int,
        to_account_id: Optional[int],
        category_id: Optional[int],
        memo: Optional[str],
        photo_ref: Optional[str],
        postings: Iterable[Posting],
    ) -> int:
        """Insert a transaction together with its journal entries.

        Returns:
            Transaction ID
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        category_ids: Optional[list[int]] = None,
        kind: Optional[str] = None,
        memo_prefix: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions matching every given filter, newest first.

        Date bounds are inclusive.
        """
        pass

    @abstractmethod
    def sum_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        category_ids: Optional[list[int]] = None,
        kind: Optional[str] = None,
    ) -> Decimal:
        """Sum transaction amounts matching every given filter."""
        pass

    @abstractmethod
    def update_transaction(self, transaction_id: int, patch: TransactionPatch) -> None:
        """Apply a patch to a transaction's non-monetary fields."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction and its journal entries."""
        pass

    @abstractmethod
    def get_journal_entries(self, transaction_id: int) -> list[JournalEntry]:
        """Get the journal entries owned by a transaction."""
        pass

    @abstractmethod
    def earliest_transaction_date(self) -> Optional[date]:
        """Return the date of the oldest transaction, or None if there are none."""
        pass

    @abstractmethod
    def sum_postings(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> tuple[Decimal, Decimal]:
        """Sum debits and credits for an account over transaction dates.

        Returns:
            Tuple of (total_debit, total_credit); bounds are inclusive
        """
        pass

    @abstractmethod
    def daily_posting_deltas(
        self, account_id: int, start_date: date, end_date: date
    ) -> dict[date, Decimal]:
        """Net debit minus credit per transaction date within the range."""
        pass

    @abstractmethod
    def count_posted_transactions(
        self, account_id: int, start_date: date, end_date: date
    ) -> int:
        """Count distinct transactions with a posting to the account in range."""
        pass

    @abstractmethod
    def list_dated_postings(self, end_date: Optional[date] = None) -> list[DatedPosting]:
        """List every posting with its transaction date, oldest first."""
        pass

    # Budget operations
    @abstractmethod
    def create_budget(
        self, category_id: int, amount: Decimal, period: str, start_date: date
    ) -> int:
        """Create a budget. Returns budget ID."""
        pass

    @abstractmethod
    def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""
        pass

    @abstractmethod
    def find_budget(
        self, category_id: int, period: str, start_date: date
    ) -> Optional[Budget]:
        """Find the budget for a category, period and anchor date."""
        pass

    @abstractmethod
    def list_budgets(self) -> list[Budget]:
        """List all budgets."""
        pass

    @abstractmethod
    def update_budget(self, budget_id: int, patch: BudgetPatch) -> None:
        """Apply a budget patch."""
        pass

    @abstractmethod
    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""
        pass

    # Credit card operations
    @abstractmethod
    def create_card_settings(
        self,
        account_id: int,
        credit_limit: Decimal,
        statement_day: int,
        payment_due_day: int,
        minimum_payment_percentage: Decimal,
        auto_settlement_enabled: bool,
        settlement_account_id: Optional[int],
    ) -> int:
        """Create credit card settings. Returns settings ID."""
        pass

    @abstractmethod
    def get_card_settings(self, settings_id: int) -> Optional[CreditCardSettings]:
        """Get credit card settings by ID."""
        pass

    @abstractmethod
    def get_card_settings_by_account(self, account_id: int) -> Optional[CreditCardSettings]:
        """Get credit card settings linked to an account."""
        pass

    @abstractmethod
    def list_card_settings(self) -> list[CreditCardSettings]:
        """List all credit card settings."""
        pass

    @abstractmethod
    def update_card_settings(self, settings_id: int, patch: CreditCardSettingsPatch) -> None:
        """Apply a credit card settings patch."""
        pass

    @abstractmethod
    def delete_card_settings(self, settings_id: int) -> None:
        """Delete credit card settings."""
        pass

    @abstractmethod
    def create_statement(
        self,
        settings_id: int,
        cycle_start: date,
        cycle_end: date,
        statement_date: date,
        due_date: date,
        opening_balance: Decimal,
        closing_balance: Decimal,
        total_charges: Decimal,
        total_payments: Decimal,
        minimum_payment: Decimal,
        status: StatementStatus,
    ) -> int:
        """Create a statement. Returns statement ID."""
        pass

    @abstractmethod
    def get_statement(self, statement_id: int) -> Optional[CreditCardStatement]:
        """Get statement by ID."""
        pass

    @abstractmethod
    def find_statement(
        self, settings_id: int, cycle_start: date, cycle_end: date
    ) -> Optional[CreditCardStatement]:
        """Find the statement covering exactly this cycle."""
        pass

    @abstractmethod
    def latest_statement(self, settings_id: int) -> Optional[CreditCardStatement]:
        """Get the statement with the latest cycle end."""
        pass

    @abstractmethod
    def list_statements(
        self,
        settings_id: int,
        statuses: Optional[list[StatementStatus]] = None,
        oldest_due_first: bool = False,
    ) -> list[CreditCardStatement]:
        """List statements for a card.

        Newest cycle first by default; ``oldest_due_first`` orders by due date
        ascending instead.
        """
        pass

    @abstractmethod
    def record_statement_payment(
        self,
        statement_id: int,
        paid_amount: Decimal,
        status: StatementStatus,
        paid_date: date,
    ) -> None:
        """Store the cumulative paid amount and new status of a statement."""
        pass

    # Exchange rate operations
    @abstractmethod
    def upsert_exchange_rate(
        self, from_currency: str, to_currency: str, rate: Decimal, effective_date: date
    ) -> int:
        """Insert or replace the rate for a pair and day. Returns rate ID."""
        pass

    @abstractmethod
    def find_latest_rate(
        self, from_currency: str, to_currency: str, on_date: date
    ) -> Optional[ExchangeRate]:
        """Get the most recent rate for the pair effective on or before a date."""
        pass

    @abstractmethod
    def list_exchange_rates(
        self,
        from_currency: Optional[str] = None,
        to_currency: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ExchangeRate]:
        """List rates, newest effective date first."""
        pass

    @abstractmethod
    def delete_exchange_rate(self, rate_id: int) -> bool:
        """Delete a rate. Returns False if it did not exist."""
        pass

    # Net worth snapshot operations
    @abstractmethod
    def count_snapshots(self) -> int:
        """Count stored snapshots."""
        pass

    @abstractmethod
    def get_snapshot(self, snapshot_date: date) -> Optional[NetWorthSnapshot]:
        """Get the snapshot for a month-end."""
        pass

    @abstractmethod
    def upsert_snapshot(self, snapshot: NetWorthSnapshot) -> None:
        """Insert a snapshot or overwrite the one for the same date."""
        pass

    @abstractmethod
    def insert_snapshot_if_absent(self, snapshot: NetWorthSnapshot) -> bool:
        """Insert a snapshot unless one exists for the date. Returns True if inserted."""
        pass

    @abstractmethod
    def list_snapshots(self, limit: Optional[int] = None) -> list[NetWorthSnapshot]:
        """List snapshots, newest first."""
        pass

    # Recurring transaction operations
    @abstractmethod
    def create_recurring(
        self,
        name: str,
        description: Optional[str],
        kind: str,
        amount: Decimal,
        account_id: int,
        to_account_id: Optional[int],
        category_id: Optional[int],
        frequency: str,
        interval_days: Optional[int],
        start_date: date,
        end_date: Optional[date],
    ) -> int:
        """Create a recurring transaction. Returns its ID."""
        pass

    @abstractmethod
    def get_recurring(self, recurring_id: int) -> Optional[RecurringTransaction]:
        """Get recurring transaction by ID."""
        pass

    @abstractmethod
    def list_recurring(self, active_only: bool = False) -> list[RecurringTransaction]:
        """List recurring transactions ordered by next execution date."""
        pass

    @abstractmethod
    def update_recurring_schedule(
        self,
        recurring_id: int,
        next_execution_date: date,
        last_executed_date: Optional[date],
        execution_count: int,
        is_active: bool,
    ) -> None:
        """Store the schedule state of a recurring transaction."""
        pass

    @abstractmethod
    def delete_recurring(self, recurring_id: int) -> None:
        """Delete a recurring transaction."""
        pass

    @abstractmethod
    def count_account_recurring(self, account_id: int) -> int:
        """Count recurring transactions using the account as source or destination."""
        pass

    @abstractmethod
    def count_category_recurring(self, category_id: int) -> int:
        """Count recurring transactions assigned to a category."""
        pass

    # Installment plan operations
    @abstractmethod
    def create_installment_plan(
        self,
        name: str,
        total_amount: Decimal,
        num_installments: int,
        amount_per_installment: Decimal,
        account_id: int,
        category_id: int,
        start_date: date,
        frequency: str,
        memo: Optional[str],
    ) -> int:
        """Create an ACTIVE installment plan due first on start_date. Returns its ID."""
        pass

    @abstractmethod
    def get_installment_plan(self, plan_id: int) -> Optional[InstallmentPlan]:
        """Get installment plan by ID."""
        pass

    @abstractmethod
    def list_installment_plans(self, status: Optional[str] = None) -> list[InstallmentPlan]:
        """List installment plans ordered by next due date."""
        pass

    @abstractmethod
    def list_installment_payments(self, plan_id: int) -> list[InstallmentPayment]:
        """List payments of a plan by installment number."""
        pass

    @abstractmethod
    def record_installment_payment(
        self,
        plan_id: int,
        transaction_id: int,
        installment_number: int,
        amount: Decimal,
        due_date: date,
        paid_date: date,
        next_due_date: date,
        status: str,
    ) -> int:
        """Store a payment row and advance the plan counters. Returns the payment ID."""
        pass

    @abstractmethod
    def update_installment_status(self, plan_id: int, status: str) -> None:
        """Set the status of an installment plan."""
        pass

    @abstractmethod
    def delete_installment_plan(self, plan_id: int) -> None:
        """Delete an installment plan."""
        pass

    @abstractmethod
    def count_account_installment_plans(self, account_id: int) -> int:
        """Count installment plans paid from an account."""
        pass

    @abstractmethod
    def count_category_installment_plans(self, category_id: int) -> int:
        """Count installment plans booked to a category."""
        pass

    # Transaction template operations
    @abstractmethod
    def create_template(
        self,
        name: str,
        kind: str,
        amount: Decimal,
        account_id: Optional[int],
        to_account_id: Optional[int],
        category_id: Optional[int],
        memo: Optional[str],
    ) -> int:
        """Create a transaction template. Returns its ID."""
        pass

    @abstractmethod
    def get_template(self, template_id: int) -> Optional[TransactionTemplate]:
        """Get transaction template by ID."""
        pass

    @abstractmethod
    def list_templates(self) -> list[TransactionTemplate]:
        """List templates, most used first."""
        pass

    @abstractmethod
    def update_template(self, template_id: int, patch: TemplatePatch) -> None:
        """Apply a template patch."""
        pass

    @abstractmethod
    def record_template_use(self, template_id: int) -> None:
        """Increment the use count and stamp the last use time."""
        pass

    @abstractmethod
    def delete_template(self, template_id: int) -> None:
        """Delete a transaction template."""
        pass

    # Configuration
    @abstractmethod
    def get_app_config(self) -> AppConfig:
        """Get the configuration record, creating the default one if missing."""
        pass

    @abstractmethod
    def update_app_config(self, primary_currency: str) -> AppConfig:
        """Replace configuration fields and bump the version."""
        pass
