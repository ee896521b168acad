"""Domain model entities for finledger.

These are pure data classes representing business concepts, independent of
database schema. Balances are never stored on entities; they are derived from
journal entries by the balance service.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountType(str, Enum):
    """Account group type."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"


class TransactionKind(str, Enum):
    """Transaction kind; determines which journal postings are written."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class CategoryKind(str, Enum):
    """Category kind."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class BudgetPeriod(str, Enum):
    """Budget period kind."""

    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class StatementStatus(str, Enum):
    """Credit card statement lifecycle state."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class AlertLevel(str, Enum):
    """Budget alert severity, in increasing order."""

    WARNING = "WARNING"
    DANGER = "DANGER"
    CRITICAL = "CRITICAL"


class Frequency(str, Enum):
    """Recurring transaction frequency."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"


class InstallmentFrequency(str, Enum):
    """Installment plan payment frequency."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class InstallmentStatus(str, Enum):
    """Installment plan lifecycle state."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class AccountGroup:
    """Account group domain entity (ASSET or LIABILITY)."""

    id: int
    name: str
    type: AccountType


@dataclass(frozen=True)
class Account:
    """Ledger account domain entity."""

    id: int
    group_id: int
    name: str
    initial_balance: Decimal
    currency: str
    created_at: datetime
    type: AccountType


@dataclass(frozen=True)
class AccountBalance:
    """Account with its derived balance."""

    account: Account
    balance: Decimal


@dataclass(frozen=True)
class Category:
    """Category domain entity; at most one level of nesting."""

    id: int
    name: str
    parent_id: Optional[int]
    kind: CategoryKind
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity."""

    id: int
    date: date
    kind: TransactionKind
    amount: Decimal
    account_id: int
    to_account_id: Optional[int]
    category_id: Optional[int]
    memo: Optional[str]
    photo_ref: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class JournalEntry:
    """One debit or credit line against an account."""

    id: int
    transaction_id: int
    account_id: int
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class Posting:
    """A journal line that has been balanced but not yet stored."""

    account_id: int
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TransactionPatch:
    """Fields that may change on an existing transaction.

    Monetary fields are intentionally absent: amount or kind changes require
    delete and recreate so that postings are never rewritten.
    """

    date: Optional[date] = None
    category_id: Optional[int] = None
    clear_category: bool = False
    memo: Optional[str] = None
    photo_ref: Optional[str] = None

    def is_empty(self) -> bool:
        return (
            self.date is None
            and self.category_id is None
            and not self.clear_category
            and self.memo is None
            and self.photo_ref is None
        )


@dataclass(frozen=True)
class CategoryPatch:
    """Fields that may change on a category."""

    name: Optional[str] = None
    parent_id: Optional[int] = None
    clear_parent: bool = False

    def is_empty(self) -> bool:
        return self.name is None and self.parent_id is None and not self.clear_parent


@dataclass(frozen=True)
class Budget:
    """Budget domain entity; its active window is derived from start_date."""

    id: int
    category_id: int
    amount: Decimal
    period: BudgetPeriod
    start_date: date
    created_at: datetime


@dataclass(frozen=True)
class BudgetPatch:
    """Fields that may change on a budget."""

    amount: Optional[Decimal] = None
    start_date: Optional[date] = None

    def is_empty(self) -> bool:
        return self.amount is None and self.start_date is None


@dataclass(frozen=True)
class BudgetStatus:
    """Budget compared against actual spend in its current window."""

    budget: Budget
    category_name: str
    window_start: date
    window_end: date
    spent: Decimal
    remaining: Decimal
    percentage_used: Decimal
    days_remaining: int
    days_elapsed: int
    daily_average_spent: Decimal
    daily_budget_remaining: Decimal
    is_over_budget: bool
    alert_level: Optional[AlertLevel]


@dataclass(frozen=True)
class CreditCardSettings:
    """Billing configuration for a LIABILITY account."""

    id: int
    account_id: int
    credit_limit: Decimal
    statement_day: int
    payment_due_day: int
    minimum_payment_percentage: Decimal
    auto_settlement_enabled: bool
    settlement_account_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class CreditCardSettingsPatch:
    """Fields that may change on credit card settings."""

    credit_limit: Optional[Decimal] = None
    statement_day: Optional[int] = None
    payment_due_day: Optional[int] = None
    minimum_payment_percentage: Optional[Decimal] = None
    auto_settlement_enabled: Optional[bool] = None
    settlement_account_id: Optional[int] = None
    clear_settlement_account: bool = False

    def is_empty(self) -> bool:
        return (
            self.credit_limit is None
            and self.statement_day is None
            and self.payment_due_day is None
            and self.minimum_payment_percentage is None
            and self.auto_settlement_enabled is None
            and self.settlement_account_id is None
            and not self.clear_settlement_account
        )


@dataclass(frozen=True)
class CreditCardStatement:
    """Closed summary of one billing cycle."""

    id: int
    settings_id: int
    cycle_start: date
    cycle_end: date
    statement_date: date
    due_date: date
    opening_balance: Decimal
    closing_balance: Decimal
    total_charges: Decimal
    total_payments: Decimal
    minimum_payment: Decimal
    status: StatementStatus
    paid_amount: Decimal
    paid_date: Optional[date]

    @property
    def remaining(self) -> Decimal:
        """Amount still owed on this statement, never negative."""
        return max(self.closing_balance - self.paid_amount, Decimal("0"))


@dataclass(frozen=True)
class BillingCycle:
    """Inclusive date range of one billing cycle."""

    start: date
    end: date


@dataclass(frozen=True)
class CardBalances:
    """Derived balances for a credit card."""

    settings: CreditCardSettings
    account_name: str
    cycle: BillingCycle
    total_balance: Decimal
    current_cycle_charges: Decimal
    current_cycle_payments: Decimal
    outstanding_balance: Decimal
    available_credit: Decimal
    utilization_percentage: Decimal
    next_due_date: Optional[date] = None
    next_due_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class StatementPayment:
    """How much of a settlement was applied to one statement."""

    statement_id: int
    applied: Decimal
    status: StatementStatus


@dataclass(frozen=True)
class Settlement:
    """Outcome of paying a credit card."""

    transaction_id: int
    amount: Decimal
    allocations: list[StatementPayment] = field(default_factory=list)


@dataclass(frozen=True)
class Currency:
    """Supported currency."""

    code: str
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class ExchangeRate:
    """Exchange rate effective from a date."""

    id: int
    from_currency: str
    to_currency: str
    rate: Decimal
    effective_date: date
    created_at: datetime


@dataclass(frozen=True)
class RateSummary:
    """Latest rate for a currency pair plus the size of its history."""

    from_currency: str
    to_currency: str
    latest_rate: Decimal
    effective_date: date
    history_count: int


@dataclass(frozen=True)
class CurrencyConversion:
    """Result of converting an amount between currencies."""

    amount: Decimal
    from_currency: str
    to_currency: str
    rate: Decimal
    converted_amount: Decimal
    on_date: date


@dataclass(frozen=True)
class ConvertedBalance:
    """Account balance expressed in the primary currency.

    ``rate`` is zero when no rate could be resolved; ``converted_balance``
    then carries the original balance unconverted.
    """

    account_id: int
    account_name: str
    currency: str
    balance: Decimal
    primary_currency: str
    rate: Decimal
    converted_balance: Decimal


@dataclass(frozen=True)
class NetWorthSnapshot:
    """Month-end net worth."""

    id: Optional[int]
    snapshot_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal


@dataclass(frozen=True)
class NetWorthSummary:
    """Current net worth with change against the previous month-end."""

    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    previous_net_worth: Optional[Decimal]
    change_amount: Optional[Decimal]
    change_percentage: Optional[Decimal]


@dataclass(frozen=True)
class BalancePoint:
    """Balance on one day of a performance window."""

    date: date
    balance: Decimal


@dataclass(frozen=True)
class AccountPerformance:
    """Balance statistics for an account over a date range."""

    account_id: int
    start_date: date
    end_date: date
    opening_balance: Decimal
    closing_balance: Decimal
    current_balance: Decimal
    highest_balance: Decimal
    lowest_balance: Decimal
    average_balance: Decimal
    total_inflow: Decimal
    total_outflow: Decimal
    net_change: Decimal
    transaction_count: int
    history: list[BalancePoint]


@dataclass(frozen=True)
class RecurringTransaction:
    """Template that posts a transaction on a schedule."""

    id: int
    name: str
    description: Optional[str]
    kind: TransactionKind
    amount: Decimal
    account_id: int
    to_account_id: Optional[int]
    category_id: Optional[int]
    frequency: Frequency
    interval_days: Optional[int]
    start_date: date
    end_date: Optional[date]
    next_execution_date: date
    last_executed_date: Optional[date]
    execution_count: int
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class AppConfig:
    """Single versioned application configuration record."""

    primary_currency: str
    version: int
    updated_at: datetime


@dataclass(frozen=True)
class DatedPosting:
    """Journal line joined with its transaction date, for replaying history."""

    account_id: int
    date: date
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class LedgerExport:
    """Flat enumeration of ledger data used by backup and restore."""

    account_groups: list[AccountGroup]
    accounts: list[Account]
    categories: list[Category]
    transactions: list[Transaction]
    budgets: list[Budget]


@dataclass(frozen=True)
class IncomeExpenseSummary:
    """Income and expense totals over a date range."""

    start_date: Optional[date]
    end_date: Optional[date]
    total_income: Decimal
    total_expense: Decimal
    net: Decimal
    transaction_count: int


@dataclass(frozen=True)
class CategorySpending:
    """Amount spent under a root category, children rolled up."""

    category_id: Optional[int]
    category_name: str
    amount: Decimal
    percentage: Decimal
    transaction_count: int


@dataclass(frozen=True)
class MonthlyTrend:
    """Income and expense for one calendar month."""

    month: str
    income: Decimal
    expense: Decimal
    net: Decimal


@dataclass(frozen=True)
class Dashboard:
    """Month-to-date overview."""

    net_worth: Decimal
    net_worth_change: Decimal
    income_this_month: Decimal
    expense_this_month: Decimal
    savings_rate: Decimal
    top_expense_category: Optional[str]
    top_expense_amount: Decimal
    daily_average_expense: Decimal
    days_in_period: int


@dataclass(frozen=True)
class InstallmentPlan:
    """Purchase split into a fixed number of EXPENSE payments."""

    id: int
    name: str
    total_amount: Decimal
    num_installments: int
    amount_per_installment: Decimal
    account_id: int
    category_id: int
    start_date: date
    frequency: InstallmentFrequency
    next_due_date: date
    installments_paid: int
    total_paid: Decimal
    status: InstallmentStatus
    memo: Optional[str]
    created_at: datetime

    @property
    def remaining_amount(self) -> Decimal:
        return self.total_amount - self.total_paid

    @property
    def remaining_installments(self) -> int:
        return self.num_installments - self.installments_paid


@dataclass(frozen=True)
class InstallmentPayment:
    """One paid installment and the transaction that posted it."""

    id: int
    plan_id: int
    transaction_id: int
    installment_number: int
    amount: Decimal
    due_date: date
    paid_date: date


@dataclass(frozen=True)
class InstallmentPlanDetails:
    """Plan with names resolved and its payment history."""

    plan: InstallmentPlan
    account_name: str
    category_name: str
    payments: list[InstallmentPayment]
    next_payment_amount: Decimal


@dataclass(frozen=True)
class TransactionTemplate:
    """Saved transaction shape for quick entry.

    Accounts and category are optional; a template without a source account
    needs one supplied when it is used.
    """

    id: int
    name: str
    kind: TransactionKind
    amount: Decimal
    account_id: Optional[int]
    to_account_id: Optional[int]
    category_id: Optional[int]
    memo: Optional[str]
    use_count: int
    last_used_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TemplatePatch:
    """Fields that may change on a transaction template."""

    name: Optional[str] = None
    amount: Optional[Decimal] = None
    account_id: Optional[int] = None
    to_account_id: Optional[int] = None
    category_id: Optional[int] = None
    memo: Optional[str] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.name,
                self.amount,
                self.account_id,
                self.to_account_id,
                self.category_id,
                self.memo,
            )
        )


@dataclass(frozen=True)
class SubcategoryAmount:
    """Amount booked on one subcategory, or directly on its parent."""

    category_id: int
    category_name: str
    amount: Decimal
    percentage: Decimal
    transaction_count: int


@dataclass(frozen=True)
class SubcategoryBreakdown:
    """Drill-down of a root category into its children."""

    parent_category_id: int
    parent_category_name: str
    total_amount: Decimal
    subcategories: list[SubcategoryAmount]


@dataclass(frozen=True)
class YearComparison:
    """Income and expense for one month in two consecutive years."""

    month: str
    month_num: int
    current_year_income: Decimal
    current_year_expense: Decimal
    previous_year_income: Decimal
    previous_year_expense: Decimal
    income_change: Decimal
    expense_change: Decimal
