"""SQLAlchemy models for the finledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(14, 2)
RATE = Numeric(18, 8)


def _now() -> datetime:
    return datetime.now(UTC)


class AccountGroup(Base):
    """Account group model (ASSET or LIABILITY)."""

    __tablename__ = "account_groups"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    type = Column(String, nullable=False)

    __table_args__ = (CheckConstraint("type IN ('ASSET', 'LIABILITY')", name="ck_group_type"),)

    accounts = relationship("Account", back_populates="group")


class Account(Base):
    """Ledger account model. Balance is derived, never stored."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("account_groups.id"), nullable=False)
    name = Column(String, unique=True, nullable=False)
    initial_balance = Column(MONEY, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="LKR")
    created_at = Column(DateTime, default=_now, nullable=False)

    group = relationship("AccountGroup", back_populates="accounts")


class Category(Base):
    """Category model with a single level of nesting."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    kind = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (CheckConstraint("kind IN ('INCOME', 'EXPENSE')", name="ck_category_kind"),)

    parent = relationship("Category", remote_side=[id], backref="children")


class Transaction(Base):
    """Transaction model; owns its journal entries."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    kind = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    memo = Column(String, nullable=True)
    photo_ref = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        CheckConstraint("kind IN ('INCOME', 'EXPENSE', 'TRANSFER')", name="ck_transaction_kind"),
        CheckConstraint("amount > 0", name="ck_transaction_amount"),
    )

    entries = relationship(
        "JournalEntry", back_populates="transaction", cascade="all, delete-orphan"
    )


class JournalEntry(Base):
    """Single debit or credit line; exactly one side is positive."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    debit = Column(MONEY, nullable=False, default=0)
    credit = Column(MONEY, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "(debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0)",
            name="ck_journal_one_side",
        ),
    )

    transaction = relationship("Transaction", back_populates="entries")


class Budget(Base):
    """Budget model; the active window is computed from start_date."""

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    period = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("category_id", "period", "start_date", name="uq_budget_period"),
        CheckConstraint("period IN ('MONTHLY', 'YEARLY')", name="ck_budget_period"),
    )


class CreditCardSettings(Base):
    """Billing configuration for a LIABILITY account."""

    __tablename__ = "credit_card_settings"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), unique=True, nullable=False)
    credit_limit = Column(MONEY, nullable=False, default=0)
    statement_day = Column(Integer, nullable=False)
    payment_due_day = Column(Integer, nullable=False)
    minimum_payment_percentage = Column(Numeric(5, 2), nullable=False, default=5)
    auto_settlement_enabled = Column(Boolean, nullable=False, default=False)
    settlement_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        CheckConstraint("statement_day BETWEEN 1 AND 28", name="ck_statement_day"),
        CheckConstraint("payment_due_day BETWEEN 1 AND 28", name="ck_payment_due_day"),
    )

    statements = relationship("CreditCardStatement", back_populates="settings")


class CreditCardStatement(Base):
    """Closed billing cycle; only payment fields change after creation."""

    __tablename__ = "credit_card_statements"

    id = Column(Integer, primary_key=True)
    settings_id = Column(Integer, ForeignKey("credit_card_settings.id"), nullable=False)
    cycle_start = Column(Date, nullable=False)
    cycle_end = Column(Date, nullable=False)
    statement_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    opening_balance = Column(MONEY, nullable=False, default=0)
    closing_balance = Column(MONEY, nullable=False, default=0)
    total_charges = Column(MONEY, nullable=False, default=0)
    total_payments = Column(MONEY, nullable=False, default=0)
    minimum_payment = Column(MONEY, nullable=False, default=0)
    status = Column(String, nullable=False, default="OPEN")
    paid_amount = Column(MONEY, nullable=False, default=0)
    paid_date = Column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("settings_id", "cycle_start", "cycle_end", name="uq_statement_cycle"),
        CheckConstraint(
            "status IN ('OPEN', 'CLOSED', 'PARTIAL', 'PAID')", name="ck_statement_status"
        ),
    )

    settings = relationship("CreditCardSettings", back_populates="statements")


class ExchangeRate(Base):
    """Exchange rate time series row."""

    __tablename__ = "exchange_rates"

    id = Column(Integer, primary_key=True)
    from_currency = Column(String(3), nullable=False)
    to_currency = Column(String(3), nullable=False)
    rate = Column(RATE, nullable=False)
    effective_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("from_currency", "to_currency", "effective_date", name="uq_rate_day"),
    )


class NetWorthSnapshot(Base):
    """Month-end net worth cache."""

    __tablename__ = "net_worth_snapshots"

    id = Column(Integer, primary_key=True)
    snapshot_date = Column(Date, unique=True, nullable=False)
    total_assets = Column(MONEY, nullable=False)
    total_liabilities = Column(MONEY, nullable=False)
    net_worth = Column(MONEY, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class RecurringTransaction(Base):
    """Scheduled transaction template."""

    __tablename__ = "recurring_transactions"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    kind = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    frequency = Column(String, nullable=False)
    interval_days = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    next_execution_date = Column(Date, nullable=False)
    last_executed_date = Column(Date, nullable=True)
    execution_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class InstallmentPlan(Base):
    """Installment plan; payments post EXPENSE transactions."""

    __tablename__ = "installment_plans"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    total_amount = Column(MONEY, nullable=False)
    num_installments = Column(Integer, nullable=False)
    amount_per_installment = Column(MONEY, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    frequency = Column(String, nullable=False)
    next_due_date = Column(Date, nullable=False, index=True)
    installments_paid = Column(Integer, nullable=False, default=0)
    total_paid = Column(MONEY, nullable=False, default=0)
    status = Column(String, nullable=False, default="ACTIVE", index=True)
    memo = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_installment_total"),
        CheckConstraint("num_installments > 0", name="ck_installment_count"),
        CheckConstraint("frequency IN ('DAILY', 'WEEKLY', 'MONTHLY')", name="ck_installment_frequency"),
        CheckConstraint(
            "status IN ('ACTIVE', 'COMPLETED', 'CANCELLED')", name="ck_installment_status"
        ),
    )

    payments = relationship(
        "InstallmentPayment",
        back_populates="plan",
        order_by="InstallmentPayment.installment_number",
        passive_deletes=True,
    )


class InstallmentPayment(Base):
    """Link between an installment number and the transaction that paid it."""

    __tablename__ = "installment_payments"

    id = Column(Integer, primary_key=True)
    plan_id = Column(
        Integer, ForeignKey("installment_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    installment_number = Column(Integer, nullable=False)
    amount = Column(MONEY, nullable=False)
    due_date = Column(Date, nullable=False)
    paid_date = Column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("plan_id", "installment_number", name="uq_installment_number"),
    )

    plan = relationship("InstallmentPlan", back_populates="payments")


class TransactionTemplate(Base):
    """Saved transaction for quick entry; references are cleared on delete."""

    __tablename__ = "transaction_templates"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False, default=0)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    to_account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    memo = Column(String, nullable=True)
    use_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        CheckConstraint("kind IN ('INCOME', 'EXPENSE', 'TRANSFER')", name="ck_template_kind"),
        CheckConstraint("amount >= 0", name="ck_template_amount"),
    )


class AppConfig(Base):
    """Single-row application configuration."""

    __tablename__ = "app_config"

    id = Column(Integer, primary_key=True)
    primary_currency = Column(String(3), nullable=False, default="LKR")
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, default=_now, nullable=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory and ensure the schema exists."""
    engine: Engine = create_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
