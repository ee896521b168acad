"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic so the domain never sees ORM
objects or their lazy-loading behaviour.
"""

from decimal import Decimal

from finledger.domain import entities as domain
from finledger.database import models as orm


def _money(value) -> Decimal:
    return Decimal(value) if value is not None else Decimal("0")


def account_group_to_domain(orm_group: orm.AccountGroup) -> domain.AccountGroup:
    """Convert SQLAlchemy AccountGroup model to domain AccountGroup entity."""
    return domain.AccountGroup(
        id=orm_group.id,
        name=orm_group.name,
        type=domain.AccountType(orm_group.type),
    )


def account_to_domain(orm_account: orm.Account) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        group_id=orm_account.group_id,
        name=orm_account.name,
        initial_balance=_money(orm_account.initial_balance),
        currency=orm_account.currency,
        created_at=orm_account.created_at,
        type=domain.AccountType(orm_account.group.type),
    )


def category_to_domain(orm_category: orm.Category) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        kind=domain.CategoryKind(orm_category.kind),
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: orm.Transaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        date=orm_transaction.date,
        kind=domain.TransactionKind(orm_transaction.kind),
        amount=_money(orm_transaction.amount),
        account_id=orm_transaction.account_id,
        to_account_id=orm_transaction.to_account_id,
        category_id=orm_transaction.category_id,
        memo=orm_transaction.memo,
        photo_ref=orm_transaction.photo_ref,
        created_at=orm_transaction.created_at,
    )


def journal_entry_to_domain(orm_entry: orm.JournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model to domain JournalEntry entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        account_id=orm_entry.account_id,
        debit=_money(orm_entry.debit),
        credit=_money(orm_entry.credit),
    )


def budget_to_domain(orm_budget: orm.Budget) -> domain.Budget:
    """Convert SQLAlchemy Budget model to domain Budget entity."""
    return domain.Budget(
        id=orm_budget.id,
        category_id=orm_budget.category_id,
        amount=_money(orm_budget.amount),
        period=domain.BudgetPeriod(orm_budget.period),
        start_date=orm_budget.start_date,
        created_at=orm_budget.created_at,
    )


def card_settings_to_domain(orm_settings: orm.CreditCardSettings) -> domain.CreditCardSettings:
    """Convert SQLAlchemy CreditCardSettings model to domain entity."""
    return domain.CreditCardSettings(
        id=orm_settings.id,
        account_id=orm_settings.account_id,
        credit_limit=_money(orm_settings.credit_limit),
        statement_day=orm_settings.statement_day,
        payment_due_day=orm_settings.payment_due_day,
        minimum_payment_percentage=_money(orm_settings.minimum_payment_percentage),
        auto_settlement_enabled=bool(orm_settings.auto_settlement_enabled),
        settlement_account_id=orm_settings.settlement_account_id,
        created_at=orm_settings.created_at,
    )


def statement_to_domain(orm_statement: orm.CreditCardStatement) -> domain.CreditCardStatement:
    """Convert SQLAlchemy CreditCardStatement model to domain entity."""
    return domain.CreditCardStatement(
        id=orm_statement.id,
        settings_id=orm_statement.settings_id,
        cycle_start=orm_statement.cycle_start,
        cycle_end=orm_statement.cycle_end,
        statement_date=orm_statement.statement_date,
        due_date=orm_statement.due_date,
        opening_balance=_money(orm_statement.opening_balance),
        closing_balance=_money(orm_statement.closing_balance),
        total_charges=_money(orm_statement.total_charges),
        total_payments=_money(orm_statement.total_payments),
        minimum_payment=_money(orm_statement.minimum_payment),
        status=domain.StatementStatus(orm_statement.status),
        paid_amount=_money(orm_statement.paid_amount),
        paid_date=orm_statement.paid_date,
    )


def exchange_rate_to_domain(orm_rate: orm.ExchangeRate) -> domain.ExchangeRate:
    """Convert SQLAlchemy ExchangeRate model to domain ExchangeRate entity."""
    return domain.ExchangeRate(
        id=orm_rate.id,
        from_currency=orm_rate.from_currency,
        to_currency=orm_rate.to_currency,
        rate=Decimal(orm_rate.rate),
        effective_date=orm_rate.effective_date,
        created_at=orm_rate.created_at,
    )


def snapshot_to_domain(orm_snapshot: orm.NetWorthSnapshot) -> domain.NetWorthSnapshot:
    """Convert SQLAlchemy NetWorthSnapshot model to domain entity."""
    return domain.NetWorthSnapshot(
        id=orm_snapshot.id,
        snapshot_date=orm_snapshot.snapshot_date,
        total_assets=_money(orm_snapshot.total_assets),
        total_liabilities=_money(orm_snapshot.total_liabilities),
        net_worth=_money(orm_snapshot.net_worth),
    )


def recurring_to_domain(orm_recurring: orm.RecurringTransaction) -> domain.RecurringTransaction:
    """Convert SQLAlchemy RecurringTransaction model to domain entity."""
    return domain.RecurringTransaction(
        id=orm_recurring.id,
        name=orm_recurring.name,
        description=orm_recurring.description,
        kind=domain.TransactionKind(orm_recurring.kind),
        amount=_money(orm_recurring.amount),
        account_id=orm_recurring.account_id,
        to_account_id=orm_recurring.to_account_id,
        category_id=orm_recurring.category_id,
        frequency=domain.Frequency(orm_recurring.frequency),
        interval_days=orm_recurring.interval_days,
        start_date=orm_recurring.start_date,
        end_date=orm_recurring.end_date,
        next_execution_date=orm_recurring.next_execution_date,
        last_executed_date=orm_recurring.last_executed_date,
        execution_count=orm_recurring.execution_count,
        is_active=bool(orm_recurring.is_active),
        created_at=orm_recurring.created_at,
    )


def app_config_to_domain(orm_config: orm.AppConfig) -> domain.AppConfig:
    """Convert SQLAlchemy AppConfig model to domain AppConfig entity."""
    return domain.AppConfig(
        primary_currency=orm_config.primary_currency,
        version=orm_config.version,
        updated_at=orm_config.updated_at,
    )


def installment_plan_to_domain(orm_plan: orm.InstallmentPlan) -> domain.InstallmentPlan:
    """Convert SQLAlchemy InstallmentPlan model to domain entity."""
    return domain.InstallmentPlan(
        id=orm_plan.id,
        name=orm_plan.name,
        total_amount=_money(orm_plan.total_amount),
        num_installments=orm_plan.num_installments,
        amount_per_installment=_money(orm_plan.amount_per_installment),
        account_id=orm_plan.account_id,
        category_id=orm_plan.category_id,
        start_date=orm_plan.start_date,
        frequency=domain.InstallmentFrequency(orm_plan.frequency),
        next_due_date=orm_plan.next_due_date,
        installments_paid=orm_plan.installments_paid,
        total_paid=_money(orm_plan.total_paid),
        status=domain.InstallmentStatus(orm_plan.status),
        memo=orm_plan.memo,
        created_at=orm_plan.created_at,
    )


def installment_payment_to_domain(orm_payment: orm.InstallmentPayment) -> domain.InstallmentPayment:
    """Convert SQLAlchemy InstallmentPayment model to domain entity."""
    return domain.InstallmentPayment(
        id=orm_payment.id,
        plan_id=orm_payment.plan_id,
        transaction_id=orm_payment.transaction_id,
        installment_number=orm_payment.installment_number,
        amount=_money(orm_payment.amount),
        due_date=orm_payment.due_date,
        paid_date=orm_payment.paid_date,
    )


def template_to_domain(orm_template: orm.TransactionTemplate) -> domain.TransactionTemplate:
    """Convert SQLAlchemy TransactionTemplate model to domain entity."""
    return domain.TransactionTemplate(
        id=orm_template.id,
        name=orm_template.name,
        kind=domain.TransactionKind(orm_template.kind),
        amount=_money(orm_template.amount),
        account_id=orm_template.account_id,
        to_account_id=orm_template.to_account_id,
        category_id=orm_template.category_id,
        memo=orm_template.memo,
        use_count=orm_template.use_count,
        last_used_at=orm_template.last_used_at,
        created_at=orm_template.created_at,
        updated_at=orm_template.updated_at,
    )
