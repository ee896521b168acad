"""Generic SQLAlchemy database implementation."""

import logging
from contextlib import contextmanager
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Iterable, Iterator, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Query, Session

from finledger.database.base import Database
from finledger.database import models
from finledger.database.models import create_session_factory
from finledger.database.mappers import (
    account_group_to_domain,
    account_to_domain,
    app_config_to_domain,
    budget_to_domain,
    card_settings_to_domain,
    category_to_domain,
    exchange_rate_to_domain,
    installment_payment_to_domain,
    installment_plan_to_domain,
    journal_entry_to_domain,
    recurring_to_domain,
    snapshot_to_domain,
    statement_to_domain,
    template_to_domain,
    transaction_to_domain,
)
from finledger.domain import entities as domain
from finledger.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    account_not_found,
    budget_not_found,
    card_settings_not_found,
    category_not_found,
    installment_plan_not_found,
    recurring_not_found,
    template_not_found,
    transaction_not_found,
)

logger = logging.getLogger(__name__)


def _decimal(value) -> Decimal:
    """Normalise an aggregate result to Decimal."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class SQLAlchemyDatabase(Database):
    """SQLAlchemy-based implementation of Database interface."""

    def __init__(self, database_url: str):
        """Initialize SQLAlchemy database.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db')
        """
        self.database_url = database_url
        self.session_factory = create_session_factory(database_url)
        self._session: Optional[Session] = None
        self._depth = 0

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def connect(self) -> None:
        """Connect to the database."""
        # Connection is lazy, so this is a no-op
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        # Schema is created automatically by create_session_factory
        pass

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Open a unit of work; nested calls join the outermost one."""
        session = self._get_session()
        if self._depth > 0:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
            session.commit()
        except OperationalError as e:
            session.rollback()
            logger.error("Store failure, unit of work rolled back: %s", e)
            raise StoreError(f"Database operation failed: {e.orig}") from e
        except IntegrityError as e:
            session.rollback()
            logger.warning("Constraint violation, unit of work rolled back: %s", e.orig)
            raise ConflictError(f"Database constraint violated: {e.orig}") from e
        except BaseException:
            session.rollback()
            raise
        finally:
            self._depth = 0

    # Account group operations
    def create_account_group(self, name: str, type: str) -> int:
        """Create an account group. Returns group ID."""
        with self.atomic():
            session = self._get_session()
            group = models.AccountGroup(name=name, type=type)
            session.add(group)
            session.flush()
            return group.id

    def get_account_group(self, group_id: int) -> Optional[domain.AccountGroup]:
        """Get account group by ID."""
        group = self._get_session().get(models.AccountGroup, group_id)
        return account_group_to_domain(group) if group is not None else None

    def list_account_groups(self) -> list[domain.AccountGroup]:
        """List all account groups."""
        groups = self._get_session().query(models.AccountGroup).order_by(models.AccountGroup.name).all()
        return [account_group_to_domain(g) for g in groups]

    # Account operations
    def create_account(
        self, group_id: int, name: str, initial_balance: Decimal, currency: str
    ) -> int:
        """Create a new account. Returns account ID."""
        with self.atomic():
            session = self._get_session()
            account = models.Account(
                group_id=group_id,
                name=name,
                initial_balance=initial_balance,
                currency=currency,
            )
            session.add(account)
            session.flush()
            return account.id

    def get_account(self, account_id: int) -> Optional[domain.Account]:
        """Get account by ID."""
        account = self._get_session().get(models.Account, account_id)
        return account_to_domain(account) if account is not None else None

    def list_accounts(self) -> list[domain.Account]:
        """List all accounts ordered by name."""
        accounts = self._get_session().query(models.Account).order_by(models.Account.name).all()
        return [account_to_domain(acc) for acc in accounts]

    def delete_account(self, account_id: int) -> None:
        """Delete an account row."""
        with self.atomic():
            session = self._get_session()
            account = session.get(models.Account, account_id)
            if account is None:
                raise NotFoundError(account_not_found(account_id))
            session.delete(account)

    def count_account_transactions(self, account_id: int) -> int:
        """Count transactions using the account as source or destination."""
        return (
            self._get_session()
            .query(models.Transaction)
            .filter(
                or_(
                    models.Transaction.account_id == account_id,
                    models.Transaction.to_account_id == account_id,
                )
            )
            .count()
        )

    # Category operations
    def create_category(self, name: str, parent_id: Optional[int], kind: str) -> int:
        """Create a new category. Returns category ID."""
        with self.atomic():
            session = self._get_session()
            category = models.Category(name=name, parent_id=parent_id, kind=kind)
            session.add(category)
            session.flush()
            return category.id

    def get_category(self, category_id: int) -> Optional[domain.Category]:
        """Get category by ID."""
        category = self._get_session().get(models.Category, category_id)
        return category_to_domain(category) if category is not None else None

    def list_categories(self, parent_id: Optional[int] = None) -> list[domain.Category]:
        """List categories, optionally only the children of ``parent_id``."""
        query = self._get_session().query(models.Category)
        if parent_id is not None:
            query = query.filter(models.Category.parent_id == parent_id)
        return [category_to_domain(c) for c in query.order_by(models.Category.name).all()]

    def update_category(self, category_id: int, patch: domain.CategoryPatch) -> None:
        """Apply a category patch."""
        with self.atomic():
            category = self._get_session().get(models.Category, category_id)
            if category is None:
                raise NotFoundError(category_not_found(category_id))
            if patch.name is not None:
                category.name = patch.name
            if patch.clear_parent:
                category.parent_id = None
            elif patch.parent_id is not None:
                category.parent_id = patch.parent_id

    def delete_category(self, category_id: int) -> None:
        """Delete a category row."""
        with self.atomic():
            session = self._get_session()
            category = session.get(models.Category, category_id)
            if category is None:
                raise NotFoundError(category_not_found(category_id))
            session.delete(category)

    def count_category_transactions(self, category_id: int) -> int:
        """Count transactions assigned to a category."""
        return (
            self._get_session()
            .query(models.Transaction)
            .filter(models.Transaction.category_id == category_id)
            .count()
        )

    def count_category_budgets(self, category_id: int) -> int:
        """Count budgets tracking a category."""
        return (
            self._get_session()
            .query(models.Budget)
            .filter(models.Budget.category_id == category_id)
            .count()
        )

    # Transaction and journal operations
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
        postings: Iterable[domain.Posting],
    ) -> int:
        """Insert a transaction together with its journal entries."""
        with self.atomic():
            session = self._get_session()
            transaction = models.Transaction(
                date=date,
                kind=kind,
                amount=amount,
                account_id=account_id,
                to_account_id=to_account_id,
                category_id=category_id,
                memo=memo,
                photo_ref=photo_ref,
            )
            for posting in postings:
                transaction.entries.append(
                    models.JournalEntry(
                        account_id=posting.account_id,
                        debit=posting.debit,
                        credit=posting.credit,
                    )
                )
            session.add(transaction)
            session.flush()
            return transaction.id

    def get_transaction(self, transaction_id: int) -> Optional[domain.Transaction]:
        """Get transaction by ID."""
        transaction = self._get_session().get(models.Transaction, transaction_id)
        return transaction_to_domain(transaction) if transaction is not None else None

    def _filtered_transactions(
        self,
        query: Query,
        start_date: Optional[date],
        end_date: Optional[date],
        account_id: Optional[int],
        to_account_id: Optional[int],
        category_ids: Optional[list[int]],
        kind: Optional[str],
    ) -> Query:
        txn = models.Transaction
        if start_date is not None:
            query = query.filter(txn.date >= start_date)
        if end_date is not None:
            query = query.filter(txn.date <= end_date)
        if account_id is not None:
            query = query.filter(txn.account_id == account_id)
        if to_account_id is not None:
            query = query.filter(txn.to_account_id == to_account_id)
        if category_ids is not None:
            query = query.filter(txn.category_id.in_(category_ids))
        if kind is not None:
            query = query.filter(txn.kind == kind)
        return query

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
    ) -> list[domain.Transaction]:
        """List transactions matching every given filter, newest first."""
        query = self._filtered_transactions(
            self._get_session().query(models.Transaction),
            start_date,
            end_date,
            account_id,
            to_account_id,
            category_ids,
            kind,
        )
        if memo_prefix is not None:
            query = query.filter(models.Transaction.memo.startswith(memo_prefix, autoescape=True))
        query = query.order_by(models.Transaction.date.desc(), models.Transaction.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return [transaction_to_domain(t) for t in query.all()]

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
        query = self._filtered_transactions(
            self._get_session().query(func.sum(models.Transaction.amount)),
            start_date,
            end_date,
            account_id,
            to_account_id,
            category_ids,
            kind,
        )
        return _decimal(query.scalar())

    def update_transaction(self, transaction_id: int, patch: domain.TransactionPatch) -> None:
        """Apply a patch to a transaction's non-monetary fields."""
        with self.atomic():
            transaction = self._get_session().get(models.Transaction, transaction_id)
            if transaction is None:
                raise NotFoundError(transaction_not_found(transaction_id))
            if patch.date is not None:
                transaction.date = patch.date
            if patch.clear_category:
                transaction.category_id = None
            elif patch.category_id is not None:
                transaction.category_id = patch.category_id
            if patch.memo is not None:
                transaction.memo = patch.memo
            if patch.photo_ref is not None:
                transaction.photo_ref = patch.photo_ref

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction and its journal entries."""
        with self.atomic():
            session = self._get_session()
            transaction = session.get(models.Transaction, transaction_id)
            if transaction is None:
                raise NotFoundError(transaction_not_found(transaction_id))
            session.delete(transaction)

    def get_journal_entries(self, transaction_id: int) -> list[domain.JournalEntry]:
        """Get the journal entries owned by a transaction."""
        entries = (
            self._get_session()
            .query(models.JournalEntry)
            .filter(models.JournalEntry.transaction_id == transaction_id)
            .order_by(models.JournalEntry.id)
            .all()
        )
        return [journal_entry_to_domain(e) for e in entries]

    def earliest_transaction_date(self) -> Optional[date]:
        """Return the date of the oldest transaction."""
        return self._get_session().query(func.min(models.Transaction.date)).scalar()

    def _postings_query(self, *columns) -> Query:
        return (
            self._get_session()
            .query(*columns)
            .select_from(models.JournalEntry)
            .join(models.Transaction, models.JournalEntry.transaction_id == models.Transaction.id)
        )

    def sum_postings(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> tuple[Decimal, Decimal]:
        """Sum debits and credits for an account over transaction dates."""
        query = self._postings_query(
            func.sum(models.JournalEntry.debit), func.sum(models.JournalEntry.credit)
        ).filter(models.JournalEntry.account_id == account_id)
        if start_date is not None:
            query = query.filter(models.Transaction.date >= start_date)
        if end_date is not None:
            query = query.filter(models.Transaction.date <= end_date)
        debit, credit = query.one()
        return _decimal(debit), _decimal(credit)

    def daily_posting_deltas(
        self, account_id: int, start_date: date, end_date: date
    ) -> dict[date, Decimal]:
        """Net debit minus credit per transaction date within the range."""
        rows = (
            self._postings_query(
                models.Transaction.date,
                func.sum(models.JournalEntry.debit),
                func.sum(models.JournalEntry.credit),
            )
            .filter(
                models.JournalEntry.account_id == account_id,
                models.Transaction.date >= start_date,
                models.Transaction.date <= end_date,
            )
            .group_by(models.Transaction.date)
            .all()
        )
        return {day: _decimal(debit) - _decimal(credit) for day, debit, credit in rows}

    def count_posted_transactions(
        self, account_id: int, start_date: date, end_date: date
    ) -> int:
        """Count distinct transactions with a posting to the account in range."""
        return (
            self._postings_query(func.count(func.distinct(models.JournalEntry.transaction_id)))
            .filter(
                models.JournalEntry.account_id == account_id,
                models.Transaction.date >= start_date,
                models.Transaction.date <= end_date,
            )
            .scalar()
            or 0
        )

    def list_dated_postings(self, end_date: Optional[date] = None) -> list[domain.DatedPosting]:
        """List every posting with its transaction date, oldest first."""
        query = self._postings_query(
            models.JournalEntry.account_id,
            models.Transaction.date,
            models.JournalEntry.debit,
            models.JournalEntry.credit,
        )
        if end_date is not None:
            query = query.filter(models.Transaction.date <= end_date)
        rows = query.order_by(models.Transaction.date, models.JournalEntry.id).all()
        return [
            domain.DatedPosting(
                account_id=account_id, date=day, debit=_decimal(debit), credit=_decimal(credit)
            )
            for account_id, day, debit, credit in rows
        ]

    # Budget operations
    def create_budget(
        self, category_id: int, amount: Decimal, period: str, start_date: date
    ) -> int:
        """Create a budget. Returns budget ID."""
        with self.atomic():
            session = self._get_session()
            budget = models.Budget(
                category_id=category_id, amount=amount, period=period, start_date=start_date
            )
            session.add(budget)
            session.flush()
            return budget.id

    def get_budget(self, budget_id: int) -> Optional[domain.Budget]:
        """Get budget by ID."""
        budget = self._get_session().get(models.Budget, budget_id)
        return budget_to_domain(budget) if budget is not None else None

    def find_budget(
        self, category_id: int, period: str, start_date: date
    ) -> Optional[domain.Budget]:
        """Find the budget for a category, period and anchor date."""
        budget = (
            self._get_session()
            .query(models.Budget)
            .filter(
                models.Budget.category_id == category_id,
                models.Budget.period == period,
                models.Budget.start_date == start_date,
            )
            .first()
        )
        return budget_to_domain(budget) if budget is not None else None

    def list_budgets(self) -> list[domain.Budget]:
        """List all budgets."""
        budgets = (
            self._get_session()
            .query(models.Budget)
            .order_by(models.Budget.start_date.desc(), models.Budget.id)
            .all()
        )
        return [budget_to_domain(b) for b in budgets]

    def update_budget(self, budget_id: int, patch: domain.BudgetPatch) -> None:
        """Apply a budget patch."""
        with self.atomic():
            budget = self._get_session().get(models.Budget, budget_id)
            if budget is None:
                raise NotFoundError(budget_not_found(budget_id))
            if patch.amount is not None:
                budget.amount = patch.amount
            if patch.start_date is not None:
                budget.start_date = patch.start_date

    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""
        with self.atomic():
            session = self._get_session()
            budget = session.get(models.Budget, budget_id)
            if budget is None:
                raise NotFoundError(budget_not_found(budget_id))
            session.delete(budget)

    # Credit card operations
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
        with self.atomic():
            session = self._get_session()
            settings = models.CreditCardSettings(
                account_id=account_id,
                credit_limit=credit_limit,
                statement_day=statement_day,
                payment_due_day=payment_due_day,
                minimum_payment_percentage=minimum_payment_percentage,
                auto_settlement_enabled=auto_settlement_enabled,
                settlement_account_id=settlement_account_id,
            )
            session.add(settings)
            session.flush()
            return settings.id

    def get_card_settings(self, settings_id: int) -> Optional[domain.CreditCardSettings]:
        """Get credit card settings by ID."""
        settings = self._get_session().get(models.CreditCardSettings, settings_id)
        return card_settings_to_domain(settings) if settings is not None else None

    def get_card_settings_by_account(
        self, account_id: int
    ) -> Optional[domain.CreditCardSettings]:
        """Get credit card settings linked to an account."""
        settings = (
            self._get_session()
            .query(models.CreditCardSettings)
            .filter(models.CreditCardSettings.account_id == account_id)
            .first()
        )
        return card_settings_to_domain(settings) if settings is not None else None

    def list_card_settings(self) -> list[domain.CreditCardSettings]:
        """List all credit card settings."""
        rows = self._get_session().query(models.CreditCardSettings).order_by(models.CreditCardSettings.id).all()
        return [card_settings_to_domain(s) for s in rows]

    def update_card_settings(
        self, settings_id: int, patch: domain.CreditCardSettingsPatch
    ) -> None:
        """Apply a credit card settings patch."""
        with self.atomic():
            settings = self._get_session().get(models.CreditCardSettings, settings_id)
            if settings is None:
                raise NotFoundError(card_settings_not_found(settings_id))
            if patch.credit_limit is not None:
                settings.credit_limit = patch.credit_limit
            if patch.statement_day is not None:
                settings.statement_day = patch.statement_day
            if patch.payment_due_day is not None:
                settings.payment_due_day = patch.payment_due_day
            if patch.minimum_payment_percentage is not None:
                settings.minimum_payment_percentage = patch.minimum_payment_percentage
            if patch.auto_settlement_enabled is not None:
                settings.auto_settlement_enabled = patch.auto_settlement_enabled
            if patch.clear_settlement_account:
                settings.settlement_account_id = None
            elif patch.settlement_account_id is not None:
                settings.settlement_account_id = patch.settlement_account_id

    def delete_card_settings(self, settings_id: int) -> None:
        """Delete credit card settings."""
        with self.atomic():
            session = self._get_session()
            settings = session.get(models.CreditCardSettings, settings_id)
            if settings is None:
                raise NotFoundError(card_settings_not_found(settings_id))
            session.delete(settings)

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
        status: domain.StatementStatus,
    ) -> int:
        """Create a statement. Returns statement ID."""
        with self.atomic():
            session = self._get_session()
            statement = models.CreditCardStatement(
                settings_id=settings_id,
                cycle_start=cycle_start,
                cycle_end=cycle_end,
                statement_date=statement_date,
                due_date=due_date,
                opening_balance=opening_balance,
                closing_balance=closing_balance,
                total_charges=total_charges,
                total_payments=total_payments,
                minimum_payment=minimum_payment,
                status=status.value,
                paid_amount=Decimal("0"),
            )
            session.add(statement)
            session.flush()
            return statement.id

    def get_statement(self, statement_id: int) -> Optional[domain.CreditCardStatement]:
        """Get statement by ID."""
        statement = self._get_session().get(models.CreditCardStatement, statement_id)
        return statement_to_domain(statement) if statement is not None else None

    def find_statement(
        self, settings_id: int, cycle_start: date, cycle_end: date
    ) -> Optional[domain.CreditCardStatement]:
        """Find the statement covering exactly this cycle."""
        statement = (
            self._get_session()
            .query(models.CreditCardStatement)
            .filter(
                models.CreditCardStatement.settings_id == settings_id,
                models.CreditCardStatement.cycle_start == cycle_start,
                models.CreditCardStatement.cycle_end == cycle_end,
            )
            .first()
        )
        return statement_to_domain(statement) if statement is not None else None

    def latest_statement(self, settings_id: int) -> Optional[domain.CreditCardStatement]:
        """Get the statement with the latest cycle end."""
        statement = (
            self._get_session()
            .query(models.CreditCardStatement)
            .filter(models.CreditCardStatement.settings_id == settings_id)
            .order_by(models.CreditCardStatement.cycle_end.desc())
            .first()
        )
        return statement_to_domain(statement) if statement is not None else None

    def list_statements(
        self,
        settings_id: int,
        statuses: Optional[list[domain.StatementStatus]] = None,
        oldest_due_first: bool = False,
    ) -> list[domain.CreditCardStatement]:
        """List statements for a card."""
        stmt = models.CreditCardStatement
        query = self._get_session().query(stmt).filter(stmt.settings_id == settings_id)
        if statuses is not None:
            query = query.filter(stmt.status.in_([s.value for s in statuses]))
        if oldest_due_first:
            query = query.order_by(stmt.due_date.asc(), stmt.id.asc())
        else:
            query = query.order_by(stmt.cycle_end.desc())
        return [statement_to_domain(s) for s in query.all()]

    def record_statement_payment(
        self,
        statement_id: int,
        paid_amount: Decimal,
        status: domain.StatementStatus,
        paid_date: date,
    ) -> None:
        """Store the cumulative paid amount and new status of a statement."""
        with self.atomic():
            statement = self._get_session().get(models.CreditCardStatement, statement_id)
            if statement is None:
                raise NotFoundError(f"Statement {statement_id} not found")
            statement.paid_amount = paid_amount
            statement.status = status.value
            statement.paid_date = paid_date

    # Exchange rate operations
    def upsert_exchange_rate(
        self, from_currency: str, to_currency: str, rate: Decimal, effective_date: date
    ) -> int:
        """Insert or replace the rate for a pair and day. Returns rate ID."""
        with self.atomic():
            session = self._get_session()
            existing = (
                session.query(models.ExchangeRate)
                .filter(
                    models.ExchangeRate.from_currency == from_currency,
                    models.ExchangeRate.to_currency == to_currency,
                    models.ExchangeRate.effective_date == effective_date,
                )
                .first()
            )
            if existing is not None:
                existing.rate = rate
                session.flush()
                return existing.id
            row = models.ExchangeRate(
                from_currency=from_currency,
                to_currency=to_currency,
                rate=rate,
                effective_date=effective_date,
            )
            session.add(row)
            session.flush()
            return row.id

    def find_latest_rate(
        self, from_currency: str, to_currency: str, on_date: date
    ) -> Optional[domain.ExchangeRate]:
        """Get the most recent rate for the pair effective on or before a date."""
        row = (
            self._get_session()
            .query(models.ExchangeRate)
            .filter(
                models.ExchangeRate.from_currency == from_currency,
                models.ExchangeRate.to_currency == to_currency,
                models.ExchangeRate.effective_date <= on_date,
            )
            .order_by(models.ExchangeRate.effective_date.desc())
            .first()
        )
        return exchange_rate_to_domain(row) if row is not None else None

    def list_exchange_rates(
        self,
        from_currency: Optional[str] = None,
        to_currency: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[domain.ExchangeRate]:
        """List rates, newest effective date first."""
        query = self._get_session().query(models.ExchangeRate)
        if from_currency is not None:
            query = query.filter(models.ExchangeRate.from_currency == from_currency)
        if to_currency is not None:
            query = query.filter(models.ExchangeRate.to_currency == to_currency)
        query = query.order_by(models.ExchangeRate.effective_date.desc(), models.ExchangeRate.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return [exchange_rate_to_domain(r) for r in query.all()]

    def delete_exchange_rate(self, rate_id: int) -> bool:
        """Delete a rate. Returns False if it did not exist."""
        with self.atomic():
            session = self._get_session()
            row = session.get(models.ExchangeRate, rate_id)
            if row is None:
                return False
            session.delete(row)
            return True

    # Net worth snapshot operations
    def count_snapshots(self) -> int:
        """Count stored snapshots."""
        return self._get_session().query(models.NetWorthSnapshot).count()

    def get_snapshot(self, snapshot_date: date) -> Optional[domain.NetWorthSnapshot]:
        """Get the snapshot for a month-end."""
        row = (
            self._get_session()
            .query(models.NetWorthSnapshot)
            .filter(models.NetWorthSnapshot.snapshot_date == snapshot_date)
            .first()
        )
        return snapshot_to_domain(row) if row is not None else None

    def upsert_snapshot(self, snapshot: domain.NetWorthSnapshot) -> None:
        """Insert a snapshot or overwrite the one for the same date."""
        with self.atomic():
            session = self._get_session()
            row = (
                session.query(models.NetWorthSnapshot)
                .filter(models.NetWorthSnapshot.snapshot_date == snapshot.snapshot_date)
                .first()
            )
            if row is None:
                row = models.NetWorthSnapshot(snapshot_date=snapshot.snapshot_date)
                session.add(row)
            row.total_assets = snapshot.total_assets
            row.total_liabilities = snapshot.total_liabilities
            row.net_worth = snapshot.net_worth

    def insert_snapshot_if_absent(self, snapshot: domain.NetWorthSnapshot) -> bool:
        """Insert a snapshot unless one exists for the date."""
        with self.atomic():
            session = self._get_session()
            exists = (
                session.query(models.NetWorthSnapshot.id)
                .filter(models.NetWorthSnapshot.snapshot_date == snapshot.snapshot_date)
                .first()
            )
            if exists is not None:
                return False
            session.add(
                models.NetWorthSnapshot(
                    snapshot_date=snapshot.snapshot_date,
                    total_assets=snapshot.total_assets,
                    total_liabilities=snapshot.total_liabilities,
                    net_worth=snapshot.net_worth,
                )
            )
            session.flush()
            return True

    def list_snapshots(self, limit: Optional[int] = None) -> list[domain.NetWorthSnapshot]:
        """List snapshots, newest first."""
        query = self._get_session().query(models.NetWorthSnapshot).order_by(
            models.NetWorthSnapshot.snapshot_date.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [snapshot_to_domain(s) for s in query.all()]

    # Recurring transaction operations
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
        with self.atomic():
            session = self._get_session()
            row = models.RecurringTransaction(
                name=name,
                description=description,
                kind=kind,
                amount=amount,
                account_id=account_id,
                to_account_id=to_account_id,
                category_id=category_id,
                frequency=frequency,
                interval_days=interval_days,
                start_date=start_date,
                end_date=end_date,
                next_execution_date=start_date,
                execution_count=0,
                is_active=True,
            )
            session.add(row)
            session.flush()
            return row.id

    def get_recurring(self, recurring_id: int) -> Optional[domain.RecurringTransaction]:
        """Get recurring transaction by ID."""
        row = self._get_session().get(models.RecurringTransaction, recurring_id)
        return recurring_to_domain(row) if row is not None else None

    def list_recurring(self, active_only: bool = False) -> list[domain.RecurringTransaction]:
        """List recurring transactions ordered by next execution date."""
        query = self._get_session().query(models.RecurringTransaction)
        if active_only:
            query = query.filter(models.RecurringTransaction.is_active.is_(True))
        query = query.order_by(
            models.RecurringTransaction.next_execution_date, models.RecurringTransaction.id
        )
        return [recurring_to_domain(r) for r in query.all()]

    def update_recurring_schedule(
        self,
        recurring_id: int,
        next_execution_date: date,
        last_executed_date: Optional[date],
        execution_count: int,
        is_active: bool,
    ) -> None:
        """Store the schedule state of a recurring transaction."""
        with self.atomic():
            row = self._get_session().get(models.RecurringTransaction, recurring_id)
            if row is None:
                raise NotFoundError(recurring_not_found(recurring_id))
            row.next_execution_date = next_execution_date
            row.last_executed_date = last_executed_date
            row.execution_count = execution_count
            row.is_active = is_active

    def delete_recurring(self, recurring_id: int) -> None:
        """Delete a recurring transaction."""
        with self.atomic():
            session = self._get_session()
            row = session.get(models.RecurringTransaction, recurring_id)
            if row is None:
                raise NotFoundError(recurring_not_found(recurring_id))
            session.delete(row)

    def count_account_recurring(self, account_id: int) -> int:
        """Count recurring transactions using the account as source or destination."""
        return (
            self._get_session()
            .query(models.RecurringTransaction)
            .filter(
                or_(
                    models.RecurringTransaction.account_id == account_id,
                    models.RecurringTransaction.to_account_id == account_id,
                )
            )
            .count()
        )

    def count_category_recurring(self, category_id: int) -> int:
        """Count recurring transactions assigned to a category."""
        return (
            self._get_session()
            .query(models.RecurringTransaction)
            .filter(models.RecurringTransaction.category_id == category_id)
            .count()
        )

    # Installment plan operations
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
        with self.atomic():
            session = self._get_session()
            plan = models.InstallmentPlan(
                name=name,
                total_amount=total_amount,
                num_installments=num_installments,
                amount_per_installment=amount_per_installment,
                account_id=account_id,
                category_id=category_id,
                start_date=start_date,
                frequency=frequency,
                next_due_date=start_date,
                installments_paid=0,
                total_paid=Decimal("0"),
                status="ACTIVE",
                memo=memo,
            )
            session.add(plan)
            session.flush()
            return plan.id

    def get_installment_plan(self, plan_id: int) -> Optional[domain.InstallmentPlan]:
        """Get installment plan by ID."""
        plan = self._get_session().get(models.InstallmentPlan, plan_id)
        return installment_plan_to_domain(plan) if plan is not None else None

    def list_installment_plans(self, status: Optional[str] = None) -> list[domain.InstallmentPlan]:
        """List installment plans ordered by next due date."""
        query = self._get_session().query(models.InstallmentPlan)
        if status is not None:
            query = query.filter(models.InstallmentPlan.status == status)
        query = query.order_by(models.InstallmentPlan.next_due_date, models.InstallmentPlan.id)
        return [installment_plan_to_domain(p) for p in query.all()]

    def list_installment_payments(self, plan_id: int) -> list[domain.InstallmentPayment]:
        """List payments of a plan by installment number."""
        payments = (
            self._get_session()
            .query(models.InstallmentPayment)
            .filter(models.InstallmentPayment.plan_id == plan_id)
            .order_by(models.InstallmentPayment.installment_number)
            .all()
        )
        return [installment_payment_to_domain(p) for p in payments]

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
        with self.atomic():
            session = self._get_session()
            plan = session.get(models.InstallmentPlan, plan_id)
            if plan is None:
                raise NotFoundError(installment_plan_not_found(plan_id))
            payment = models.InstallmentPayment(
                plan_id=plan_id,
                transaction_id=transaction_id,
                installment_number=installment_number,
                amount=amount,
                due_date=due_date,
                paid_date=paid_date,
            )
            session.add(payment)
            plan.installments_paid = installment_number
            plan.total_paid = Decimal(plan.total_paid) + amount
            plan.next_due_date = next_due_date
            plan.status = status
            session.flush()
            return payment.id

    def update_installment_status(self, plan_id: int, status: str) -> None:
        """Set the status of an installment plan."""
        with self.atomic():
            plan = self._get_session().get(models.InstallmentPlan, plan_id)
            if plan is None:
                raise NotFoundError(installment_plan_not_found(plan_id))
            plan.status = status

    def delete_installment_plan(self, plan_id: int) -> None:
        """Delete an installment plan."""
        with self.atomic():
            session = self._get_session()
            plan = session.get(models.InstallmentPlan, plan_id)
            if plan is None:
                raise NotFoundError(installment_plan_not_found(plan_id))
            session.delete(plan)

    def count_account_installment_plans(self, account_id: int) -> int:
        """Count installment plans paid from an account."""
        return (
            self._get_session()
            .query(models.InstallmentPlan)
            .filter(models.InstallmentPlan.account_id == account_id)
            .count()
        )

    def count_category_installment_plans(self, category_id: int) -> int:
        """Count installment plans booked to a category."""
        return (
            self._get_session()
            .query(models.InstallmentPlan)
            .filter(models.InstallmentPlan.category_id == category_id)
            .count()
        )

    # Transaction template operations
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
        with self.atomic():
            session = self._get_session()
            template = models.TransactionTemplate(
                name=name,
                kind=kind,
                amount=amount,
                account_id=account_id,
                to_account_id=to_account_id,
                category_id=category_id,
                memo=memo,
                use_count=0,
            )
            session.add(template)
            session.flush()
            return template.id

    def get_template(self, template_id: int) -> Optional[domain.TransactionTemplate]:
        """Get transaction template by ID."""
        template = self._get_session().get(models.TransactionTemplate, template_id)
        return template_to_domain(template) if template is not None else None

    def list_templates(self) -> list[domain.TransactionTemplate]:
        """List templates, most used first."""
        templates = (
            self._get_session()
            .query(models.TransactionTemplate)
            .order_by(
                models.TransactionTemplate.use_count.desc(),
                models.TransactionTemplate.updated_at.desc(),
                models.TransactionTemplate.id,
            )
            .all()
        )
        return [template_to_domain(t) for t in templates]

    def _require_template_row(self, template_id: int) -> models.TransactionTemplate:
        template = self._get_session().get(models.TransactionTemplate, template_id)
        if template is None:
            raise NotFoundError(template_not_found(template_id))
        return template

    def update_template(self, template_id: int, patch: domain.TemplatePatch) -> None:
        """Apply a template patch."""
        with self.atomic():
            template = self._require_template_row(template_id)
            if patch.name is not None:
                template.name = patch.name
            if patch.amount is not None:
                template.amount = patch.amount
            if patch.account_id is not None:
                template.account_id = patch.account_id
            if patch.to_account_id is not None:
                template.to_account_id = patch.to_account_id
            if patch.category_id is not None:
                template.category_id = patch.category_id
            if patch.memo is not None:
                template.memo = patch.memo
            template.updated_at = datetime.now(UTC)

    def record_template_use(self, template_id: int) -> None:
        """Increment the use count and stamp the last use time."""
        with self.atomic():
            template = self._require_template_row(template_id)
            now = datetime.now(UTC)
            template.use_count = template.use_count + 1
            template.last_used_at = now
            template.updated_at = now

    def delete_template(self, template_id: int) -> None:
        """Delete a transaction template."""
        with self.atomic():
            self._get_session().delete(self._require_template_row(template_id))

    # Configuration
    def _config_row(self) -> models.AppConfig:
        session = self._get_session()
        row = session.query(models.AppConfig).order_by(models.AppConfig.id).first()
        if row is None:
            row = models.AppConfig(primary_currency="LKR", version=1)
            session.add(row)
            session.flush()
        return row

    def get_app_config(self) -> domain.AppConfig:
        """Get the configuration record, creating the default one if missing."""
        with self.atomic():
            return app_config_to_domain(self._config_row())

    def update_app_config(self, primary_currency: str) -> domain.AppConfig:
        """Replace configuration fields and bump the version."""
        with self.atomic():
            row = self._config_row()
            row.primary_currency = primary_currency
            row.version = row.version + 1
            row.updated_at = datetime.now(UTC)
            self._get_session().flush()
            return app_config_to_domain(row)
