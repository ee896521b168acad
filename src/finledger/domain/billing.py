"""Credit card billing: cycles, statements and settlement.

Statement lifecycle::

    OPEN -> CLOSED (generated) -> PARTIAL -> PAID

Generated statements are stored CLOSED. Payment allocation moves them to
PARTIAL or PAID; PAID is terminal.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.balance import BalanceService
from finledger.domain.entities import (
    Account,
    AccountType,
    BillingCycle,
    CardBalances,
    CreditCardSettings,
    CreditCardSettingsPatch,
    CreditCardStatement,
    Settlement,
    StatementPayment,
    StatementStatus,
    TransactionKind,
)
from finledger.domain.errors import (
    AccountNotFound,
    ConflictError,
    DependencyError,
    DomainError,
    NotFoundError,
    ValidationError,
    card_settings_not_found,
)
from finledger.domain.money import CENT, ZERO, liability_magnitude, round_money, to_decimal
from finledger.domain.transaction import TransactionService, coerce_amount
from finledger.utils.periods import add_months, anchored_date, parse_iso_date

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
DEFAULT_MINIMUM_PAYMENT_PERCENTAGE = Decimal("5.0")
AUTO_SETTLEMENT_MEMO_PREFIX = "Auto-settlement"

UNPAID_STATUSES = [StatementStatus.OPEN, StatementStatus.CLOSED, StatementStatus.PARTIAL]


def billing_cycle(statement_day: int, today: date) -> BillingCycle:
    """Compute the billing cycle containing ``today``.

    A cycle ends on the statement day and starts the day after the previous
    statement day. Example with statement day 25: on 2025-03-10 the cycle is
    2025-02-26 to 2025-03-25; on 2025-03-26 it is 2025-03-26 to 2025-04-25.
    """
    first_of_month = today.replace(day=1)
    if today.day <= statement_day:
        end = anchored_date(today.year, today.month, statement_day)
        previous = add_months(first_of_month, -1)
        start = anchored_date(previous.year, previous.month, statement_day) + timedelta(days=1)
    else:
        start = anchored_date(today.year, today.month, statement_day) + timedelta(days=1)
        following = add_months(first_of_month, 1)
        end = anchored_date(following.year, following.month, statement_day)
    return BillingCycle(start=start, end=end)


def payment_due_date(payment_due_day: int, cycle_end: date) -> date:
    """Due date: the payment due day in the month after the cycle ends."""
    following = add_months(cycle_end.replace(day=1), 1)
    return anchored_date(following.year, following.month, payment_due_day)


def _check_day(value: int, label: str) -> int:
    if not isinstance(value, int) or not 1 <= value <= 28:
        raise ValidationError(f"{label} must be between 1 and 28")
    return value


def _check_limit(value) -> Decimal:
    limit = round_money(to_decimal(value))
    if limit < ZERO:
        raise ValidationError("Credit limit cannot be negative")
    return limit


def _check_percentage(value) -> Decimal:
    percentage = to_decimal(value)
    if percentage < ZERO or percentage > HUNDRED:
        raise ValidationError("Minimum payment percentage must be between 0 and 100")
    return percentage


class CreditCardService:
    """Service for credit card settings, statements and payments."""

    def __init__(self, db: Database):
        """Initialize credit card service.

        Args:
            db: Database instance
        """
        self.db = db
        self.transactions = TransactionService(db)
        self.balances = BalanceService(db)

    # Settings
    def _check_settlement_account(self, settlement_account_id: int, card_account_id: int) -> None:
        account = self.db.get_account(settlement_account_id)
        if account is None:
            raise AccountNotFound("Settlement account does not exist")
        if account.type != AccountType.ASSET:
            raise ValidationError("Settlement account must be an ASSET account")
        if settlement_account_id == card_account_id:
            raise ValidationError("Settlement account cannot be the credit card itself")

    def create_card_settings(
        self,
        account_id: int,
        credit_limit,
        statement_day: int,
        payment_due_day: int,
        minimum_payment_percentage=DEFAULT_MINIMUM_PAYMENT_PERCENTAGE,
        auto_settlement_enabled: bool = False,
        settlement_account_id: Optional[int] = None,
    ) -> int:
        """Attach billing settings to a LIABILITY account.

        Args:
            account_id: Card account; must be a LIABILITY account
            credit_limit: Limit, zero or more; zero means no limit tracking
            statement_day: Day of month the cycle closes (1-28)
            payment_due_day: Day of month payment is due (1-28)
            minimum_payment_percentage: Percent of closing balance (0-100)
            auto_settlement_enabled: Pay statements automatically on the due day
            settlement_account_id: ASSET account auto-settlement pays from

        Returns:
            Settings ID

        Raises:
            AccountNotFound: If the card or settlement account is missing
            ValidationError: If any field is out of range
            ConflictError: If the account already has settings
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFound("Account does not exist")
        if account.type != AccountType.LIABILITY:
            raise ValidationError("Credit card must be a LIABILITY account")
        if self.db.get_card_settings_by_account(account_id) is not None:
            raise ConflictError("Credit card settings already exist for this account")

        _check_day(statement_day, "Statement day")
        _check_day(payment_due_day, "Payment due day")
        limit = _check_limit(credit_limit)
        percentage = _check_percentage(minimum_payment_percentage)
        if settlement_account_id is not None:
            self._check_settlement_account(settlement_account_id, account_id)
        if auto_settlement_enabled and settlement_account_id is None:
            raise ValidationError("Auto-settlement requires a settlement account")

        return self.db.create_card_settings(
            account_id=account_id,
            credit_limit=limit,
            statement_day=statement_day,
            payment_due_day=payment_due_day,
            minimum_payment_percentage=percentage,
            auto_settlement_enabled=auto_settlement_enabled,
            settlement_account_id=settlement_account_id,
        )

    def get_card_settings(self, settings_id: int) -> Optional[CreditCardSettings]:
        """Get credit card settings by ID, or None."""
        return self.db.get_card_settings(settings_id)

    def require_card_settings(self, settings_id: int) -> CreditCardSettings:
        """Get credit card settings by ID or raise NotFoundError."""
        settings = self.db.get_card_settings(settings_id)
        if settings is None:
            raise NotFoundError(card_settings_not_found(settings_id))
        return settings

    def list_card_settings(self) -> list[CreditCardSettings]:
        """List every card's settings."""
        return self.db.list_card_settings()

    def update_card_settings(self, settings_id: int, patch: CreditCardSettingsPatch) -> None:
        """Validate and apply a settings patch.

        Raises:
            ValidationError: If the patch is empty or a field is out of range
            NotFoundError: If the settings don't exist
        """
        if patch.is_empty():
            raise ValidationError("No fields to update")
        settings = self.require_card_settings(settings_id)

        if patch.statement_day is not None:
            _check_day(patch.statement_day, "Statement day")
        if patch.payment_due_day is not None:
            _check_day(patch.payment_due_day, "Payment due day")
        limit = _check_limit(patch.credit_limit) if patch.credit_limit is not None else None
        percentage = (
            _check_percentage(patch.minimum_payment_percentage)
            if patch.minimum_payment_percentage is not None
            else None
        )
        if patch.settlement_account_id is not None and not patch.clear_settlement_account:
            self._check_settlement_account(patch.settlement_account_id, settings.account_id)

        if patch.clear_settlement_account:
            settlement_after = None
        elif patch.settlement_account_id is not None:
            settlement_after = patch.settlement_account_id
        else:
            settlement_after = settings.settlement_account_id
        enabled_after = (
            patch.auto_settlement_enabled
            if patch.auto_settlement_enabled is not None
            else settings.auto_settlement_enabled
        )
        if enabled_after and settlement_after is None:
            raise ValidationError("Auto-settlement requires a settlement account")

        self.db.update_card_settings(
            settings_id,
            CreditCardSettingsPatch(
                credit_limit=limit,
                statement_day=patch.statement_day,
                payment_due_day=patch.payment_due_day,
                minimum_payment_percentage=percentage,
                auto_settlement_enabled=patch.auto_settlement_enabled,
                settlement_account_id=patch.settlement_account_id,
                clear_settlement_account=patch.clear_settlement_account,
            ),
        )

    def delete_card_settings(self, settings_id: int) -> None:
        """Delete settings; blocked while statements exist."""
        self.require_card_settings(settings_id)
        if self.db.list_statements(settings_id):
            raise DependencyError("Cannot delete credit card settings with existing statements")
        self.db.delete_card_settings(settings_id)

    # Statements
    def current_cycle(self, settings_id: int, today: Optional[date] = None) -> BillingCycle:
        """Billing cycle containing ``today`` for a card."""
        settings = self.require_card_settings(settings_id)
        return billing_cycle(settings.statement_day, today or date.today())

    def generate_statement(
        self, settings_id: int, today: Optional[date] = None
    ) -> CreditCardStatement:
        """Close the current billing cycle into a statement.

        Charges are EXPENSE transactions on the card account and payments are
        TRANSFER transactions into it, both dated within the cycle. The
        opening balance carries over from the latest statement; for the first
        statement it is replayed from all activity before the cycle.

        Args:
            settings_id: Card settings ID
            today: Date that selects the cycle (defaults to date.today())

        Returns:
            The stored statement, status CLOSED

        Raises:
            NotFoundError: If the settings don't exist
            ConflictError: If a statement already covers this cycle
        """
        settings = self.require_card_settings(settings_id)
        cycle = billing_cycle(settings.statement_day, today or date.today())
        card_id = settings.account_id

        with self.db.atomic():
            if self.db.find_statement(settings_id, cycle.start, cycle.end) is not None:
                raise ConflictError("Statement already exists for this billing cycle")

            charges = self._charges(card_id, cycle.start, cycle.end)
            payments = self._payments(card_id, cycle.start, cycle.end)

            previous = self.db.latest_statement(settings_id)
            if previous is not None:
                opening = previous.closing_balance
            else:
                before = cycle.start - timedelta(days=1)
                prior_charges = self._charges(card_id, None, before)
                prior_payments = self._payments(card_id, None, before)
                opening = liability_magnitude(prior_payments - prior_charges)

            closing = opening + charges - payments
            minimum = max(ZERO, round_money(closing * settings.minimum_payment_percentage / HUNDRED))

            statement_id = self.db.create_statement(
                settings_id=settings_id,
                cycle_start=cycle.start,
                cycle_end=cycle.end,
                statement_date=cycle.end,
                due_date=payment_due_date(settings.payment_due_day, cycle.end),
                opening_balance=round_money(opening),
                closing_balance=round_money(closing),
                total_charges=round_money(charges),
                total_payments=round_money(payments),
                minimum_payment=minimum,
                status=StatementStatus.CLOSED,
            )

        logger.info("Generated statement %s for card settings %s", statement_id, settings_id)
        return self.db.get_statement(statement_id)

    def list_statements(self, settings_id: int) -> list[CreditCardStatement]:
        """Statements for a card, newest cycle first."""
        self.require_card_settings(settings_id)
        return self.db.list_statements(settings_id)

    def get_statement(self, statement_id: int) -> Optional[CreditCardStatement]:
        """Get a statement by ID, or None."""
        return self.db.get_statement(statement_id)

    def _charges(self, card_id: int, start: Optional[date], end: Optional[date]) -> Decimal:
        return self.db.sum_transactions(
            start_date=start, end_date=end, account_id=card_id, kind=TransactionKind.EXPENSE.value
        )

    def _payments(self, card_id: int, start: Optional[date], end: Optional[date]) -> Decimal:
        return self.db.sum_transactions(
            start_date=start,
            end_date=end,
            to_account_id=card_id,
            kind=TransactionKind.TRANSFER.value,
        )

    # Balances
    def card_balances(self, settings_id: int, today: Optional[date] = None) -> CardBalances:
        """Current balances for a card, plus the next unpaid statement.

        Args:
            settings_id: Card settings ID
            today: Reference date (defaults to date.today())

        Returns:
            CardBalances with money rounded to 2 places
        """
        settings = self.require_card_settings(settings_id)
        today = today or date.today()
        account = self.db.get_account(settings.account_id)
        cycle = billing_cycle(settings.statement_day, today)

        total = liability_magnitude(self.balances.balance_as_of(settings.account_id))
        charges = self._charges(settings.account_id, cycle.start, None)
        payments = self._payments(settings.account_id, cycle.start, None)
        limit = settings.credit_limit

        if limit > ZERO:
            available = max(ZERO, limit - total)
            utilization = round_money(total / limit * HUNDRED)
        else:
            available = ZERO
            utilization = ZERO

        unpaid = self.db.list_statements(settings_id, statuses=UNPAID_STATUSES, oldest_due_first=True)
        next_statement = unpaid[0] if unpaid else None

        return CardBalances(
            settings=settings,
            account_name=account.name if account is not None else "",
            cycle=cycle,
            total_balance=round_money(total),
            current_cycle_charges=round_money(charges),
            current_cycle_payments=round_money(payments),
            outstanding_balance=round_money(max(ZERO, charges - payments)),
            available_credit=round_money(available),
            utilization_percentage=utilization,
            next_due_date=next_statement.due_date if next_statement else None,
            next_due_amount=round_money(next_statement.remaining) if next_statement else None,
        )

    def list_card_balances(self, today: Optional[date] = None) -> list[CardBalances]:
        """Balances for every card."""
        return [self.card_balances(s.id, today) for s in self.db.list_card_settings()]

    # Payments
    def _payment_account(self, payment_account_id: int, card_account_id: int) -> Account:
        account = self.db.get_account(payment_account_id)
        if account is None:
            raise AccountNotFound("Payment account does not exist")
        if account.type != AccountType.ASSET:
            raise ValidationError("Payment must come from an ASSET account")
        if payment_account_id == card_account_id:
            raise ValidationError("Cannot pay credit card from itself")
        return account

    def settle(
        self,
        settings_id: int,
        payment_account_id: int,
        amount=None,
        on_date: Optional[date | str] = None,
        memo: Optional[str] = None,
    ) -> Settlement:
        """Pay a card and allocate the payment to its statements.

        Posts a TRANSFER from the payment account to the card, then applies
        the amount to unpaid statements oldest due date first. Both happen in
        one unit of work.

        Args:
            settings_id: Card settings ID
            payment_account_id: ASSET account paying the card
            amount: Amount to pay; defaults to the full outstanding balance
            on_date: Payment date (defaults to today)
            memo: Transaction memo

        Returns:
            Settlement with the posted transaction and per-statement amounts

        Raises:
            AccountNotFound: If the payment account doesn't exist
            ValidationError: If the payment account is not ASSET, is the card,
                or there is nothing to pay
            NonPositiveAmount: If an explicit amount is not positive
        """
        settings = self.require_card_settings(settings_id)
        card_id = settings.account_id
        self._payment_account(payment_account_id, card_id)

        if amount is not None:
            amount = coerce_amount(amount)
        else:
            amount = round_money(liability_magnitude(self.balances.balance_as_of(card_id)))
            if amount <= ZERO:
                raise ValidationError("No outstanding balance to pay")

        payment_date = parse_iso_date(on_date) if on_date is not None else date.today()
        memo = memo or f"Credit card payment - {card_id}"

        with self.db.atomic():
            transaction_id = self.transactions.create_transaction(
                date=payment_date,
                kind=TransactionKind.TRANSFER,
                amount=amount,
                account_id=payment_account_id,
                to_account_id=card_id,
                memo=memo,
            )
            allocations = self._allocate(settings_id, amount, payment_date)

        logger.info(
            "Settled %s on card settings %s across %d statement(s)",
            amount,
            settings_id,
            len(allocations),
        )
        return Settlement(transaction_id=transaction_id, amount=amount, allocations=allocations)

    def _allocate(self, settings_id: int, amount: Decimal, paid_on: date) -> list[StatementPayment]:
        remaining = amount
        allocations = []
        statements = self.db.list_statements(
            settings_id, statuses=UNPAID_STATUSES, oldest_due_first=True
        )
        for statement in statements:
            if remaining <= ZERO:
                break
            owed = statement.closing_balance - statement.paid_amount
            if owed <= ZERO:
                continue
            applied = min(remaining, owed)
            new_paid = statement.paid_amount + applied
            if abs(new_paid - statement.closing_balance) < CENT:
                status = StatementStatus.PAID
            else:
                status = StatementStatus.PARTIAL
            self.db.record_statement_payment(statement.id, new_paid, status, paid_on)
            allocations.append(StatementPayment(statement_id=statement.id, applied=applied, status=status))
            remaining -= applied
        return allocations

    def process_auto_settlements(self, today: Optional[date] = None) -> list[int]:
        """Pay due statements for cards with auto-settlement enabled.

        Runs only on each card's payment due day and at most once per day
        per card. A failure on one card is logged and does not stop others.

        Returns:
            IDs of the statements that were paid
        """
        today = today or date.today()
        settled = []
        for settings in self.db.list_card_settings():
            if not settings.auto_settlement_enabled or settings.settlement_account_id is None:
                continue
            if today.day != settings.payment_due_day:
                continue
            try:
                statement_id = self._auto_settle(settings, today)
            except DomainError as e:
                logger.warning("Auto-settlement failed for card settings %s: %s", settings.id, e)
                continue
            if statement_id is not None:
                settled.append(statement_id)
        return settled

    def _auto_settle(self, settings: CreditCardSettings, today: date) -> Optional[int]:
        already_paid = self.db.list_transactions(
            start_date=today,
            end_date=today,
            account_id=settings.settlement_account_id,
            to_account_id=settings.account_id,
            kind=TransactionKind.TRANSFER.value,
            memo_prefix=AUTO_SETTLEMENT_MEMO_PREFIX,
            limit=1,
        )
        if already_paid:
            logger.debug("Card settings %s already auto-settled on %s", settings.id, today)
            return None

        statements = self.db.list_statements(
            settings.id,
            statuses=[StatementStatus.OPEN, StatementStatus.CLOSED],
            oldest_due_first=True,
        )
        if not statements:
            return None
        oldest = statements[0]
        if oldest.remaining <= ZERO:
            return None

        self.settle(
            settings.id,
            settings.settlement_account_id,
            amount=oldest.remaining,
            on_date=today,
            memo=f"{AUTO_SETTLEMENT_MEMO_PREFIX} - statement {oldest.id}",
        )
        return oldest.id
