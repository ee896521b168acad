"""Recurring transaction service."""

import calendar
import logging
from datetime import date, timedelta
from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import Frequency, RecurringTransaction, TransactionKind
from finledger.domain.errors import (
    DomainError,
    InvalidKind,
    NotFoundError,
    ValidationError,
    recurring_not_found,
)
from finledger.domain.transaction import TransactionService
from finledger.utils.periods import add_months, parse_iso_date

logger = logging.getLogger(__name__)

GENERATED_MEMO = "Auto-generated from recurring transaction"


def coerce_frequency(frequency: str | Frequency) -> Frequency:
    """Normalise a frequency, raising InvalidKind for unknown values."""
    if isinstance(frequency, Frequency):
        return frequency
    try:
        return Frequency(str(frequency).strip().upper())
    except ValueError:
        raise InvalidKind("Invalid frequency")


def next_occurrence(
    current: date,
    frequency: Frequency,
    interval_days: Optional[int] = None,
    anchor_day: Optional[int] = None,
) -> date:
    """Date of the occurrence after ``current``.

    Monthly and yearly schedules keep ``anchor_day`` (the start date's day)
    where the target month has it, so Jan 31 -> Feb 29 -> Mar 31.
    """
    if frequency == Frequency.DAILY:
        return current + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return current + timedelta(weeks=1)
    if frequency == Frequency.CUSTOM:
        return current + timedelta(days=interval_days or 1)

    shifted = add_months(current, 1 if frequency == Frequency.MONTHLY else 12)
    if anchor_day is not None and shifted.day != anchor_day:
        last_day = calendar.monthrange(shifted.year, shifted.month)[1]
        shifted = shifted.replace(day=min(anchor_day, last_day))
    return shifted


class RecurringService:
    """Service for scheduled transactions."""

    def __init__(self, db: Database):
        """Initialize recurring service.

        Args:
            db: Database instance
        """
        self.db = db
        self.transactions = TransactionService(db)

    def create_recurring(
        self,
        name: str,
        kind: str | TransactionKind,
        amount,
        account_id: int,
        frequency: str | Frequency,
        start_date: date | str,
        end_date: Optional[date | str] = None,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        interval_days: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a recurring transaction; first execution is on start_date.

        The transaction fields are validated exactly as a one-off posting
        would be.

        Returns:
            Recurring transaction ID

        Raises:
            ValidationError: If the name, schedule or transaction is invalid
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        frequency = coerce_frequency(frequency)
        kind, amount = self.transactions.validate(kind, amount, account_id, to_account_id, category_id)

        if frequency == Frequency.CUSTOM:
            if interval_days is None or interval_days < 1:
                raise ValidationError("Interval days must be at least 1 for CUSTOM frequency")
        else:
            interval_days = None

        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date) if end_date is not None else None
        if end is not None and end <= start:
            raise ValidationError("End date must be after start date")

        return self.db.create_recurring(
            name=name,
            description=description,
            kind=kind.value,
            amount=amount,
            account_id=account_id,
            to_account_id=to_account_id if kind == TransactionKind.TRANSFER else None,
            category_id=category_id,
            frequency=frequency.value,
            interval_days=interval_days,
            start_date=start,
            end_date=end,
        )

    def get_recurring(self, recurring_id: int) -> Optional[RecurringTransaction]:
        """Get a recurring transaction by ID, or None."""
        return self.db.get_recurring(recurring_id)

    def require_recurring(self, recurring_id: int) -> RecurringTransaction:
        """Get a recurring transaction by ID or raise NotFoundError."""
        recurring = self.db.get_recurring(recurring_id)
        if recurring is None:
            raise NotFoundError(recurring_not_found(recurring_id))
        return recurring

    def list_recurring(self, active_only: bool = False) -> list[RecurringTransaction]:
        """List recurring transactions, soonest first."""
        return self.db.list_recurring(active_only=active_only)

    def set_active(self, recurring_id: int, is_active: bool) -> None:
        """Pause or resume a recurring transaction."""
        recurring = self.require_recurring(recurring_id)
        self.db.update_recurring_schedule(
            recurring_id,
            next_execution_date=recurring.next_execution_date,
            last_executed_date=recurring.last_executed_date,
            execution_count=recurring.execution_count,
            is_active=is_active,
        )

    def delete_recurring(self, recurring_id: int) -> None:
        """Delete a recurring transaction; already posted transactions stay."""
        self.require_recurring(recurring_id)
        self.db.delete_recurring(recurring_id)

    def _advance(self, recurring: RecurringTransaction) -> tuple[date, bool]:
        following = next_occurrence(
            recurring.next_execution_date,
            recurring.frequency,
            recurring.interval_days,
            recurring.start_date.day,
        )
        still_active = recurring.end_date is None or following <= recurring.end_date
        return following, still_active

    def skip_next_occurrence(self, recurring_id: int) -> RecurringTransaction:
        """Move the schedule past its next occurrence without posting.

        Deactivates the schedule if the following occurrence is after its
        end date.
        """
        recurring = self.require_recurring(recurring_id)
        following, still_active = self._advance(recurring)
        self.db.update_recurring_schedule(
            recurring_id,
            next_execution_date=following if still_active else recurring.next_execution_date,
            last_executed_date=recurring.last_executed_date,
            execution_count=recurring.execution_count,
            is_active=recurring.is_active and still_active,
        )
        return self.db.get_recurring(recurring_id)

    def upcoming(self, days_ahead: int = 30, today: Optional[date] = None) -> list[RecurringTransaction]:
        """Active schedules whose next execution falls within the next N days."""
        today = today or date.today()
        horizon = today + timedelta(days=days_ahead)
        return [
            r
            for r in self.db.list_recurring(active_only=True)
            if today <= r.next_execution_date <= horizon
        ]

    def process_due(self, today: Optional[date] = None) -> list[int]:
        """Post every occurrence due on or before ``today``.

        Each occurrence is posted through the transaction service dated on
        its scheduled day, and the schedule advances with it in the same unit
        of work. A failing schedule is logged and left for the next run.

        Returns:
            IDs of the transactions created
        """
        today = today or date.today()
        created = []
        for recurring in self.db.list_recurring(active_only=True):
            while recurring.is_active and recurring.next_execution_date <= today:
                try:
                    created.append(self._execute(recurring))
                except DomainError as e:
                    logger.warning(
                        "Failed to create transaction for recurring %s: %s", recurring.id, e
                    )
                    break
                recurring = self.db.get_recurring(recurring.id)
        if created:
            logger.info("Posted %d recurring transaction(s)", len(created))
        return created

    def _execute(self, recurring: RecurringTransaction) -> int:
        occurrence = recurring.next_execution_date
        following, still_active = self._advance(recurring)
        with self.db.atomic():
            transaction_id = self.transactions.create_transaction(
                date=occurrence,
                kind=recurring.kind,
                amount=recurring.amount,
                account_id=recurring.account_id,
                to_account_id=recurring.to_account_id,
                category_id=recurring.category_id,
                memo=GENERATED_MEMO,
            )
            self.db.update_recurring_schedule(
                recurring.id,
                next_execution_date=following if still_active else occurrence,
                last_executed_date=occurrence,
                execution_count=recurring.execution_count + 1,
                is_active=still_active,
            )
        return transaction_id
