"""Budget domain service: period windows and spend tracking."""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.category import CategoryService
from finledger.domain.entities import (
    AlertLevel,
    Budget,
    BudgetPatch,
    BudgetPeriod,
    BudgetStatus,
    TransactionKind,
)
from finledger.domain.errors import (
    CategoryNotFound,
    ConflictError,
    InvalidKind,
    NonPositiveAmount,
    NotFoundError,
    ValidationError,
    budget_not_found,
)
from finledger.domain.money import ZERO, round_money, to_decimal
from finledger.utils.periods import add_period, parse_iso_date

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

# Checked in order; the first threshold reached wins.
ALERT_THRESHOLDS = [
    (Decimal("120"), AlertLevel.CRITICAL),
    (Decimal("100"), AlertLevel.DANGER),
    (Decimal("80"), AlertLevel.WARNING),
]

_SEVERITY = {AlertLevel.CRITICAL: 0, AlertLevel.DANGER: 1, AlertLevel.WARNING: 2}


def alert_level_for(percentage_used: Decimal) -> Optional[AlertLevel]:
    """Map a usage percentage onto an alert level, or None below 80%."""
    for threshold, level in ALERT_THRESHOLDS:
        if percentage_used >= threshold:
            return level
    return None


def budget_window(budget: Budget) -> tuple[date, date]:
    """Return the half-open window ``[start_date, next_anchor)`` of a budget."""
    return budget.start_date, add_period(budget.start_date, budget.period.value)


def coerce_period(period: str | BudgetPeriod) -> BudgetPeriod:
    """Normalise a budget period, raising InvalidKind for unknown values."""
    if isinstance(period, BudgetPeriod):
        return period
    try:
        return BudgetPeriod(str(period).strip().upper())
    except ValueError:
        raise InvalidKind("Invalid budget period. Use MONTHLY or YEARLY")


def _positive_amount(amount) -> Decimal:
    try:
        value = round_money(to_decimal(amount))
    except ArithmeticError:
        raise ValidationError(f"Invalid amount: {amount}")
    if value <= ZERO:
        raise NonPositiveAmount("Budget amount must be greater than zero")
    return value


class BudgetService:
    """Service for budgets and their consumption."""

    def __init__(self, db: Database):
        """Initialize budget service.

        Args:
            db: Database instance
        """
        self.db = db
        self.categories = CategoryService(db)

    def create_budget(
        self,
        category_id: int,
        amount,
        period: str | BudgetPeriod,
        start_date: date | str,
    ) -> int:
        """Create a budget for a category.

        Args:
            category_id: Category to track (its direct children count too)
            amount: Positive budget amount
            period: MONTHLY or YEARLY
            start_date: Anchor date (date or YYYY-MM-DD)

        Returns:
            Budget ID

        Raises:
            InvalidKind: If the period is unknown
            NonPositiveAmount: If the amount is not positive
            CategoryNotFound: If the category doesn't exist
            ValidationError: If the start date is malformed
            ConflictError: If the same category, period and start date exist
        """
        period = coerce_period(period)
        amount = _positive_amount(amount)
        if self.db.get_category(category_id) is None:
            raise CategoryNotFound("Category does not exist")
        start = parse_iso_date(start_date)

        if self.db.find_budget(category_id, period.value, start) is not None:
            raise ConflictError("Budget already exists for this category and period")

        return self.db.create_budget(
            category_id=category_id, amount=amount, period=period.value, start_date=start
        )

    def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID, or None if not found."""
        return self.db.get_budget(budget_id)

    def require_budget(self, budget_id: int) -> Budget:
        """Get budget by ID or raise NotFoundError."""
        budget = self.db.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        return budget

    def list_budgets(self) -> list[Budget]:
        """List all budgets, newest anchor first."""
        return self.db.list_budgets()

    def update_budget(self, budget_id: int, patch: BudgetPatch) -> None:
        """Change a budget's amount or anchor date.

        Raises:
            ValidationError: If the patch is empty
            NonPositiveAmount: If the new amount is not positive
            NotFoundError: If the budget doesn't exist
            ConflictError: If the new anchor collides with another budget
        """
        if patch.is_empty():
            raise ValidationError("No fields to update")
        budget = self.require_budget(budget_id)

        amount = _positive_amount(patch.amount) if patch.amount is not None else None
        start = parse_iso_date(patch.start_date) if patch.start_date is not None else None
        if start is not None and start != budget.start_date:
            existing = self.db.find_budget(budget.category_id, budget.period.value, start)
            if existing is not None and existing.id != budget_id:
                raise ConflictError("Budget already exists for this category and period")

        self.db.update_budget(budget_id, BudgetPatch(amount=amount, start_date=start))

    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""
        self.require_budget(budget_id)
        self.db.delete_budget(budget_id)

    def spent_in_window(self, budget: Budget) -> Decimal:
        """Sum EXPENSE amounts in the budget window for its category family."""
        window_start, window_end = budget_window(budget)
        return self.db.sum_transactions(
            start_date=window_start,
            end_date=window_end - timedelta(days=1),
            category_ids=self.categories.family_ids(budget.category_id),
            kind=TransactionKind.EXPENSE.value,
        )

    def budget_status(self, budget_id: int, today: Optional[date] = None) -> BudgetStatus:
        """Compare a budget against what has been spent in its window.

        Args:
            budget_id: Budget ID
            today: Reference date for day counts (defaults to date.today())

        Returns:
            BudgetStatus with money rounded to 2 places

        Raises:
            NotFoundError: If the budget doesn't exist
        """
        budget = self.require_budget(budget_id)
        return self._status(budget, today or date.today())

    def _status(self, budget: Budget, today: date) -> BudgetStatus:
        window_start, window_end = budget_window(budget)
        spent = self.spent_in_window(budget)
        remaining = budget.amount - spent
        percentage = spent / budget.amount * HUNDRED if budget.amount > ZERO else ZERO

        days_remaining = max(0, (window_end - today).days)
        days_elapsed = max(1, (today - budget.start_date).days)
        daily_average = spent / days_elapsed
        daily_remaining = remaining / days_remaining if days_remaining > 0 else ZERO

        category = self.db.get_category(budget.category_id)
        return BudgetStatus(
            budget=budget,
            category_name=category.name if category is not None else "",
            window_start=window_start,
            window_end=window_end,
            spent=round_money(spent),
            remaining=round_money(remaining),
            percentage_used=round_money(percentage),
            days_remaining=days_remaining,
            days_elapsed=days_elapsed,
            daily_average_spent=round_money(daily_average),
            daily_budget_remaining=round_money(daily_remaining),
            is_over_budget=spent > budget.amount,
            alert_level=alert_level_for(percentage),
        )

    def list_budget_statuses(self, today: Optional[date] = None) -> list[BudgetStatus]:
        """Status of every budget; a budget that fails is logged and skipped."""
        today = today or date.today()
        statuses = []
        for budget in self.db.list_budgets():
            try:
                statuses.append(self._status(budget, today))
            except ValidationError as e:
                logger.warning("Failed to compute status for budget %s: %s", budget.id, e)
        return statuses

    def budget_alerts(self, today: Optional[date] = None) -> list[BudgetStatus]:
        """Budgets at WARNING or above, most severe first."""
        alerts = [s for s in self.list_budget_statuses(today) if s.alert_level is not None]
        alerts.sort(key=lambda s: (_SEVERITY[s.alert_level], -s.percentage_used))
        return alerts
