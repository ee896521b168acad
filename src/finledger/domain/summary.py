"""Spending report domain service."""

import calendar
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from finledger.database.base import Database
from finledger.domain.balance import BalanceService
from finledger.domain.entities import (
    Category,
    CategorySpending,
    Dashboard,
    IncomeExpenseSummary,
    MonthlyTrend,
    SubcategoryAmount,
    SubcategoryBreakdown,
    Transaction,
    TransactionKind,
    YearComparison,
)
from finledger.domain.errors import CategoryNotFound, category_not_found
from finledger.domain.money import ZERO, round_money
from finledger.utils.periods import add_months, previous_month_end

HUNDRED = Decimal("100")
UNCATEGORIZED = "Uncategorized"


def percent_change(current: Decimal, previous: Decimal) -> Decimal:
    """Percentage change from previous to current, rounded to cents."""
    if previous > ZERO:
        return round_money((current - previous) / previous * HUNDRED)
    return HUNDRED if current > ZERO else ZERO


class SummaryService:
    """Service for income/expense summaries, category spending and trends.

    Aggregation happens in Python over the filtered transaction list; the
    category roll-up maps every child onto its root parent.
    """

    def __init__(self, db: Database):
        """Initialize summary service.

        Args:
            db: Database instance
        """
        self.db = db

    def build_category_index(self) -> tuple[dict[int, Category], dict[int, int]]:
        """Build lookup maps for categories.

        Returns:
            Tuple of (category by id, root id by category id)
        """
        categories = {c.id: c for c in self.db.list_categories()}
        root_of = {
            cid: (cat.parent_id if cat.parent_id is not None else cid)
            for cid, cat in categories.items()
        }
        return categories, root_of

    def income_expense_summary(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> IncomeExpenseSummary:
        """Total income and expense in a date range; transfers are ignored.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date

        Returns:
            IncomeExpenseSummary
        """
        transactions = self.db.list_transactions(start_date=start_date, end_date=end_date)
        income = ZERO
        expense = ZERO
        count = 0
        for txn in transactions:
            if txn.kind == TransactionKind.INCOME:
                income += txn.amount
            elif txn.kind == TransactionKind.EXPENSE:
                expense += txn.amount
            else:
                continue
            count += 1
        return IncomeExpenseSummary(
            start_date=start_date,
            end_date=end_date,
            total_income=round_money(income),
            total_expense=round_money(expense),
            net=round_money(income - expense),
            transaction_count=count,
        )

    def aggregate_by_root_category(
        self, transactions: Sequence[Transaction]
    ) -> dict[Optional[int], tuple[Decimal, int]]:
        """Sum amounts per root category. Uncategorized rows key on None."""
        _, root_of = self.build_category_index()
        totals: dict[Optional[int], Decimal] = defaultdict(lambda: ZERO)
        counts: dict[Optional[int], int] = defaultdict(int)
        for txn in transactions:
            key = root_of.get(txn.category_id) if txn.category_id is not None else None
            totals[key] += txn.amount
            counts[key] += 1
        return {key: (totals[key], counts[key]) for key in totals}

    def category_spending(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: TransactionKind = TransactionKind.EXPENSE,
    ) -> list[CategorySpending]:
        """Amounts per root category, largest first.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            kind: INCOME or EXPENSE

        Returns:
            List of CategorySpending with percentage of the total
        """
        transactions = self.db.list_transactions(
            start_date=start_date, end_date=end_date, kind=kind.value
        )
        categories, _ = self.build_category_index()
        aggregated = self.aggregate_by_root_category(transactions)
        grand_total = sum((amount for amount, _ in aggregated.values()), ZERO)

        results = []
        for category_id, (amount, count) in aggregated.items():
            category = categories.get(category_id) if category_id is not None else None
            results.append(
                CategorySpending(
                    category_id=category_id,
                    category_name=category.name if category is not None else UNCATEGORIZED,
                    amount=round_money(amount),
                    percentage=round_money(amount / grand_total * HUNDRED) if grand_total > ZERO else ZERO,
                    transaction_count=count,
                )
            )
        results.sort(key=lambda r: (-r.amount, r.category_name))
        return results

    def monthly_trends(self, months: int = 6, today: Optional[date] = None) -> list[MonthlyTrend]:
        """Income and expense per month for the last ``months`` months.

        The current month is included; months without activity report zeros.
        """
        today = today or date.today()
        first_month = add_months(today.replace(day=1), -(months - 1))
        keys = [add_months(first_month, i).strftime("%Y-%m") for i in range(months)]

        income: dict[str, Decimal] = defaultdict(lambda: ZERO)
        expense: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for txn in self.db.list_transactions(start_date=first_month, end_date=today):
            key = txn.date.strftime("%Y-%m")
            if txn.kind == TransactionKind.INCOME:
                income[key] += txn.amount
            elif txn.kind == TransactionKind.EXPENSE:
                expense[key] += txn.amount

        return [
            MonthlyTrend(
                month=key,
                income=round_money(income[key]),
                expense=round_money(expense[key]),
                net=round_money(income[key] - expense[key]),
            )
            for key in keys
        ]

    def dashboard(self, today: Optional[date] = None) -> Dashboard:
        """Month-to-date overview: net worth, cash flow and top category."""
        today = today or date.today()
        month_start = today.replace(day=1)
        balances = BalanceService(self.db)

        _, _, net_worth = balances.net_worth_at(None)
        _, _, previous = balances.net_worth_at(previous_month_end(today))
        summary = self.income_expense_summary(month_start, today)
        spending = self.category_spending(month_start, today)
        top = spending[0] if spending else None

        days_in_period = (today - month_start).days + 1
        if summary.total_income > ZERO:
            savings_rate = round_money(
                (summary.total_income - summary.total_expense) / summary.total_income * HUNDRED
            )
        else:
            savings_rate = ZERO

        return Dashboard(
            net_worth=net_worth,
            net_worth_change=round_money(net_worth - previous),
            income_this_month=summary.total_income,
            expense_this_month=summary.total_expense,
            savings_rate=savings_rate,
            top_expense_category=top.category_name if top is not None else None,
            top_expense_amount=top.amount if top is not None else ZERO,
            daily_average_expense=round_money(summary.total_expense / days_in_period),
            days_in_period=days_in_period,
        )

    def subcategory_breakdown(
        self,
        parent_category_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: TransactionKind = TransactionKind.EXPENSE,
    ) -> SubcategoryBreakdown:
        """Split a category's amount across its subcategories.

        Every child is listed, largest first. Amounts booked directly on the
        parent appear as a "(Direct)" item when the parent has children. A
        category without children reports its direct amount and no items.

        Raises:
            CategoryNotFound: If the parent category doesn't exist
        """
        parent = self.db.get_category(parent_category_id)
        if parent is None:
            raise CategoryNotFound(category_not_found(parent_category_id))
        children = self.db.list_categories(parent_id=parent_category_id)

        totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[int, int] = defaultdict(int)
        for txn in self.db.list_transactions(
            start_date=start_date, end_date=end_date, kind=kind.value
        ):
            if txn.category_id is not None:
                totals[txn.category_id] += txn.amount
                counts[txn.category_id] += 1

        direct = totals[parent_category_id]
        if not children:
            return SubcategoryBreakdown(
                parent_category_id=parent.id,
                parent_category_name=parent.name,
                total_amount=round_money(direct),
                subcategories=[],
            )

        total = direct + sum((totals[c.id] for c in children), ZERO)

        def item(category_id: int, name: str) -> SubcategoryAmount:
            amount = totals[category_id]
            return SubcategoryAmount(
                category_id=category_id,
                category_name=name,
                amount=round_money(amount),
                percentage=round_money(amount / total * HUNDRED) if total > ZERO else ZERO,
                transaction_count=counts[category_id],
            )

        items = [item(c.id, c.name) for c in children]
        items.sort(key=lambda i: (-i.amount, i.category_name))
        if direct > ZERO:
            items.append(item(parent.id, f"{parent.name} (Direct)"))
        return SubcategoryBreakdown(
            parent_category_id=parent.id,
            parent_category_name=parent.name,
            total_amount=round_money(total),
            subcategories=items,
        )

    def year_over_year(self, current_year: Optional[int] = None) -> list[YearComparison]:
        """Monthly income and expense of a year against the year before.

        Change is a percentage of the previous year's figure. With nothing
        the year before, any current amount counts as a 100% change.
        """
        current_year = current_year or date.today().year
        previous_year = current_year - 1

        income: dict[tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
        expense: dict[tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
        for txn in self.db.list_transactions(
            start_date=date(previous_year, 1, 1), end_date=date(current_year, 12, 31)
        ):
            key = (txn.date.year, txn.date.month)
            if txn.kind == TransactionKind.INCOME:
                income[key] += txn.amount
            elif txn.kind == TransactionKind.EXPENSE:
                expense[key] += txn.amount

        results = []
        for month in range(1, 13):
            cur_income = income[(current_year, month)]
            cur_expense = expense[(current_year, month)]
            prev_income = income[(previous_year, month)]
            prev_expense = expense[(previous_year, month)]
            results.append(
                YearComparison(
                    month=calendar.month_name[month],
                    month_num=month,
                    current_year_income=round_money(cur_income),
                    current_year_expense=round_money(cur_expense),
                    previous_year_income=round_money(prev_income),
                    previous_year_expense=round_money(prev_expense),
                    income_change=percent_change(cur_income, prev_income),
                    expense_change=percent_change(cur_expense, prev_expense),
                )
            )
        return results
