"""Tests for the report service."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.domain.entities import TransactionKind
from finledger.domain.summary import UNCATEGORIZED


@pytest.fixture
def march(transaction_service, checking, savings, visa, categories):
    def post(day, kind, amount, account, category=None, to_account=None):
        transaction_service.create_transaction(
            date=day,
            kind=kind,
            amount=Decimal(amount),
            account_id=account.id,
            to_account_id=to_account.id if to_account else None,
            category_id=categories[category] if category else None,
        )

    post("2025-03-01", "INCOME", "2000", checking, "Salary")
    post("2025-03-02", "EXPENSE", "120", checking, "Groceries")
    post("2025-03-03", "EXPENSE", "80", visa, "Dining")
    post("2025-03-04", "EXPENSE", "50", checking, "Transport")
    post("2025-03-05", "EXPENSE", "50", checking)
    post("2025-03-06", "TRANSFER", "300", checking, to_account=savings)
    post("2025-02-10", "EXPENSE", "40", checking, "Food")


def test_income_expense_summary_ignores_transfers(summary_service, march):
    summary = summary_service.income_expense_summary(date(2025, 3, 1), date(2025, 3, 31))

    assert summary.total_income == Decimal("2000.00")
    assert summary.total_expense == Decimal("300.00")
    assert summary.net == Decimal("1700.00")
    assert summary.transaction_count == 5


def test_income_expense_summary_unbounded(summary_service, march):
    summary = summary_service.income_expense_summary()

    assert summary.total_expense == Decimal("340.00")
    assert summary.start_date is None


def test_category_spending_rolls_up_to_root(summary_service, march, categories):
    spending = summary_service.category_spending(date(2025, 3, 1), date(2025, 3, 31))

    assert [(s.category_name, s.amount, s.transaction_count) for s in spending] == [
        ("Food", Decimal("200.00"), 2),
        ("Transport", Decimal("50.00"), 1),
        (UNCATEGORIZED, Decimal("50.00"), 1),
    ]
    assert spending[0].category_id == categories["Food"]
    assert spending[0].percentage == Decimal("66.67")
    assert spending[2].category_id is None


def test_category_spending_for_income(summary_service, march):
    spending = summary_service.category_spending(kind=TransactionKind.INCOME)

    assert len(spending) == 1
    assert spending[0].category_name == "Salary"
    assert spending[0].percentage == Decimal("100.00")


def test_category_spending_empty(summary_service):
    assert summary_service.category_spending(date(2025, 3, 1), date(2025, 3, 31)) == []


def test_monthly_trends_include_empty_months(summary_service, march):
    trends = summary_service.monthly_trends(months=3, today=date(2025, 3, 15))

    assert [t.month for t in trends] == ["2025-01", "2025-02", "2025-03"]
    assert trends[0].income == Decimal("0.00")
    assert trends[1].expense == Decimal("40.00")
    assert trends[2].income == Decimal("2000.00")
    assert trends[2].net == Decimal("1700.00")


def test_dashboard(summary_service, march):
    dashboard = summary_service.dashboard(today=date(2025, 3, 10))

    # assets 2740 across checking and savings, visa owes 80
    assert dashboard.net_worth == Decimal("2660.00")
    assert dashboard.net_worth_change == Decimal("1700.00")
    assert dashboard.income_this_month == Decimal("2000.00")
    assert dashboard.expense_this_month == Decimal("300.00")
    assert dashboard.savings_rate == Decimal("85.00")
    assert dashboard.top_expense_category == "Food"
    assert dashboard.top_expense_amount == Decimal("200.00")
    assert dashboard.days_in_period == 10
    assert dashboard.daily_average_expense == Decimal("30.00")


def test_dashboard_without_income(summary_service):
    dashboard = summary_service.dashboard(today=date(2025, 3, 10))

    assert dashboard.savings_rate == Decimal("0")
    assert dashboard.top_expense_category is None


def test_subcategory_breakdown_includes_direct_spending(summary_service, march, categories):
    breakdown = summary_service.subcategory_breakdown(categories["Food"], date(2025, 2, 1), date(2025, 3, 31))

    assert breakdown.parent_category_name == "Food"
    assert breakdown.total_amount == Decimal("240.00")
    assert [(s.category_name, s.amount, s.percentage) for s in breakdown.subcategories] == [
        ("Groceries", Decimal("120.00"), Decimal("50.00")),
        ("Dining", Decimal("80.00"), Decimal("33.33")),
        ("Food (Direct)", Decimal("40.00"), Decimal("16.67")),
    ]


def test_subcategory_breakdown_without_children(summary_service, march, categories):
    breakdown = summary_service.subcategory_breakdown(categories["Transport"], date(2025, 3, 1), date(2025, 3, 31))

    assert breakdown.total_amount == Decimal("50.00")
    assert breakdown.subcategories == []


def test_subcategory_breakdown_lists_idle_children(summary_service, march, categories):
    breakdown = summary_service.subcategory_breakdown(categories["Food"], date(2025, 4, 1), date(2025, 4, 30))

    assert breakdown.total_amount == Decimal("0.00")
    assert {s.category_name for s in breakdown.subcategories} == {"Groceries", "Dining"}
    assert all(s.percentage == 0 for s in breakdown.subcategories)


def test_year_over_year(summary_service, transaction_service, march, checking):
    transaction_service.create_transaction(
        date="2024-03-15", kind="EXPENSE", amount=Decimal("100"), account_id=checking.id
    )

    months = summary_service.year_over_year(2025)

    assert len(months) == 12
    march_row = months[2]
    assert (march_row.month, march_row.month_num) == ("March", 3)
    assert march_row.current_year_expense == Decimal("300.00")
    assert march_row.previous_year_expense == Decimal("100.00")
    assert march_row.expense_change == Decimal("200.00")
    assert march_row.income_change == Decimal("100")
    assert months[1].expense_change == Decimal("100")
    assert months[0].expense_change == Decimal("0")
