"""Tests for installment plans."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.domain.entities import InstallmentFrequency, InstallmentStatus
from finledger.domain.errors import (
    AccountNotFound,
    DependencyError,
    InvalidKind,
    NonPositiveAmount,
    ValidationError,
)
from finledger.domain.installment import installment_due_date


@pytest.fixture
def laptop(installment_service, visa, categories):
    """1000.00 over 3 monthly installments from Jan 31."""
    return installment_service.create_plan(
        name="Laptop",
        total_amount=Decimal("1000"),
        num_installments=3,
        account_id=visa.id,
        category_id=categories["Transport"],
        start_date="2025-01-31",
    )


def test_create_plan_splits_amount(installment_service, laptop):
    plan = installment_service.get_plan(laptop)

    assert plan.amount_per_installment == Decimal("333.33")
    assert plan.next_due_date == date(2025, 1, 31)
    assert plan.status == InstallmentStatus.ACTIVE
    assert plan.frequency == InstallmentFrequency.MONTHLY
    assert plan.remaining_amount == Decimal("1000.00")
    assert plan.remaining_installments == 3


def test_create_plan_validation(installment_service, visa, categories):
    kwargs = dict(account_id=visa.id, category_id=categories["Transport"], start_date="2025-01-01")

    with pytest.raises(ValidationError, match="Name cannot be empty"):
        installment_service.create_plan(name=" ", total_amount=10, num_installments=2, **kwargs)
    with pytest.raises(NonPositiveAmount, match="Total amount must be greater than 0"):
        installment_service.create_plan(name="TV", total_amount=0, num_installments=2, **kwargs)
    with pytest.raises(ValidationError, match="Number of installments must be greater than 0"):
        installment_service.create_plan(name="TV", total_amount=10, num_installments=0, **kwargs)
    with pytest.raises(InvalidKind, match="Invalid frequency"):
        installment_service.create_plan(
            name="TV", total_amount=10, num_installments=2, frequency="YEARLY", **kwargs
        )
    with pytest.raises(AccountNotFound):
        installment_service.create_plan(
            name="TV",
            total_amount=10,
            num_installments=2,
            account_id=999,
            category_id=categories["Transport"],
            start_date="2025-01-01",
        )


def test_due_dates_step_calendar_months():
    start = date(2025, 1, 31)
    assert installment_due_date(start, InstallmentFrequency.MONTHLY, 2) == date(2025, 2, 28)
    assert installment_due_date(start, InstallmentFrequency.MONTHLY, 3) == date(2025, 3, 31)
    assert installment_due_date(start, InstallmentFrequency.WEEKLY, 3) == date(2025, 2, 14)
    assert installment_due_date(start, InstallmentFrequency.DAILY, 2) == date(2025, 2, 1)


def test_process_payment_posts_expense(installment_service, transaction_service, balance_service, laptop, visa):
    transaction_id = installment_service.process_payment(laptop, paid_on="2025-01-31")

    txn = transaction_service.get_transaction(transaction_id)
    assert txn.kind.value == "EXPENSE"
    assert txn.amount == Decimal("333.33")
    assert txn.memo == "Laptop - Installment 1/3"
    assert balance_service.balance_as_of(visa.id) == Decimal("-333.33")

    plan = installment_service.get_plan(laptop)
    assert plan.installments_paid == 1
    assert plan.total_paid == Decimal("333.33")
    assert plan.next_due_date == date(2025, 2, 28)


def test_last_payment_takes_remainder_and_completes(installment_service, balance_service, laptop, visa):
    for day in ("2025-01-31", "2025-02-28", "2025-03-31"):
        installment_service.process_payment(laptop, paid_on=day)

    details = installment_service.get_plan_details(laptop)
    assert [p.amount for p in details.payments] == [
        Decimal("333.33"),
        Decimal("333.33"),
        Decimal("333.34"),
    ]
    assert [p.due_date for p in details.payments] == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
    ]
    assert details.plan.status == InstallmentStatus.COMPLETED
    assert details.plan.remaining_amount == Decimal("0.00")
    assert details.next_payment_amount == Decimal("0")
    assert balance_service.balance_as_of(visa.id) == Decimal("-1000.00")

    with pytest.raises(ValidationError, match="Installment plan is already completed"):
        installment_service.process_payment(laptop, paid_on="2025-04-30")


def test_plan_details_resolve_names(installment_service, laptop):
    details = installment_service.get_plan_details(laptop)

    assert details.account_name == "Visa"
    assert details.category_name == "Transport"
    assert details.payments == []
    assert details.next_payment_amount == Decimal("333.33")


def test_cancel_plan_stops_payments(installment_service, laptop):
    installment_service.process_payment(laptop, paid_on="2025-01-31")
    installment_service.cancel_plan(laptop)

    assert installment_service.get_plan(laptop).status == InstallmentStatus.CANCELLED
    with pytest.raises(ValidationError, match="Installment plan is cancelled"):
        installment_service.process_payment(laptop)
    with pytest.raises(ValidationError, match="Only active plans can be cancelled"):
        installment_service.cancel_plan(laptop)


def test_delete_plan_blocked_by_payments(installment_service, laptop):
    installment_service.process_payment(laptop, paid_on="2025-01-31")

    with pytest.raises(DependencyError, match="Cancel it instead"):
        installment_service.delete_plan(laptop)


def test_delete_unpaid_plan(installment_service, laptop):
    installment_service.delete_plan(laptop)

    assert installment_service.get_plan(laptop) is None


def test_upcoming_and_status_filter(installment_service, laptop, checking, categories):
    later = installment_service.create_plan(
        name="Sofa",
        total_amount=Decimal("900"),
        num_installments=3,
        account_id=checking.id,
        category_id=categories["Food"],
        start_date="2025-03-15",
    )

    assert [p.id for p in installment_service.upcoming(days_ahead=30, today=date(2025, 1, 20))] == [laptop]
    assert [p.id for p in installment_service.list_plans()] == [laptop, later]

    installment_service.cancel_plan(later)
    assert [p.id for p in installment_service.list_plans(status="active")] == [laptop]
    assert [p.id for p in installment_service.list_plans(status=InstallmentStatus.CANCELLED)] == [later]
