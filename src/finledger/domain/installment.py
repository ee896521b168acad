"""Installment plan service."""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import (
    InstallmentFrequency,
    InstallmentPlan,
    InstallmentPlanDetails,
    InstallmentStatus,
    TransactionKind,
)
from finledger.domain.errors import (
    AccountNotFound,
    CategoryNotFound,
    DependencyError,
    InvalidKind,
    NonPositiveAmount,
    NotFoundError,
    ValidationError,
    installment_plan_not_found,
)
from finledger.domain.money import round_money, to_decimal
from finledger.domain.transaction import TransactionService
from finledger.utils.periods import add_months, parse_iso_date

logger = logging.getLogger(__name__)


def coerce_installment_frequency(frequency: str | InstallmentFrequency) -> InstallmentFrequency:
    """Normalise an installment frequency, raising InvalidKind for unknown values."""
    if isinstance(frequency, InstallmentFrequency):
        return frequency
    try:
        return InstallmentFrequency(str(frequency).strip().upper())
    except ValueError:
        raise InvalidKind("Invalid frequency")


def installment_due_date(start_date: date, frequency: InstallmentFrequency, number: int) -> date:
    """Due date of installment ``number`` (1-based).

    Monthly plans step whole calendar months from the start date, so a plan
    started on Jan 31 is due Feb 29, Mar 31, Apr 30.
    """
    steps = number - 1
    if frequency == InstallmentFrequency.DAILY:
        return start_date + timedelta(days=steps)
    if frequency == InstallmentFrequency.WEEKLY:
        return start_date + timedelta(weeks=steps)
    return add_months(start_date, steps)


def installment_amount(plan: InstallmentPlan, number: int) -> Decimal:
    """Amount owed for installment ``number``; the last one takes the remainder."""
    if number >= plan.num_installments:
        return plan.total_amount - plan.total_paid
    return plan.amount_per_installment


class InstallmentService:
    """Service for purchases paid off in fixed installments."""

    def __init__(self, db: Database):
        """Initialize installment service.

        Args:
            db: Database instance
        """
        self.db = db
        self.transactions = TransactionService(db)

    def create_plan(
        self,
        name: str,
        total_amount,
        num_installments: int,
        account_id: int,
        category_id: int,
        start_date: date | str,
        frequency: str | InstallmentFrequency = InstallmentFrequency.MONTHLY,
        memo: Optional[str] = None,
    ) -> int:
        """Create an installment plan; the first payment is due on start_date.

        Each installment is the total divided by the count, rounded to cents.
        The final installment absorbs the rounding difference.

        Returns:
            Installment plan ID

        Raises:
            ValidationError: If the name, amount, count or date is invalid
            AccountNotFound: If the account doesn't exist
            CategoryNotFound: If the category doesn't exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        try:
            total = round_money(to_decimal(total_amount))
        except ArithmeticError:
            raise ValidationError(f"Invalid amount: {total_amount}")
        if total <= 0:
            raise NonPositiveAmount("Total amount must be greater than 0")
        if num_installments is None or num_installments < 1:
            raise ValidationError("Number of installments must be greater than 0")
        frequency = coerce_installment_frequency(frequency)
        start = parse_iso_date(start_date)

        if self.db.get_account(account_id) is None:
            raise AccountNotFound("Account not found")
        if self.db.get_category(category_id) is None:
            raise CategoryNotFound("Category not found")

        plan_id = self.db.create_installment_plan(
            name=name,
            total_amount=total,
            num_installments=num_installments,
            amount_per_installment=round_money(total / num_installments),
            account_id=account_id,
            category_id=category_id,
            start_date=start,
            frequency=frequency.value,
            memo=memo,
        )
        logger.info("Created installment plan %s (%s x %d)", plan_id, name, num_installments)
        return plan_id

    def get_plan(self, plan_id: int) -> Optional[InstallmentPlan]:
        """Get an installment plan by ID, or None."""
        return self.db.get_installment_plan(plan_id)

    def require_plan(self, plan_id: int) -> InstallmentPlan:
        """Get an installment plan by ID or raise NotFoundError."""
        plan = self.db.get_installment_plan(plan_id)
        if plan is None:
            raise NotFoundError(installment_plan_not_found(plan_id))
        return plan

    def list_plans(self, status: Optional[str | InstallmentStatus] = None) -> list[InstallmentPlan]:
        """List installment plans, soonest due first."""
        if status is None:
            return self.db.list_installment_plans()
        if not isinstance(status, InstallmentStatus):
            try:
                status = InstallmentStatus(str(status).strip().upper())
            except ValueError:
                raise InvalidKind("Invalid installment status")
        return self.db.list_installment_plans(status=status.value)

    def get_plan_details(self, plan_id: int) -> InstallmentPlanDetails:
        """Plan with account and category names and its payment history."""
        plan = self.require_plan(plan_id)
        account = self.db.get_account(plan.account_id)
        category = self.db.get_category(plan.category_id)
        next_amount = (
            installment_amount(plan, plan.installments_paid + 1)
            if plan.status == InstallmentStatus.ACTIVE
            else Decimal("0")
        )
        return InstallmentPlanDetails(
            plan=plan,
            account_name=account.name if account else "",
            category_name=category.name if category else "",
            payments=self.db.list_installment_payments(plan_id),
            next_payment_amount=next_amount,
        )

    def process_payment(self, plan_id: int, paid_on: Optional[date | str] = None) -> int:
        """Pay the next installment of a plan.

        The payment is posted through the transaction service as an EXPENSE
        on the plan's account and category, and the plan advances with it in
        the same unit of work.

        Args:
            plan_id: Plan to pay
            paid_on: Transaction date, today by default

        Returns:
            ID of the transaction created

        Raises:
            ValidationError: If the plan is completed or cancelled
        """
        plan = self.require_plan(plan_id)
        if plan.status == InstallmentStatus.COMPLETED:
            raise ValidationError("Installment plan is already completed")
        if plan.status == InstallmentStatus.CANCELLED:
            raise ValidationError("Installment plan is cancelled")
        if plan.installments_paid >= plan.num_installments:
            raise ValidationError("All installments have been paid")

        paid_date = parse_iso_date(paid_on) if paid_on is not None else date.today()
        number = plan.installments_paid + 1
        amount = installment_amount(plan, number)
        completed = number >= plan.num_installments
        next_due = plan.next_due_date if completed else installment_due_date(
            plan.start_date, plan.frequency, number + 1
        )

        with self.db.atomic():
            transaction_id = self.transactions.create_transaction(
                date=paid_date,
                kind=TransactionKind.EXPENSE,
                amount=amount,
                account_id=plan.account_id,
                category_id=plan.category_id,
                memo=f"{plan.name} - Installment {number}/{plan.num_installments}",
            )
            self.db.record_installment_payment(
                plan_id,
                transaction_id=transaction_id,
                installment_number=number,
                amount=amount,
                due_date=plan.next_due_date,
                paid_date=paid_date,
                next_due_date=next_due,
                status=(InstallmentStatus.COMPLETED if completed else InstallmentStatus.ACTIVE).value,
            )
        if completed:
            logger.info("Installment plan %s completed", plan_id)
        return transaction_id

    def cancel_plan(self, plan_id: int) -> None:
        """Stop an active plan; payments already made stay on the ledger."""
        plan = self.require_plan(plan_id)
        if plan.status != InstallmentStatus.ACTIVE:
            raise ValidationError(f"Only active plans can be cancelled (plan is {plan.status.value})")
        self.db.update_installment_status(plan_id, InstallmentStatus.CANCELLED.value)

    def delete_plan(self, plan_id: int) -> None:
        """Delete a plan that has no payments.

        Raises:
            DependencyError: If any installment has been paid
        """
        plan = self.require_plan(plan_id)
        if plan.installments_paid > 0:
            raise DependencyError(
                "Cannot delete installment plan with existing payments. Cancel it instead."
            )
        self.db.delete_installment_plan(plan_id)

    def upcoming(self, days_ahead: int = 30, today: Optional[date] = None) -> list[InstallmentPlan]:
        """Active plans with an installment due within the next N days."""
        today = today or date.today()
        horizon = today + timedelta(days=days_ahead)
        return [
            p
            for p in self.db.list_installment_plans(status=InstallmentStatus.ACTIVE.value)
            if today <= p.next_due_date <= horizon
        ]
