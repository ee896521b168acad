"""Tests for credit card billing cycles, statements and settlement."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.domain.billing import AUTO_SETTLEMENT_MEMO_PREFIX, billing_cycle, payment_due_date
from finledger.domain.entities import BillingCycle, CreditCardSettingsPatch, StatementStatus
from finledger.domain.errors import ConflictError, DependencyError, ValidationError


@pytest.fixture
def card(card_service, visa, checking):
    """Card with statement day 25, due day 15 and a 1000.00 limit."""
    return card_service.create_card_settings(
        account_id=visa.id,
        credit_limit=Decimal("1000"),
        statement_day=25,
        payment_due_day=15,
        settlement_account_id=checking.id,
    )


def _charge(transaction_service, visa, day, amount):
    return transaction_service.create_transaction(
        date=day, kind="EXPENSE", amount=Decimal(amount), account_id=visa.id
    )


def test_billing_cycle_before_statement_day():
    assert billing_cycle(25, date(2025, 3, 10)) == BillingCycle(date(2025, 2, 26), date(2025, 3, 25))


def test_billing_cycle_after_statement_day():
    assert billing_cycle(25, date(2025, 3, 26)) == BillingCycle(date(2025, 3, 26), date(2025, 4, 25))


def test_billing_cycle_on_statement_day_and_year_boundary():
    assert billing_cycle(25, date(2025, 1, 25)) == BillingCycle(date(2024, 12, 26), date(2025, 1, 25))
    assert billing_cycle(1, date(2024, 12, 2)) == BillingCycle(date(2024, 12, 2), date(2025, 1, 1))


def test_payment_due_date_is_in_following_month():
    assert payment_due_date(15, date(2025, 3, 25)) == date(2025, 4, 15)
    assert payment_due_date(10, date(2024, 12, 25)) == date(2025, 1, 10)


def test_current_cycle_uses_card_statement_day(card_service, card):
    assert card_service.current_cycle(card, today=date(2025, 3, 10)) == BillingCycle(
        date(2025, 2, 26), date(2025, 3, 25)
    )


def test_settings_require_liability_account(card_service, checking):
    with pytest.raises(ValidationError, match="Credit card must be a LIABILITY account"):
        card_service.create_card_settings(
            account_id=checking.id, credit_limit=0, statement_day=25, payment_due_day=15
        )


def test_settings_validation(card_service, visa, savings):
    with pytest.raises(ValidationError, match="Statement day"):
        card_service.create_card_settings(
            account_id=visa.id, credit_limit=0, statement_day=29, payment_due_day=15
        )
    with pytest.raises(ValidationError, match="Auto-settlement requires a settlement account"):
        card_service.create_card_settings(
            account_id=visa.id,
            credit_limit=0,
            statement_day=25,
            payment_due_day=15,
            auto_settlement_enabled=True,
        )
    with pytest.raises(ValidationError, match="Credit limit cannot be negative"):
        card_service.create_card_settings(
            account_id=visa.id, credit_limit=-1, statement_day=25, payment_due_day=15
        )


def test_settings_unique_per_account(card_service, card, visa):
    with pytest.raises(ConflictError, match="Credit card settings already exist for this account"):
        card_service.create_card_settings(
            account_id=visa.id, credit_limit=0, statement_day=1, payment_due_day=20
        )


def test_update_settings(card_service, card):
    card_service.update_card_settings(
        card, CreditCardSettingsPatch(credit_limit=Decimal("2500"), auto_settlement_enabled=True)
    )

    settings = card_service.get_card_settings(card)
    assert settings.credit_limit == Decimal("2500.00")
    assert settings.auto_settlement_enabled is True


def test_update_settings_cannot_drop_account_while_auto(card_service, card):
    card_service.update_card_settings(card, CreditCardSettingsPatch(auto_settlement_enabled=True))

    with pytest.raises(ValidationError, match="Auto-settlement requires a settlement account"):
        card_service.update_card_settings(card, CreditCardSettingsPatch(clear_settlement_account=True))


def test_generate_first_statement(card_service, transaction_service, card, visa):
    _charge(transaction_service, visa, "2025-01-20", "40")  # previous cycle
    _charge(transaction_service, visa, "2025-02-10", "200")

    statement = card_service.generate_statement(card, today=date(2025, 2, 20))

    assert statement.cycle_start == date(2025, 1, 26)
    assert statement.cycle_end == date(2025, 2, 25)
    assert statement.statement_date == date(2025, 2, 25)
    assert statement.due_date == date(2025, 3, 15)
    assert statement.opening_balance == Decimal("40.00")
    assert statement.total_charges == Decimal("200.00")
    assert statement.total_payments == Decimal("0.00")
    assert statement.closing_balance == Decimal("240.00")
    assert statement.minimum_payment == Decimal("12.00")
    assert statement.status == StatementStatus.CLOSED
    assert statement.paid_amount == Decimal("0")


def test_duplicate_statement_rejected(card_service, card):
    card_service.generate_statement(card, today=date(2025, 3, 10))

    with pytest.raises(ConflictError, match="Statement already exists for this billing cycle"):
        card_service.generate_statement(card, today=date(2025, 3, 20))


def test_next_statement_opens_with_previous_closing(card_service, transaction_service, card, visa, checking):
    _charge(transaction_service, visa, "2025-02-10", "200")
    card_service.generate_statement(card, today=date(2025, 2, 20))
    _charge(transaction_service, visa, "2025-03-05", "100")
    transaction_service.create_transaction(
        date="2025-03-06", kind="TRANSFER", amount=Decimal("30"), account_id=checking.id, to_account_id=visa.id
    )

    statement = card_service.generate_statement(card, today=date(2025, 3, 10))

    assert statement.opening_balance == Decimal("200.00")
    assert statement.total_charges == Decimal("100.00")
    assert statement.total_payments == Decimal("30.00")
    assert statement.closing_balance == Decimal("270.00")


def test_settlement_spills_over_statements(card_service, transaction_service, card, visa, checking, balance_service):
    _charge(transaction_service, visa, "2025-02-10", "200")
    first = card_service.generate_statement(card, today=date(2025, 2, 20))
    _charge(transaction_service, visa, "2025-03-05", "100")
    second = card_service.generate_statement(card, today=date(2025, 3, 10))

    settlement = card_service.settle(card, checking.id, amount=Decimal("250"), on_date="2025-03-12")

    assert [(a.statement_id, a.applied, a.status) for a in settlement.allocations] == [
        (first.id, Decimal("200.00"), StatementStatus.PAID),
        (second.id, Decimal("50.00"), StatementStatus.PARTIAL),
    ]
    paid = card_service.get_statement(first.id)
    assert paid.status == StatementStatus.PAID
    assert paid.paid_date == date(2025, 3, 12)
    assert card_service.get_statement(second.id).remaining == Decimal("250.00")

    assert balance_service.balance_as_of(visa.id) == Decimal("-50.00")
    assert balance_service.balance_as_of(checking.id) == Decimal("750.00")
    payment = transaction_service.get_transaction(settlement.transaction_id)
    assert payment.kind.value == "TRANSFER"
    assert payment.to_account_id == visa.id


def test_settle_defaults_to_full_balance(card_service, transaction_service, card, visa, checking):
    _charge(transaction_service, visa, "2025-02-10", "120.50")

    settlement = card_service.settle(card, checking.id, on_date=date(2025, 2, 11))

    assert settlement.amount == Decimal("120.50")
    assert settlement.allocations == []


def test_settle_validation(card_service, card, visa, checking, account_service, groups):
    with pytest.raises(ValidationError, match="No outstanding balance to pay"):
        card_service.settle(card, checking.id)

    other_card = account_service.create_account(group_id=groups["liability"], name="Amex")
    with pytest.raises(ValidationError, match="Payment must come from an ASSET account"):
        card_service.settle(card, other_card, amount=Decimal("10"))


def test_card_balances(card_service, transaction_service, card, visa, checking):
    _charge(transaction_service, visa, "2025-02-10", "200")
    card_service.generate_statement(card, today=date(2025, 2, 20))
    _charge(transaction_service, visa, "2025-03-05", "100")
    card_service.generate_statement(card, today=date(2025, 3, 10))
    card_service.settle(card, checking.id, amount=Decimal("250"), on_date="2025-03-12")

    balances = card_service.card_balances(card, today=date(2025, 3, 12))

    assert balances.account_name == "Visa"
    assert balances.total_balance == Decimal("50.00")
    assert balances.current_cycle_charges == Decimal("100.00")
    assert balances.current_cycle_payments == Decimal("250.00")
    assert balances.outstanding_balance == Decimal("0.00")
    assert balances.available_credit == Decimal("950.00")
    assert balances.utilization_percentage == Decimal("5.00")
    assert balances.next_due_date == date(2025, 4, 15)
    assert balances.next_due_amount == Decimal("250.00")


def test_auto_settlement_pays_on_due_day_once(card_service, transaction_service, card, visa, checking, balance_service):
    card_service.update_card_settings(card, CreditCardSettingsPatch(auto_settlement_enabled=True))
    _charge(transaction_service, visa, "2025-02-10", "200")
    statement = card_service.generate_statement(card, today=date(2025, 2, 20))

    assert card_service.process_auto_settlements(today=date(2025, 3, 14)) == []

    assert card_service.process_auto_settlements(today=date(2025, 3, 15)) == [statement.id]
    assert card_service.process_auto_settlements(today=date(2025, 3, 15)) == []

    assert card_service.get_statement(statement.id).status == StatementStatus.PAID
    assert balance_service.balance_as_of(checking.id) == Decimal("800.00")
    payments = transaction_service.list_transactions(kind="TRANSFER")
    assert len(payments) == 1
    assert payments[0].memo.startswith(AUTO_SETTLEMENT_MEMO_PREFIX)


def test_auto_settlement_skips_disabled_cards(card_service, transaction_service, card, visa):
    _charge(transaction_service, visa, "2025-02-10", "200")
    card_service.generate_statement(card, today=date(2025, 2, 20))

    assert card_service.process_auto_settlements(today=date(2025, 3, 15)) == []


def test_delete_settings_blocked_by_statements(card_service, card):
    card_service.generate_statement(card, today=date(2025, 3, 10))

    with pytest.raises(DependencyError):
        card_service.delete_card_settings(card)
