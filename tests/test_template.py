"""Tests for transaction templates."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.domain.entities import TemplatePatch, TransactionKind
from finledger.domain.errors import (
    NonPositiveAmount,
    NotFoundError,
    SelfTransfer,
    ValidationError,
)


@pytest.fixture
def coffee(template_service, checking, categories):
    return template_service.create_template(
        name="Coffee",
        kind="expense",
        amount=Decimal("4.50"),
        account_id=checking.id,
        category_id=categories["Dining"],
        memo="Morning coffee",
    )


def test_create_template(template_service, coffee, checking):
    template = template_service.get_template(coffee)

    assert template.kind == TransactionKind.EXPENSE
    assert template.amount == Decimal("4.50")
    assert template.account_id == checking.id
    assert template.use_count == 0
    assert template.last_used_at is None


def test_create_template_validation(template_service, checking):
    with pytest.raises(ValidationError, match="Template name is required"):
        template_service.create_template(name="", kind="EXPENSE", account_id=checking.id)
    with pytest.raises(ValidationError, match="Amount cannot be negative"):
        template_service.create_template(name="Bad", kind="EXPENSE", amount=-1)
    with pytest.raises(ValidationError, match="Transfer templates require both accounts"):
        template_service.create_template(name="Move", kind="TRANSFER", account_id=checking.id)
    with pytest.raises(SelfTransfer):
        template_service.create_template(
            name="Move", kind="TRANSFER", account_id=checking.id, to_account_id=checking.id
        )


def test_use_template_posts_transaction(template_service, transaction_service, balance_service, coffee, checking):
    transaction_id = template_service.use_template(coffee, on_date="2025-02-03")

    txn = transaction_service.get_transaction(transaction_id)
    assert txn.date == date(2025, 2, 3)
    assert txn.amount == Decimal("4.50")
    assert txn.memo == "Morning coffee"
    assert balance_service.balance_as_of(checking.id) == Decimal("995.50")

    template = template_service.get_template(coffee)
    assert template.use_count == 1
    assert template.last_used_at is not None


def test_use_template_with_overrides(template_service, transaction_service, coffee, savings):
    transaction_id = template_service.use_template(
        coffee, on_date="2025-02-04", amount=Decimal("6"), account_id=savings.id, memo="Large"
    )

    txn = transaction_service.get_transaction(transaction_id)
    assert txn.amount == Decimal("6.00")
    assert txn.account_id == savings.id
    assert txn.memo == "Large"
    # Overrides apply to one posting only
    assert template_service.get_template(coffee).amount == Decimal("4.50")


def test_zero_amount_template_needs_amount(template_service, transaction_service, checking):
    template_id = template_service.create_template(name="Groceries run", kind="EXPENSE", account_id=checking.id)

    with pytest.raises(NonPositiveAmount):
        template_service.use_template(template_id, on_date="2025-02-05")

    assert transaction_service.list_transactions() == []
    assert template_service.get_template(template_id).use_count == 0


def test_template_without_account_needs_one(template_service, savings):
    template_id = template_service.create_template(name="Tip", kind="EXPENSE", amount=Decimal("2"))

    with pytest.raises(ValidationError, match="Template has no account"):
        template_service.use_template(template_id, on_date="2025-02-05")

    assert template_service.use_template(template_id, on_date="2025-02-05", account_id=savings.id) > 0


def test_transfer_template(template_service, balance_service, checking, savings):
    template_id = template_service.create_template(
        name="Save", kind="TRANSFER", amount=Decimal("100"), account_id=checking.id, to_account_id=savings.id
    )

    template_service.use_template(template_id, on_date="2025-02-01")

    assert balance_service.balance_as_of(savings.id) == Decimal("100.00")


def test_list_templates_most_used_first(template_service, coffee, checking):
    lunch = template_service.create_template(
        name="Lunch", kind="EXPENSE", amount=Decimal("12"), account_id=checking.id
    )
    template_service.use_template(lunch, on_date="2025-02-01")

    assert [t.id for t in template_service.list_templates()] == [lunch, coffee]


def test_update_template(template_service, coffee):
    template_service.update_template(coffee, TemplatePatch(name="Espresso", amount=Decimal("3.2")))

    template = template_service.get_template(coffee)
    assert template.name == "Espresso"
    assert template.amount == Decimal("3.20")
    assert template.memo == "Morning coffee"


def test_update_template_validation(template_service, coffee):
    with pytest.raises(ValidationError, match="No fields to update"):
        template_service.update_template(coffee, TemplatePatch())
    with pytest.raises(ValidationError, match="Amount cannot be negative"):
        template_service.update_template(coffee, TemplatePatch(amount=Decimal("-1")))


def test_delete_template_keeps_transactions(template_service, transaction_service, coffee):
    template_service.use_template(coffee, on_date="2025-02-01")
    template_service.delete_template(coffee)

    assert template_service.get_template(coffee) is None
    assert len(transaction_service.list_transactions()) == 1
    with pytest.raises(NotFoundError, match="Transaction template .* not found"):
        template_service.delete_template(coffee)
