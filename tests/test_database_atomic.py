"""Tests for units of work in the SQLAlchemy store."""

from decimal import Decimal

import pytest

from finledger.domain.errors import ConflictError


def test_nested_atomic_rolls_back_with_outer(temp_db):
    with pytest.raises(RuntimeError):
        with temp_db.atomic():
            temp_db.create_account_group(name="Bank", type="ASSET")
            with temp_db.atomic():
                temp_db.create_account_group(name="Cards", type="LIABILITY")
            raise RuntimeError("boom")

    assert temp_db.list_account_groups() == []


def test_atomic_commits_outermost_unit(temp_db):
    with temp_db.atomic():
        temp_db.create_account_group(name="Bank", type="ASSET")
        temp_db.create_account_group(name="Cards", type="LIABILITY")

    assert [g.name for g in temp_db.list_account_groups()] == ["Bank", "Cards"]


def test_constraint_violation_becomes_conflict(temp_db):
    group_id = temp_db.create_account_group(name="Bank", type="ASSET")
    temp_db.create_account(group_id=group_id, name="Checking", initial_balance=Decimal("0"), currency="USD")

    with pytest.raises(ConflictError, match="Database constraint violated"):
        temp_db.create_account(group_id=group_id, name="Checking", initial_balance=Decimal("0"), currency="USD")

    # The failed unit is rolled back and the session stays usable
    assert [a.name for a in temp_db.list_accounts()] == ["Checking"]
