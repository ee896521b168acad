"""Balance and performance calculations.

Balances are always re-summed from journal entries; nothing here caches a
running total between calls.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from finledger.database.base import Database
from finledger.domain.entities import (
    Account,
    AccountPerformance,
    AccountType,
    BalancePoint,
)
from finledger.domain.errors import AccountNotFound, ValidationError, account_not_found
from finledger.domain.money import ZERO, liability_magnitude, round_money

HISTORY_INTERVAL_DAYS = 7


def split_net_worth(balances: Iterable[tuple[AccountType, Decimal]]) -> tuple[Decimal, Decimal]:
    """Total assets and liabilities from (account type, signed balance) pairs.

    Asset balances add as they are, including overdrawn (negative) ones.
    Liabilities add their owed magnitude only.

    Returns:
        Tuple of (total_assets, total_liabilities), unrounded
    """
    assets = ZERO
    liabilities = ZERO
    for account_type, balance in balances:
        if account_type == AccountType.ASSET:
            assets += balance
        elif account_type == AccountType.LIABILITY:
            liabilities += liability_magnitude(balance)
    return assets, liabilities


class BalanceService:
    """Point-in-time balances, account performance and net worth."""

    def __init__(self, db: Database):
        """Initialize balance service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_account(self, account_id: int) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFound(account_not_found(account_id))
        return account

    def _balance(self, account: Account, as_of: Optional[date]) -> Decimal:
        debit, credit = self.db.sum_postings(account.id, end_date=as_of)
        return account.initial_balance + debit - credit

    def balance_as_of(self, account_id: int, as_of: Optional[date] = None) -> Decimal:
        """Signed balance including every posting dated on or before ``as_of``.

        Args:
            account_id: Account ID
            as_of: Inclusive cut-off date; None means all postings

        Returns:
            initial_balance + sum(debit - credit), rounded to 2 places

        Raises:
            AccountNotFound: If the account does not exist
        """
        return round_money(self._balance(self._require_account(account_id), as_of))

    def performance(self, account_id: int, start_date: date, end_date: date) -> AccountPerformance:
        """Balance statistics for an account over an inclusive date range.

        Walks every calendar day from ``start_date`` to ``end_date`` applying
        that day's net posting change, tracking highest, lowest and average
        daily balance. The history holds the opening balance followed by one
        point every seven days and the last day.

        Args:
            account_id: Account ID
            start_date: First day of the range
            end_date: Last day of the range

        Returns:
            AccountPerformance with every monetary field rounded to 2 places

        Raises:
            AccountNotFound: If the account does not exist
            ValidationError: If end_date is before start_date
        """
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")
        account = self._require_account(account_id)

        opening = self._balance(account, start_date - timedelta(days=1))
        closing = self._balance(account, end_date)
        current = self._balance(account, None)
        inflow, outflow = self.db.sum_postings(account.id, start_date, end_date)
        transaction_count = self.db.count_posted_transactions(account.id, start_date, end_date)
        deltas = self.db.daily_posting_deltas(account.id, start_date, end_date)

        running = opening
        highest = opening
        lowest = opening
        total = ZERO
        day_count = 0
        history = [BalancePoint(date=start_date, balance=round_money(opening))]

        current_day = start_date
        while current_day <= end_date:
            running += deltas.get(current_day, ZERO)
            highest = max(highest, running)
            lowest = min(lowest, running)
            total += running
            day_count += 1

            days_from_start = (current_day - start_date).days
            if days_from_start % HISTORY_INTERVAL_DAYS == 0 or current_day == end_date:
                history.append(BalancePoint(date=current_day, balance=round_money(running)))
            current_day += timedelta(days=1)

        average = total / day_count if day_count else ZERO

        return AccountPerformance(
            account_id=account.id,
            start_date=start_date,
            end_date=end_date,
            opening_balance=round_money(opening),
            closing_balance=round_money(closing),
            current_balance=round_money(current),
            highest_balance=round_money(highest),
            lowest_balance=round_money(lowest),
            average_balance=round_money(average),
            total_inflow=round_money(inflow),
            total_outflow=round_money(outflow),
            net_change=round_money(inflow - outflow),
            transaction_count=transaction_count,
            history=history,
        )

    def net_worth_at(self, as_of: Optional[date] = None) -> tuple[Decimal, Decimal, Decimal]:
        """Net worth from every account's balance on ``as_of``.

        Returns:
            Tuple of (total_assets, total_liabilities, net_worth), rounded
        """
        assets, liabilities = split_net_worth(
            (account.type, self._balance(account, as_of)) for account in self.db.list_accounts()
        )
        assets = round_money(assets)
        liabilities = round_money(liabilities)
        return assets, liabilities, assets - liabilities
