"""Net worth snapshots.

Snapshots are a month-end cache derived from the ledger. The replay logic is
the pure function :func:`compute_snapshots`; the service only decides which
dates to compute and how to store them.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from finledger.database.base import Database
from finledger.domain.balance import BalanceService, split_net_worth
from finledger.domain.entities import (
    Account,
    DatedPosting,
    NetWorthSnapshot,
    NetWorthSummary,
)
from finledger.domain.errors import DomainError
from finledger.domain.money import CENT, ZERO, round_money
from finledger.utils.periods import iter_month_ends, month_end, previous_month_end

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_LIMIT = 12
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LedgerView:
    """Read-only copy of the accounts and postings needed to replay history."""

    accounts: list[Account]
    postings: list[DatedPosting]


def compute_snapshots(ledger: LedgerView, dates: Iterable[date]) -> list[NetWorthSnapshot]:
    """Compute net worth on each date from a ledger view.

    Args:
        ledger: Accounts and dated postings
        dates: Dates to evaluate; each includes postings dated on or before it

    Returns:
        One unsaved snapshot (id None) per date, in ascending date order
    """
    targets = sorted(set(dates))
    if not targets:
        return []

    postings = sorted(ledger.postings, key=lambda p: p.date)
    running: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for account in ledger.accounts:
        running[account.id] = account.initial_balance

    snapshots = []
    index = 0
    for target in targets:
        while index < len(postings) and postings[index].date <= target:
            posting = postings[index]
            running[posting.account_id] += posting.debit - posting.credit
            index += 1
        assets, liabilities = split_net_worth(
            (account.type, running[account.id]) for account in ledger.accounts
        )
        assets = round_money(assets)
        liabilities = round_money(liabilities)
        snapshots.append(
            NetWorthSnapshot(
                id=None,
                snapshot_date=target,
                total_assets=assets,
                total_liabilities=liabilities,
                net_worth=assets - liabilities,
            )
        )
    return snapshots


class NetWorthService:
    """Service for current net worth and the month-end snapshot series."""

    def __init__(self, db: Database):
        """Initialize net worth service.

        Args:
            db: Database instance
        """
        self.db = db
        self.balances = BalanceService(db)

    def ledger_view(self, end_date: Optional[date] = None) -> LedgerView:
        """Load the accounts and postings up to ``end_date``."""
        return LedgerView(
            accounts=self.db.list_accounts(),
            postings=self.db.list_dated_postings(end_date=end_date),
        )

    def current_net_worth(self, today: Optional[date] = None) -> NetWorthSummary:
        """Net worth from all postings, with change since last month-end.

        The change percentage is only reported when the previous net worth is
        meaningfully non-zero.
        """
        today = today or date.today()
        assets, liabilities, net_worth = self.balances.net_worth_at(None)
        _, _, previous = self.balances.net_worth_at(previous_month_end(today))

        change = net_worth - previous
        percentage = None
        if abs(previous) > CENT:
            percentage = round_money(change / abs(previous) * HUNDRED)

        return NetWorthSummary(
            total_assets=assets,
            total_liabilities=liabilities,
            net_worth=net_worth,
            previous_net_worth=previous,
            change_amount=round_money(change),
            change_percentage=percentage,
        )

    def generate_for_current_month(self, today: Optional[date] = None) -> NetWorthSnapshot:
        """Upsert the current month-end snapshot from the all-time ledger."""
        today = today or date.today()
        snapshot_date = month_end(today)
        (computed,) = compute_snapshots(self.ledger_view(), [snapshot_date])
        self.db.upsert_snapshot(computed)
        logger.debug("Stored net worth snapshot for %s", snapshot_date)
        return self.db.get_snapshot(snapshot_date)

    def backfill(self, today: Optional[date] = None) -> int:
        """Fill month-end snapshots from the first transaction up to last month.

        Does nothing if any snapshot exists, so edited history is kept.

        Returns:
            Number of snapshots inserted
        """
        if self.db.count_snapshots() > 0:
            return 0
        earliest = self.db.earliest_transaction_date()
        if earliest is None:
            return 0

        today = today or date.today()
        dates = list(iter_month_ends(earliest, today.replace(day=1)))
        if not dates:
            return 0

        inserted = 0
        for snapshot in compute_snapshots(self.ledger_view(dates[-1]), dates):
            try:
                if self.db.insert_snapshot_if_absent(snapshot):
                    inserted += 1
            except DomainError as e:
                logger.warning("Failed to backfill snapshot for %s: %s", snapshot.snapshot_date, e)
        logger.info("Backfilled %d net worth snapshot(s) from %s", inserted, earliest)
        return inserted

    def list_snapshots(self, limit: int = DEFAULT_SNAPSHOT_LIMIT) -> list[NetWorthSnapshot]:
        """The newest ``limit`` snapshots, returned oldest first."""
        return list(reversed(self.db.list_snapshots(limit=limit)))
