"""Periodic triggers that keep derived data current.

Every task is safe to run repeatedly on the same day.
"""

import logging
from datetime import date
from typing import Any, Callable, Optional

from finledger.database.base import Database
from finledger.domain.billing import CreditCardService
from finledger.domain.errors import DomainError
from finledger.domain.networth import NetWorthService
from finledger.domain.recurring import RecurringService

logger = logging.getLogger(__name__)


def run_daily_tasks(db: Database, today: Optional[date] = None) -> dict[str, Any]:
    """Run recurring posting, auto-settlement and snapshot maintenance.

    Backfill runs before the current-month snapshot because it only acts on
    an empty snapshot table. A failing task is logged and the rest still run.

    Args:
        db: Database instance
        today: Reference date (defaults to date.today())

    Returns:
        Result per task name; None for a task that failed
    """
    today = today or date.today()
    networth = NetWorthService(db)
    tasks: list[tuple[str, Callable[[], Any]]] = [
        ("recurring", lambda: RecurringService(db).process_due(today)),
        ("auto_settlement", lambda: CreditCardService(db).process_auto_settlements(today)),
        ("snapshot_backfill", lambda: networth.backfill(today)),
        ("snapshot_current", lambda: networth.generate_for_current_month(today)),
    ]

    results: dict[str, Any] = {}
    for name, task in tasks:
        try:
            results[name] = task()
        except DomainError as e:
            logger.warning("Daily task %s failed: %s", name, e)
            results[name] = None
    return results
