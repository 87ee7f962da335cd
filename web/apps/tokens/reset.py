"""Weekly token reset.

Restates every student's balance to the weekly quota. The job is not
transactional across students: it walks the accounts one by one, so a
failure part-way leaves the earlier accounts reset. Re-running it is safe:
balances are overwritten (not incremented) and the per-student notice is
keyed on the run, so a second run in the same week does not notify again.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from apps.notifications.domain import Category, NotificationDispatcher

from .domain import TokenLedger

logger = logging.getLogger("tokens")


def iso_week_key(now: datetime) -> str:
    year, week, _ = now.isocalendar()
    return f"{year}-W{week:02d}"


class WeeklyResetJob:
    def __init__(
        self,
        ledger: TokenLedger,
        notifier: NotificationDispatcher,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def reset_all(self, quota: int = 3, run_key: Optional[str] = None) -> int:
        """Set every account to ``quota`` and notify each student once.

        Args:
            quota: New balance for every account.
            run_key: Identifies the run for notification dedup; defaults to
                the ISO week of the current time.

        Returns:
            int: Number of accounts reset.
        """
        run_key = run_key or iso_week_key(self.clock())
        count = 0
        for student_id in self.ledger.student_ids():
            self.ledger.set_balance(student_id, quota)
            self.notifier.emit(
                student_id,
                f"Your weekly token balance has been reset to {quota}. Happy shopping!",
                Category.SYSTEM,
                event_key=f"weekly-reset:{run_key}:{quota}",
            )
            count += 1
        logger.info("weekly tokens reset", extra={"count": count, "quota": quota, "run_key": run_key})
        return count
