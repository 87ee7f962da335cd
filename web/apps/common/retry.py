"""Bounded retry for compare-and-swap writes.

Ledgers never write blindly: they read the current record, compute the new
value and ask the repository to store it only if the record's version is
unchanged. A lost race re-reads and tries again, with exponential backoff,
up to ``RetryPolicy.max_attempts`` times before giving up with ``Conflict``.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, TypeVar

from .errors import Conflict

logger = logging.getLogger("ledger")

S = TypeVar("S")
V = TypeVar("V")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for conditional writes.

    Attributes:
        max_attempts: Total number of read-modify-write attempts.
        backoff_base: Sleep before the second attempt, in seconds. Doubles
            on every further attempt.
        max_sleep: Upper bound for a single sleep.
    """

    max_attempts: int = 5
    backoff_base: float = 0.02
    max_sleep: float = 0.5

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return min(self.backoff_base * (2 ** (attempt - 1)), self.max_sleep)


def compare_and_swap(
    load: Callable[[], S],
    apply: Callable[[S], V],
    store: Callable[[S, V], bool],
    *,
    policy: RetryPolicy,
    label: str,
    sleep: Optional[Callable[[float], None]] = None,
) -> Tuple[S, V]:
    """Run a read-modify-write loop until ``store`` accepts the write.

    Args:
        load: Reads the current snapshot. May raise (e.g. ``NotFound``).
        apply: Computes the new value from the snapshot. Business errors
            raised here (``InsufficientStock``...) propagate untouched and
            are never retried.
        store: Conditionally persists the new value; returns False when
            the snapshot went stale in the meantime.
        policy: Retry bounds.
        label: Resource name used in logs and in the ``Conflict`` detail.
        sleep: Sleep function, injectable for tests.

    Returns:
        tuple: ``(snapshot, new_value)`` of the winning attempt.

    Raises:
        Conflict: When every attempt lost its race.
    """
    sleep = sleep or time.sleep
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        snapshot = load()
        value = apply(snapshot)
        if store(snapshot, value):
            return snapshot, value
        logger.info("conditional write lost race", extra={"resource": label, "attempt": attempt})
        if attempt < attempts:
            delay = policy.delay(attempt)
            if delay > 0:
                sleep(delay)
    logger.warning("conditional write gave up", extra={"resource": label, "attempts": attempts})
    raise Conflict(label)
