"""Settings-driven helpers shared by the app providers."""

from django.conf import settings

from .retry import RetryPolicy


def get_retry_policy() -> RetryPolicy:
    """Ledger retry bounds from ``LEDGER_RETRY_*`` settings."""
    return RetryPolicy(
        max_attempts=getattr(settings, "LEDGER_RETRY_MAX", 5),
        backoff_base=getattr(settings, "LEDGER_RETRY_BACKOFF_BASE", 0.02),
        max_sleep=getattr(settings, "LEDGER_RETRY_MAX_SLEEP", 0.5),
    )
