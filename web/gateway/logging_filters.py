"""Logging filter that enriches log records with request context.

Adds ``request_id`` and ``user_id`` to every record from the ContextVars set
by the gateway middleware, so JSON log lines from a checkout, its ledger
writes and its notifications can be correlated.
"""

from logging import Filter, LogRecord
from .middleware import REQUEST_ID_CTX, USER_ID_CTX


class RequestIdFilter(Filter):
    """Attach ``request_id`` and ``user_id`` attributes to log records.

    Outside a request (management commands, tests) both are ``"-"`` so
    formatters can reliably reference them.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        record.user_id = USER_ID_CTX.get()
        return True
