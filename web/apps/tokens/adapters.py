"""In-process adapter for ``TokenAccountRepository``.

The compare-and-swap runs under a lock, which gives the same single-record
atomicity a real store offers. Used by unit tests, including the threaded
concurrency tests.
"""

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .domain import TokenAccount, TokenAccountRepository


class InMemoryTokenAccountRepository(TokenAccountRepository):
    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._lock = threading.Lock()
        self._rows: Dict[str, TokenAccount] = {}
        for student_id, balance in (balances or {}).items():
            self._rows[student_id] = TokenAccount(student_id=student_id, balance=balance)

    def get(self, student_id: str) -> Optional[TokenAccount]:
        with self._lock:
            row = self._rows.get(student_id)
            return replace(row) if row else None

    def create(self, account: TokenAccount) -> bool:
        with self._lock:
            if account.student_id in self._rows:
                return False
            self._rows[account.student_id] = replace(account)
            return True

    def compare_and_set_balance(self, student_id: str, expected_version: int, balance: int) -> bool:
        with self._lock:
            row = self._rows.get(student_id)
            if row is None or row.version != expected_version:
                return False
            row.balance = balance
            row.version += 1
            row.updated_at = datetime.now(timezone.utc)
            return True

    def student_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._rows)
