"""In-process adapter for ``TokenRequestRepository`` (tests, local development).

The one-pending-per-student rule is checked and applied under the same
lock, mirroring the partial unique index of the database adapter.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from apps.common.errors import DuplicatePending

from .domain import RequestStatus, TokenRequest, TokenRequestRepository


class InMemoryTokenRequestRepository(TokenRequestRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, TokenRequest] = {}

    def add(self, request: TokenRequest) -> TokenRequest:
        with self._lock:
            if any(
                r.student_id == request.student_id and r.status == RequestStatus.PENDING
                for r in self._rows.values()
            ):
                raise DuplicatePending(request.student_id)
            self._rows[request.id] = replace(request)
            return replace(request)

    def get(self, request_id: str) -> Optional[TokenRequest]:
        with self._lock:
            row = self._rows.get(request_id)
            return replace(row) if row else None

    def compare_and_set_status(
        self, request_id: str, expected: RequestStatus, status: RequestStatus, decided_at: Optional[datetime]
    ) -> bool:
        with self._lock:
            row = self._rows.get(request_id)
            if row is None or row.status != expected:
                return False
            if status == RequestStatus.PENDING and any(
                r.student_id == row.student_id and r.status == RequestStatus.PENDING for r in self._rows.values()
            ):
                raise DuplicatePending(row.student_id)
            row.status = status
            row.decided_at = decided_at
            return True

    def list(self, student_id: Optional[str] = None, status: Optional[RequestStatus] = None) -> List[TokenRequest]:
        with self._lock:
            rows = [
                replace(r)
                for r in self._rows.values()
                if (student_id is None or r.student_id == student_id) and (status is None or r.status == status)
            ]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)
