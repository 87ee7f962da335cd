"""In-process adapter for ``OrderRepository``.

Orders are kept in a dict; the status compare-and-swap runs under a lock
so concurrent cancel/status-update tests see a single winner. Intended for
unit tests and local development.
"""

import threading
from dataclasses import replace
from typing import Dict, List, Optional

from .domain import Order, OrderRepository, OrderStatus


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, fail_on_add: bool = False):
        self._lock = threading.Lock()
        self._rows: Dict[str, Order] = {}
        # Simulates a storage outage at the persist step of checkout
        self.fail_on_add = fail_on_add

    def add(self, order: Order) -> Order:
        if self.fail_on_add:
            raise RuntimeError("ORDER_STORE_UNAVAILABLE")
        with self._lock:
            self._rows[order.id] = replace(order, lines=list(order.lines))
            return replace(order, lines=list(order.lines))

    def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            row = self._rows.get(order_id)
            return replace(row, lines=list(row.lines)) if row else None

    def compare_and_set_status(self, order_id: str, expected_version: int, status: OrderStatus) -> bool:
        with self._lock:
            row = self._rows.get(order_id)
            if row is None or row.version != expected_version:
                return False
            row.status = status
            row.version += 1
            return True

    def list(self, student_id: Optional[str] = None, status: Optional[OrderStatus] = None) -> List[Order]:
        with self._lock:
            rows = [
                replace(r, lines=list(r.lines))
                for r in self._rows.values()
                if (student_id is None or r.student_id == student_id) and (status is None or r.status == status)
            ]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)
