"""In-process adapter for ``ItemRepository``.

Keeps items in a dict and performs the compare-and-swap under a lock, the
same single-record guarantee the database gives. Intended for unit tests
and local development.
"""

import threading
from dataclasses import replace
from typing import Dict, List, Optional

from .domain import Category, Item, ItemRepository


class InMemoryItemRepository(ItemRepository):
    def __init__(self, items: Optional[List[Item]] = None):
        self._lock = threading.Lock()
        self._rows: Dict[str, Item] = {i.id: replace(i) for i in (items or [])}

    def get(self, item_id: str) -> Optional[Item]:
        with self._lock:
            row = self._rows.get(item_id)
            return replace(row) if row else None

    def add(self, item: Item) -> Item:
        with self._lock:
            self._rows[item.id] = replace(item)
            return replace(item)

    def update_details(self, item: Item) -> bool:
        with self._lock:
            row = self._rows.get(item.id)
            if row is None:
                return False
            row.name = item.name
            row.category = item.category
            row.description = item.description
            row.image_url = item.image_url
            return True

    def compare_and_set_quantity(self, item_id: str, expected_version: int, quantity: int) -> bool:
        with self._lock:
            row = self._rows.get(item_id)
            if row is None or row.version != expected_version:
                return False
            row.quantity = quantity
            row.version += 1
            return True

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._rows.pop(item_id, None) is not None

    def list(self, category: Optional[Category] = None) -> List[Item]:
        with self._lock:
            rows = [replace(r) for r in self._rows.values() if category is None or r.category == category]
        return sorted(rows, key=lambda r: r.name)
