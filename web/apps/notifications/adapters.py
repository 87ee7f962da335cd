"""In-process adapters for the notification ports.

``InMemoryNotificationRepository`` keeps notifications in a dict guarded
by a lock, so it honours the (recipient, event_key) uniqueness under
concurrent emits. ``StaticStaffDirectory`` is a mutable staff roster and
``RecordingDelivery`` remembers what was pushed. They are intended for unit
tests and local development.
"""

import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from .domain import DeliveryPort, Notification, NotificationRepository, StaffDirectory


class InMemoryNotificationRepository(NotificationRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, Notification] = {}
        self._keys: Dict[Tuple[str, str], str] = {}

    def add(self, notification: Notification) -> Tuple[Notification, bool]:
        with self._lock:
            if notification.event_key is not None:
                existing = self._keys.get((notification.recipient_id, notification.event_key))
                if existing is not None:
                    return replace(self._rows[existing]), False
                self._keys[(notification.recipient_id, notification.event_key)] = notification.id
            self._rows[notification.id] = replace(notification)
            return replace(notification), True

    def get(self, notification_id: str) -> Optional[Notification]:
        with self._lock:
            row = self._rows.get(notification_id)
            return replace(row) if row else None

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            row = self._rows.get(notification_id)
            if row is None:
                return False
            row.read = True
            return True

    def mark_all_read(self, recipient_id: str) -> int:
        with self._lock:
            changed = 0
            for row in self._rows.values():
                if row.recipient_id == recipient_id and not row.read:
                    row.read = True
                    changed += 1
            return changed

    def list_for_recipients(
        self, recipient_ids: List[str], limit: int, unread_only: bool = False
    ) -> List[Notification]:
        wanted = set(recipient_ids)
        with self._lock:
            rows = [
                replace(r)
                for r in self._rows.values()
                if r.recipient_id in wanted and not (unread_only and r.read)
            ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[:limit]

    def unread_count(self, recipient_id: str) -> int:
        with self._lock:
            return sum(1 for r in self._rows.values() if r.recipient_id == recipient_id and not r.read)


class StaticStaffDirectory(StaffDirectory):
    """Staff roster backed by a plain list; tests can add staff later."""

    def __init__(self, staff: Iterable[str] = ()):
        self.staff = list(staff)

    def staff_ids(self) -> List[str]:
        return list(self.staff)


class RecordingDelivery(DeliveryPort):
    """Delivery stub that records every pushed notification."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Notification] = []

    def deliver(self, notification: Notification) -> bool:
        if self.fail:
            raise RuntimeError("DELIVERY_UNAVAILABLE")
        self.sent.append(notification)
        return True
