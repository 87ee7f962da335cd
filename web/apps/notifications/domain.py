"""Domain model, ports and dispatcher for notifications.

A notification is an immutable message addressed to one recipient; only
its read flag changes after creation. Fan-out to "all staff" is a plain
loop of individual emits over the staff roster as it is at emission time.

Emits are idempotent per (recipient, event_key): components derive the key
from the entity and the transition that caused the message (for example
``order:<id>:ready``) so a retried workflow never notifies twice.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from apps.common.errors import NotFound

logger = logging.getLogger("notifications")


class Category(str, Enum):
    """What a notification is about."""

    ORDER = "order"
    INVENTORY = "inventory"
    TOKEN = "token"
    SYSTEM = "system"


@dataclass
class Notification:
    """A message addressed to a single recipient.

    Attributes:
        id: Notification identifier.
        recipient_id: User identifier from the identity provider.
        message: Text shown to the recipient.
        category: One of ``Category``.
        read: Whether the recipient has seen it.
        related_id: Optional id of the order/item/request it refers to.
        event_key: Optional dedup key, unique per recipient.
        created_at: Creation timestamp (UTC).
    """

    id: str
    recipient_id: str
    message: str
    category: Category
    read: bool = False
    related_id: Optional[str] = None
    event_key: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ---- Ports ----
class NotificationRepository(Protocol):
    """Persistence port for notifications."""

    def add(self, notification: Notification) -> Tuple[Notification, bool]:
        """Store a notification unless (recipient, event_key) already exists.

        Returns:
            tuple: ``(stored, created)`` where ``stored`` is the existing
            record when the key was already used.
        """
        raise NotImplementedError()

    def get(self, notification_id: str) -> Optional[Notification]:
        raise NotImplementedError()

    def mark_read(self, notification_id: str) -> bool:
        """Set the read flag. Returns False if the notification is unknown."""
        raise NotImplementedError()

    def mark_all_read(self, recipient_id: str) -> int:
        """Set the read flag on every unread notification of a recipient."""
        raise NotImplementedError()

    def list_for_recipients(
        self, recipient_ids: List[str], limit: int, unread_only: bool = False
    ) -> List[Notification]:
        """Newest first."""
        raise NotImplementedError()

    def unread_count(self, recipient_id: str) -> int:
        raise NotImplementedError()


class StaffDirectory(Protocol):
    """Port to the current staff roster."""

    def staff_ids(self) -> List[str]:
        raise NotImplementedError()


class DeliveryPort(Protocol):
    """Optional push channel to the recipient (webhook, push service...)."""

    def deliver(self, notification: Notification) -> bool:
        raise NotImplementedError()


# ---- Service ----
class NotificationDispatcher:
    """Appends notifications and fans them out to staff.

    The stored notification is the source of truth: push delivery is best
    effort and recipients can always poll ``list_for_recipient``.
    """

    def __init__(
        self,
        repository: NotificationRepository,
        directory: StaffDirectory,
        delivery: Optional[DeliveryPort] = None,
    ):
        self.repository = repository
        self.directory = directory
        self.delivery = delivery

    def emit(
        self,
        recipient_id: str,
        message: str,
        category: Category = Category.SYSTEM,
        related_id: Optional[str] = None,
        event_key: Optional[str] = None,
    ) -> Notification:
        """Append a notification for one recipient.

        Args:
            recipient_id: Who receives it.
            message: Text to show.
            category: Notification category.
            related_id: Optional related entity id.
            event_key: Optional dedup key; a second emit with the same
                (recipient, key) returns the first notification.

        Returns:
            Notification: The stored (or previously stored) notification.
        """
        notification = Notification(
            id=str(uuid.uuid4()),
            recipient_id=recipient_id,
            message=message,
            category=Category(category),
            related_id=related_id,
            event_key=event_key,
        )
        stored, created = self.repository.add(notification)
        if not created:
            logger.info("duplicate notification skipped", extra={"recipient_id": recipient_id, "event_key": event_key})
            return stored
        if self.delivery is not None:
            try:
                self.delivery.deliver(stored)
            except Exception as exc:
                # stored already; the recipient still sees it on the next poll
                logger.warning(
                    "notification push failed",
                    extra={"notification_id": stored.id, "error": type(exc).__name__},
                )
        return stored

    def emit_to_staff(
        self,
        message: str,
        category: Category = Category.SYSTEM,
        related_id: Optional[str] = None,
        event_key: Optional[str] = None,
    ) -> List[Notification]:
        """Emit one notification per current staff member."""
        return [
            self.emit(staff_id, message, category, related_id=related_id, event_key=event_key)
            for staff_id in self.directory.staff_ids()
        ]

    def mark_read(self, notification_id: str) -> None:
        if not self.repository.mark_read(notification_id):
            raise NotFound(notification_id)

    def mark_all_read(self, recipient_id: str) -> int:
        return self.repository.mark_all_read(recipient_id)

    def get(self, notification_id: str) -> Optional[Notification]:
        return self.repository.get(notification_id)

    def list_for_recipient(self, recipient_id: str, limit: int = 20, unread_only: bool = False) -> List[Notification]:
        return self.repository.list_for_recipients([recipient_id], limit, unread_only=unread_only)

    def staff_feed(self, limit: int = 50) -> List[Notification]:
        """Notifications addressed to anyone currently on staff."""
        staff = self.directory.staff_ids()
        if not staff:
            return []
        return self.repository.list_for_recipients(staff, limit)

    def unread_count(self, recipient_id: str) -> int:
        return self.repository.unread_count(recipient_id)
