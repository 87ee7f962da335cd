"""Django ORM repository for notifications.

Dedup on (recipient, event_key) relies on the partial unique constraint
of ``NotificationModel``: the insert runs in a savepoint and an
``IntegrityError`` means another emit already stored the same event, in
which case the stored row is returned instead.
"""

from typing import List, Optional, Tuple

from django.db import IntegrityError, transaction

from apps.common.ids import as_uuid

from .domain import Category, Notification, NotificationRepository
from .models import NotificationModel


def _to_domain(obj: NotificationModel) -> Notification:
    return Notification(
        id=str(obj.id),
        recipient_id=obj.recipient_id,
        message=obj.message,
        category=Category(obj.category),
        read=obj.read,
        related_id=obj.related_id,
        event_key=obj.event_key,
        created_at=obj.created_at,
    )


class DjangoNotificationRepository(NotificationRepository):
    def add(self, notification: Notification) -> Tuple[Notification, bool]:
        try:
            with transaction.atomic():
                obj = NotificationModel.objects.create(
                    id=notification.id,
                    recipient_id=notification.recipient_id,
                    message=notification.message,
                    category=notification.category.value,
                    read=notification.read,
                    related_id=notification.related_id,
                    event_key=notification.event_key,
                    created_at=notification.created_at,
                )
            return _to_domain(obj), True
        except IntegrityError:
            if notification.event_key is None:
                raise
            obj = NotificationModel.objects.get(
                recipient_id=notification.recipient_id, event_key=notification.event_key
            )
            return _to_domain(obj), False

    def get(self, notification_id: str) -> Optional[Notification]:
        if as_uuid(notification_id) is None:
            return None
        obj = NotificationModel.objects.filter(id=notification_id).first()
        return _to_domain(obj) if obj else None

    def mark_read(self, notification_id: str) -> bool:
        if as_uuid(notification_id) is None:
            return False
        if not NotificationModel.objects.filter(id=notification_id).exists():
            return False
        NotificationModel.objects.filter(id=notification_id, read=False).update(read=True)
        return True

    def mark_all_read(self, recipient_id: str) -> int:
        return NotificationModel.objects.filter(recipient_id=recipient_id, read=False).update(read=True)

    def list_for_recipients(
        self, recipient_ids: List[str], limit: int, unread_only: bool = False
    ) -> List[Notification]:
        qs = NotificationModel.objects.filter(recipient_id__in=recipient_ids)
        if unread_only:
            qs = qs.filter(read=False)
        return [_to_domain(o) for o in qs.order_by("-created_at")[:limit]]

    def unread_count(self, recipient_id: str) -> int:
        return NotificationModel.objects.filter(recipient_id=recipient_id, read=False).count()
