"""Service provider helpers for the Notification Dispatcher.

The dispatcher always stores notifications through the Django repository.
Push delivery over HTTP is only wired in when ``settings.USE_HTTP_DELIVERY``
is truthy and a webhook URL is configured; otherwise recipients poll.
"""

from typing import Optional

from django.conf import settings

from .domain import DeliveryPort, NotificationDispatcher
from .http_adapters import HttpDeliveryClient
from .repository import DjangoNotificationRepository


def get_delivery() -> Optional[DeliveryPort]:
    if getattr(settings, "USE_HTTP_DELIVERY", False) and getattr(settings, "NOTIFICATION_WEBHOOK_URL", ""):
        return HttpDeliveryClient()
    return None


def get_notification_dispatcher() -> NotificationDispatcher:
    from apps.members.providers import get_member_directory

    return NotificationDispatcher(
        repository=DjangoNotificationRepository(),
        directory=get_member_directory(),
        delivery=get_delivery(),
    )
