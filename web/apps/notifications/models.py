import uuid
from django.db import models
from django.db.models import Q


class NotificationModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Category(models.TextChoices):
        ORDER = "order"
        INVENTORY = "inventory"
        TOKEN = "token"
        SYSTEM = "system"

    recipient_id = models.CharField(max_length=128, db_index=True)
    message = models.TextField()
    category = models.CharField(max_length=16, choices=Category.choices, default=Category.SYSTEM)
    read = models.BooleanField(default=False)
    related_id = models.CharField(max_length=64, null=True, blank=True)
    # Deterministic dedup key, e.g. "order:<id>:ready"
    event_key = models.CharField(max_length=200, null=True, blank=True)
    created_at = models.DateTimeField()

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["recipient_id", "event_key"],
                condition=Q(event_key__isnull=False),
                name="ux_notification_recipient_event",
            ),
        ]
        indexes = [models.Index(fields=["recipient_id", "read"], name="ix_notification_unread")]
