import uuid
from django.db import models


class OrderModel(models.Model):
    # UUID PK exposed in the API
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Status(models.TextChoices):
        PENDING = "pending"
        READY = "ready"
        COMPLETED = "completed"
        CANCELLED = "cancelled"

    student_id = models.CharField(max_length=128, db_index=True)
    # [{"item_id": ..., "name": ..., "quantity": ...}], names snapshotted at checkout
    lines = models.JSONField(default=list)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    pickup_time = models.DateTimeField()
    tokens_charged = models.PositiveSmallIntegerField(default=0)
    # Bumped on every status write; conditional updates filter on it
    version = models.IntegerField(default=0)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]


class IdempotencyKey(models.Model):
    # "<student_id>:<client key>", so keys never collide across students
    key = models.CharField(max_length=255, unique=True)
    request_hash = models.CharField(max_length=64)
    response_status = models.PositiveSmallIntegerField(default=0)
    response_body = models.JSONField(default=dict)
    order = models.ForeignKey(OrderModel, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "idempotency_keys"
