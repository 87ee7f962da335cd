import uuid
from django.db import models
from django.db.models import Q


class TokenRequestModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Status(models.TextChoices):
        PENDING = "pending"
        APPROVED = "approved"
        REJECTED = "rejected"

    student_id = models.CharField(max_length=128, db_index=True)
    reason = models.TextField()
    tokens_requested = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField()
    decided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "token_requests"
        ordering = ["-created_at"]
        constraints = [
            # At most one pending request per student
            models.UniqueConstraint(
                fields=["student_id"],
                condition=Q(status="pending"),
                name="ux_token_request_one_pending",
            ),
            models.CheckConstraint(
                condition=Q(tokens_requested__gte=1),
                name="ck_token_request_positive",
            ),
        ]
