from django.db import models
from django.db.models import Q


class TokenAccountModel(models.Model):
    student_id = models.CharField(max_length=128, primary_key=True)
    balance = models.IntegerField(default=0)
    # Bumped on every write; conditional updates filter on it
    version = models.IntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "token_accounts"
        ordering = ["student_id"]
        constraints = [
            models.CheckConstraint(condition=Q(balance__gte=0), name="ck_token_balance_non_negative"),
        ]
