from django.db import models


class MemberModel(models.Model):
    # Identifier issued by the identity provider
    user_id = models.CharField(max_length=128, primary_key=True)

    class Role(models.TextChoices):
        STUDENT = "student"
        ADMIN = "admin"

    role = models.CharField(max_length=16, choices=Role.choices, default=Role.STUDENT, db_index=True)
    email = models.CharField(max_length=254, blank=True, default="")
    first_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100, blank=True, default="")
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "members"
        ordering = ["user_id"]
