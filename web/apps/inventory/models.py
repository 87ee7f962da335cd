import uuid
from django.db import models
from django.db.models import Q


class ItemModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Category(models.TextChoices):
        FOOD = "food"
        CLOTHING = "clothing"
        HYGIENE = "hygiene"
        SCHOOL = "school"
        OTHER = "other"

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=16, choices=Category.choices, default=Category.OTHER)
    image_url = models.URLField(max_length=500, blank=True, default="")
    quantity = models.IntegerField(default=0)
    # Bumped on every quantity write; conditional updates filter on it
    version = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "items"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=0), name="ck_item_quantity_non_negative"),
        ]
