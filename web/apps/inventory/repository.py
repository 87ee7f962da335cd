"""Django ORM repository for items.

Quantity writes are ``UPDATE items SET quantity = ?, version = version + 1
WHERE id = ? AND version = ?``; a zero row count tells the ledger its
snapshot went stale.
"""

from typing import List, Optional

from django.db.models import F

from apps.common.ids import as_uuid

from .domain import Category, Item, ItemRepository
from .models import ItemModel


def _to_domain(obj: ItemModel) -> Item:
    return Item(
        id=str(obj.id),
        name=obj.name,
        category=Category(obj.category),
        quantity=obj.quantity,
        description=obj.description,
        image_url=obj.image_url,
        version=obj.version,
        created_at=obj.created_at,
    )


class DjangoItemRepository(ItemRepository):
    def get(self, item_id: str) -> Optional[Item]:
        if as_uuid(item_id) is None:
            return None
        obj = ItemModel.objects.filter(id=item_id).first()
        return _to_domain(obj) if obj else None

    def add(self, item: Item) -> Item:
        obj = ItemModel.objects.create(
            id=item.id,
            name=item.name,
            category=item.category.value,
            quantity=item.quantity,
            description=item.description,
            image_url=item.image_url,
        )
        return _to_domain(obj)

    def update_details(self, item: Item) -> bool:
        updated = ItemModel.objects.filter(id=item.id).update(
            name=item.name,
            category=item.category.value,
            description=item.description,
            image_url=item.image_url,
        )
        return updated == 1

    def compare_and_set_quantity(self, item_id: str, expected_version: int, quantity: int) -> bool:
        if as_uuid(item_id) is None:
            return False
        updated = ItemModel.objects.filter(id=item_id, version=expected_version).update(
            quantity=quantity, version=F("version") + 1
        )
        return updated == 1

    def delete(self, item_id: str) -> bool:
        if as_uuid(item_id) is None:
            return False
        deleted, _ = ItemModel.objects.filter(id=item_id).delete()
        return deleted > 0

    def list(self, category: Optional[Category] = None) -> List[Item]:
        qs = ItemModel.objects.all()
        if category is not None:
            qs = qs.filter(category=category.value)
        return [_to_domain(o) for o in qs.order_by("name")]
