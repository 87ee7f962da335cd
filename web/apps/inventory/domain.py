"""Items, the Inventory Ledger and the staff catalogue.

This module contains the ``Item`` DTO, the repository port for items, the
``InventoryLedger`` that owns every change to an item's available quantity
and the ``InventoryCatalog`` used by staff to manage item details.

Quantities only move through compare-and-swap writes on the item version;
a lost race is retried with backoff and surfaces as ``Conflict`` once the
retry budget is spent.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol

from apps.common.errors import InsufficientStock, InvalidRange, NotFound
from apps.common.retry import RetryPolicy, compare_and_swap
from apps.notifications.domain import Category as NotificationCategory
from apps.notifications.domain import NotificationDispatcher

logger = logging.getLogger("inventory")


# ---- Enums ----
class Category(str, Enum):
    FOOD = "food"
    CLOTHING = "clothing"
    HYGIENE = "hygiene"
    SCHOOL = "school"
    OTHER = "other"


# ---- Entities / DTOs ----
@dataclass
class Item:
    """A donated item on the market shelf.

    Attributes:
        id: Item identifier.
        name: Display name, snapshotted into orders.
        category: One of ``Category``.
        quantity: Units available; never negative.
        description: Free text.
        image_url: Picture shown in the browser (upload is external).
        version: Incremented on every quantity write.
        created_at: Creation timestamp.
    """

    id: str
    name: str
    category: Category
    quantity: int
    description: str = ""
    image_url: str = ""
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ---- Ports ----
class ItemRepository(Protocol):
    """Persistence port for items."""

    def get(self, item_id: str) -> Optional[Item]:
        raise NotImplementedError()

    def add(self, item: Item) -> Item:
        raise NotImplementedError()

    def update_details(self, item: Item) -> bool:
        """Persist name/description/category/image_url. Quantity is untouched."""
        raise NotImplementedError()

    def compare_and_set_quantity(self, item_id: str, expected_version: int, quantity: int) -> bool:
        """Write ``quantity`` only if the stored version is ``expected_version``."""
        raise NotImplementedError()

    def delete(self, item_id: str) -> bool:
        raise NotImplementedError()

    def list(self, category: Optional[Category] = None) -> List[Item]:
        raise NotImplementedError()


# ---- Ledger ----
class InventoryLedger:
    """Atomic reserve/release of item quantities.

    Crossing from in-stock to out-of-stock emits an ``inventory``
    notification to every current staff member.
    """

    def __init__(
        self,
        items: ItemRepository,
        notifier: NotificationDispatcher,
        retry: Optional[RetryPolicy] = None,
    ):
        self.items = items
        self.notifier = notifier
        self.retry = retry or RetryPolicy()

    def _mutate(self, item_id: str, apply) -> int:
        def load() -> Item:
            item = self.items.get(item_id)
            if item is None:
                raise NotFound(f"item {item_id}")
            return item

        def store(item: Item, quantity: int) -> bool:
            return self.items.compare_and_set_quantity(item_id, item.version, quantity)

        item, quantity = compare_and_swap(load, apply, store, policy=self.retry, label=f"item:{item_id}")
        if item.quantity > 0 and quantity <= 0:
            self._alert_out_of_stock(item, item.version + 1)
        return quantity

    def _alert_out_of_stock(self, item: Item, version: int) -> None:
        logger.info("item out of stock", extra={"item_id": item.id})
        self.notifier.emit_to_staff(
            f'Item "{item.name}" is now out of stock.',
            NotificationCategory.INVENTORY,
            related_id=item.id,
            event_key=f"item:{item.id}:out-of-stock:{version}",
        )

    def reserve(self, item_id: str, quantity: int) -> int:
        """Take ``quantity`` units off the shelf.

        Returns:
            int: The new available quantity.

        Raises:
            InvalidRange: If ``quantity`` is not positive.
            InsufficientStock: If fewer than ``quantity`` units are available.
            NotFound: If the item does not exist.
            Conflict: If every conditional write lost its race.
        """
        if quantity <= 0:
            raise InvalidRange(f"reserve quantity {quantity}")

        def apply(item: Item) -> int:
            if item.quantity < quantity:
                raise InsufficientStock(f"item {item_id}: {item.quantity} < {quantity}")
            return item.quantity - quantity

        new_quantity = self._mutate(item_id, apply)
        logger.info("stock reserved", extra={"item_id": item_id, "quantity": quantity, "available": new_quantity})
        return new_quantity

    def release(self, item_id: str, quantity: int) -> int:
        """Put ``quantity`` units back on the shelf. Returns the new quantity."""
        if quantity <= 0:
            raise InvalidRange(f"release quantity {quantity}")
        new_quantity = self._mutate(item_id, lambda item: item.quantity + quantity)
        logger.info("stock released", extra={"item_id": item_id, "quantity": quantity, "available": new_quantity})
        return new_quantity

    def set_quantity(self, item_id: str, quantity: int) -> int:
        """Staff restock or correction: overwrite the available quantity."""
        if quantity < 0:
            raise InvalidRange(f"quantity {quantity}")
        return self._mutate(item_id, lambda item: quantity)

    def available(self, item_id: str) -> int:
        item = self.items.get(item_id)
        if item is None:
            raise NotFound(f"item {item_id}")
        return item.quantity


# ---- Catalogue ----
class InventoryCatalog:
    """Staff-facing item management: create, edit, delete, browse."""

    def __init__(self, items: ItemRepository, ledger: InventoryLedger):
        self.items = items
        self.ledger = ledger

    def add_item(
        self,
        name: str,
        category: Category,
        quantity: int,
        description: str = "",
        image_url: str = "",
    ) -> Item:
        if quantity < 0:
            raise InvalidRange(f"quantity {quantity}")
        item = Item(
            id=str(uuid.uuid4()),
            name=name,
            category=Category(category),
            quantity=quantity,
            description=description,
            image_url=image_url,
        )
        stored = self.items.add(item)
        logger.info("item added", extra={"item_id": stored.id, "quantity": quantity})
        return stored

    def update_item(
        self,
        item_id: str,
        name: Optional[str] = None,
        category: Optional[Category] = None,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        quantity: Optional[int] = None,
    ) -> Item:
        """Edit item details; a new quantity goes through the ledger."""
        item = self.get_item(item_id)
        if name is not None:
            item.name = name
        if category is not None:
            item.category = Category(category)
        if description is not None:
            item.description = description
        if image_url is not None:
            item.image_url = image_url
        if not self.items.update_details(item):
            raise NotFound(f"item {item_id}")
        if quantity is not None:
            self.ledger.set_quantity(item_id, quantity)
        return self.get_item(item_id)

    def delete_item(self, item_id: str) -> None:
        if not self.items.delete(item_id):
            raise NotFound(f"item {item_id}")
        logger.info("item deleted", extra={"item_id": item_id})

    def get_item(self, item_id: str) -> Item:
        item = self.items.get(item_id)
        if item is None:
            raise NotFound(f"item {item_id}")
        return item

    def list_items(self, category: Optional[Category] = None) -> List[Item]:
        return self.items.list(Category(category) if category else None)

    def low_stock(self, threshold: int = 5) -> List[Item]:
        """Items still available but at or under ``threshold`` units."""
        return [i for i in self.items.list() if 0 < i.quantity <= threshold]

    def out_of_stock(self) -> List[Item]:
        return [i for i in self.items.list() if i.quantity <= 0]
