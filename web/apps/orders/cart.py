"""Cart validation.

The validator is a read-only rule check run before checkout (and again
inside ``OrderService.create_order``). Its stock check reads the current
quantity without reserving anything; the Inventory Ledger remains the
final authority when the order is created.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import List, Sequence

from apps.common.errors import DuplicateItem, EmptyCart, InsufficientStock, InvalidRange, LimitExceeded, NotFound
from apps.inventory.domain import ItemRepository

logger = logging.getLogger("orders")


@dataclass(frozen=True)
class CartLine:
    """One requested line: an item and how many units of it."""

    item_id: str
    quantity: int


@dataclass(frozen=True)
class OrderLine:
    """A validated line with the item name snapshotted at checkout."""

    item_id: str
    name: str
    quantity: int


@dataclass(frozen=True)
class ValidatedCart:
    student_id: str
    lines: List[OrderLine]

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def tokens_needed(self) -> int:
        """One token per distinct item, whatever its quantity."""
        return len(self.lines)


class CartValidator:
    """Checks a cart against the per-order limits and current stock."""

    def __init__(self, items: ItemRepository, max_items: int = 3):
        self.items = items
        self.max_items = max_items

    def validate(self, student_id: str, lines: Sequence[CartLine]) -> ValidatedCart:
        """Validate a proposed cart.

        Checks run in this order: empty cart, line quantity range,
        duplicate items, total quantity limit, then item existence and
        stock. The limit is therefore enforced whatever the stock levels.

        Args:
            student_id: Caller identity, used for logging.
            lines: Requested lines in cart order.

        Returns:
            ValidatedCart: Lines with name snapshots.

        Raises:
            EmptyCart: No lines.
            InvalidRange: A line asks for fewer than one unit.
            DuplicateItem: The same item appears on two lines.
            LimitExceeded: Total quantity is above ``max_items``.
            NotFound: An item does not exist.
            InsufficientStock: A line asks for more than is available.
        """
        if not lines:
            raise EmptyCart(student_id)
        for line in lines:
            if line.quantity < 1:
                raise InvalidRange(f"item {line.item_id}: quantity {line.quantity}")

        dupes = [item_id for item_id, n in Counter(line.item_id for line in lines).items() if n > 1]
        if dupes:
            raise DuplicateItem(dupes[0])

        total = sum(line.quantity for line in lines)
        if total > self.max_items:
            logger.info("cart over limit", extra={"student_id": student_id, "total": total})
            raise LimitExceeded(f"{total} > {self.max_items}")

        validated = []
        for line in lines:
            item = self.items.get(line.item_id)
            if item is None:
                raise NotFound(f"item {line.item_id}")
            if line.quantity > item.quantity:
                raise InsufficientStock(f"item {line.item_id}: {item.quantity} < {line.quantity}")
            validated.append(OrderLine(item_id=item.id, name=item.name, quantity=line.quantity))
        return ValidatedCart(student_id=student_id, lines=validated)
