"""Domain models, ports and service for orders.

This module contains the order DTOs, the status transition table, the
repository port for orders and the domain service that runs checkout,
staff status updates and cancellation.

Checkout touches several records (one per item plus the student's token
account) without a cross-record transaction. Each step that fails undoes
the earlier ones with a compensating action: reservations are released
and debited tokens credited back before the error reaches the caller.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Protocol, Sequence

from apps.common.errors import Conflict, Forbidden, InsufficientTokens, InvalidTransition, NotFound
from apps.common.retry import RetryPolicy, compare_and_swap
from apps.inventory.domain import InventoryLedger
from apps.notifications.domain import Category, NotificationDispatcher
from apps.tokens.domain import TokenLedger

from .cart import CartLine, CartValidator, OrderLine
from .pickup import PickupWindow

logger = logging.getLogger("orders")


# ---- Enums ----
class OrderStatus(str, Enum):
    """Order lifecycle. ``COMPLETED`` and ``CANCELLED`` are terminal."""

    PENDING = "pending"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Moves staff make through update_status; cancellation has its own path.
STAFF_TRANSITIONS = frozenset({
    (OrderStatus.PENDING, OrderStatus.READY),
    (OrderStatus.READY, OrderStatus.COMPLETED),
})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


# ---- Entities / DTOs ----
@dataclass
class Order:
    """Container for order data.

    Attributes:
        id: Order identifier.
        student_id: Owning student.
        lines: Ordered line items with name snapshots.
        status: Current ``OrderStatus``.
        pickup_time: Requested pickup slot (timezone-aware).
        tokens_charged: Tokens debited at checkout; equals ``len(lines)``.
        created_at: Creation timestamp.
        version: Incremented on every status write.
    """

    id: str
    student_id: str
    lines: List[OrderLine]
    pickup_time: datetime
    tokens_charged: int
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.status]

    @property
    def short_id(self) -> str:
        return self.id[-6:]


# ---- Ports (DIP) ----
class OrderRepository(Protocol):
    """Persistence port for orders."""

    def add(self, order: Order) -> Order:
        raise NotImplementedError()

    def get(self, order_id: str) -> Optional[Order]:
        raise NotImplementedError()

    def compare_and_set_status(self, order_id: str, expected_version: int, status: OrderStatus) -> bool:
        """Write ``status`` only if the stored version is ``expected_version``."""
        raise NotImplementedError()

    def list(self, student_id: Optional[str] = None, status: Optional[OrderStatus] = None) -> List[Order]:
        """Newest first."""
        raise NotImplementedError()


class MemberLookup(Protocol):
    """What the order service needs to know about the people involved."""

    def is_staff(self, user_id: str) -> bool:
        raise NotImplementedError()

    def display_name(self, user_id: str) -> str:
        raise NotImplementedError()


# ---- Domain service ----
class OrderService:
    """Domain service for the order lifecycle.

    It coordinates the Cart Validator, the Inventory Ledger and the Token
    Ledger on checkout and cancellation, and notifies staff and students
    as orders move through their states.
    """

    def __init__(
        self,
        orders: OrderRepository,
        validator: CartValidator,
        inventory: InventoryLedger,
        tokens: TokenLedger,
        notifier: NotificationDispatcher,
        members: MemberLookup,
        pickup: Optional[PickupWindow] = None,
        retry: Optional[RetryPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        compensation_rounds: int = 100,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.orders = orders
        self.validator = validator
        self.inventory = inventory
        self.tokens = tokens
        self.notifier = notifier
        self.members = members
        self.pickup = pickup
        self.retry = retry or RetryPolicy()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.compensation_rounds = compensation_rounds
        self.sleep = sleep or time.sleep

    # -- checkout --
    def create_order(self, student_id: str, lines: Sequence[CartLine], pickup_time: datetime) -> Order:
        """Turn a cart into a pending order.

        Steps: validate the pickup slot and the cart, reserve every line,
        debit one token per line, persist the order, notify staff. A
        failure at any step releases what was reserved (and refunds what
        was debited) before the error is raised, so no partial order is
        ever visible.

        Args:
            student_id: Owning student.
            lines: Requested cart lines.
            pickup_time: Requested pickup slot.

        Returns:
            Order: The persisted pending order.

        Raises:
            InvalidPickupTime: The slot is not open.
            EmptyCart, InvalidRange, DuplicateItem, LimitExceeded, NotFound:
                The cart is invalid.
            InsufficientStock: An item ran out (at validation or reservation).
            InsufficientTokens: The student cannot pay one token per line.
            Conflict: A ledger kept losing races.
        """
        now = self.clock()
        if self.pickup is not None:
            self.pickup.validate(pickup_time, now)

        # 1) Validate cart
        cart = self.validator.validate(student_id, lines)

        # 2) Reserve stock
        reserved: List[OrderLine] = []
        try:
            for line in cart.lines:
                self.inventory.reserve(line.item_id, line.quantity)
                reserved.append(line)
        except Exception as exc:
            logger.info("reservation failed", extra={"student_id": student_id, "error": str(exc)})
            self._release(reserved)
            raise

        # 3) Charge tokens
        tokens = cart.tokens_needed
        try:
            self.tokens.debit(student_id, tokens)
        except NotFound as exc:
            self._release(reserved)
            raise InsufficientTokens(f"no token account for {student_id}") from exc
        except Exception:
            self._release(reserved)
            raise

        # 4) Persist
        order = Order(
            id=str(uuid.uuid4()),
            student_id=student_id,
            lines=list(cart.lines),
            pickup_time=pickup_time,
            tokens_charged=tokens,
            created_at=now,
        )
        try:
            order = self.orders.add(order)
        except Exception:
            self._refund(student_id, tokens)
            self._release(reserved)
            raise

        # 5) Notify staff
        logger.info(
            "order created",
            extra={"order_id": order.id, "student_id": student_id, "tokens": tokens, "lines": len(order.lines)},
        )
        self.notifier.emit_to_staff(
            f"New order received from {self.members.display_name(student_id)}.",
            Category.ORDER,
            related_id=order.id,
            event_key=f"order:{order.id}:created",
        )
        return order

    def _compensate(self, step: Callable[[], object], label: str) -> None:
        """Run one compensating write until it lands.

        Each ledger call already retries its own lost races; a ``Conflict``
        surfacing here only means that budget ran out, so the step is run
        again, up to ``compensation_rounds`` times.

        Raises:
            Conflict: Every round lost its race.
        """
        for round_ in range(1, self.compensation_rounds + 1):
            try:
                step()
                return
            except Conflict:
                logger.warning("compensation contended", extra={"resource": label, "round": round_})
                delay = self.retry.delay(round_)
                if delay > 0:
                    self.sleep(delay)
        raise Conflict(f"compensation {label}")

    def _release(self, lines: Sequence[OrderLine]) -> List[Exception]:
        """Compensate reservations, newest first; keep going if one fails.

        Returns:
            list: The errors of the lines that could not be released.
        """
        failures = []
        for line in reversed(list(lines)):
            try:
                self._compensate(
                    lambda line=line: self.inventory.release(line.item_id, line.quantity),
                    f"item:{line.item_id}",
                )
            except NotFound:
                logger.warning("release skipped, item deleted", extra={"item_id": line.item_id})
            except Exception as exc:
                logger.error(
                    "compensation failed",
                    extra={"item_id": line.item_id, "quantity": line.quantity, "error": str(exc)},
                )
                failures.append(exc)
        return failures

    def _refund(self, student_id: str, tokens: int) -> Optional[Exception]:
        try:
            self._compensate(lambda: self.tokens.credit(student_id, tokens), f"tokens:{student_id}")
        except Exception as exc:
            logger.error("token refund failed", extra={"student_id": student_id, "tokens": tokens, "error": str(exc)})
            return exc
        return None

    # -- status --
    def _transition(self, order_id: str, decide: Callable[[Order], Optional[OrderStatus]]):
        """Conditional status write; ``decide`` returns None for a no-op."""

        def load() -> Order:
            order = self.orders.get(order_id)
            if order is None:
                raise NotFound(f"order {order_id}")
            return order

        def store(order: Order, status: Optional[OrderStatus]) -> bool:
            if status is None:
                return True
            return self.orders.compare_and_set_status(order_id, order.version, status)

        return compare_and_swap(load, decide, store, policy=self.retry, label=f"order:{order_id}")

    def update_status(self, order_id: str, new_status: OrderStatus, actor_is_staff: bool) -> Order:
        """Staff move an order to ``ready`` or ``completed``.

        Raises:
            Forbidden: The actor is not staff.
            NotFound: Unknown order.
            InvalidTransition: Not ``pending→ready`` or ``ready→completed``
                from the order's current state.
        """
        new_status = OrderStatus(new_status)
        if not actor_is_staff:
            raise Forbidden(f"status change on order {order_id}")

        def decide(order: Order) -> OrderStatus:
            if (order.status, new_status) not in STAFF_TRANSITIONS:
                raise InvalidTransition(f"{order.status.value} -> {new_status.value}")
            return new_status

        order, _ = self._transition(order_id, decide)
        order.status = new_status
        order.version += 1
        logger.info("order status changed", extra={"order_id": order_id, "status": new_status.value})

        if new_status == OrderStatus.READY:
            message = "Your order is ready for pickup! Please visit the market during your selected time slot."
        else:
            message = "Your order has been marked as completed. Thank you for using the market!"
        self.notifier.emit(
            order.student_id,
            message,
            Category.ORDER,
            related_id=order.id,
            event_key=f"order:{order.id}:{new_status.value}",
        )
        return order

    def cancel(self, order_id: str, actor_id: str, actor_is_staff: Optional[bool] = None) -> Order:
        """Cancel a non-terminal order and give everything back.

        The owning student or any staff member may cancel. When
        ``actor_is_staff`` is not given the member directory decides.
        Cancelling an already cancelled order is a silent no-op. The status write comes
        first and is conditional, so of a racing cancel and status update
        only one can win; only the winner returns stock and tokens.
        Once the status is written every line is released and the tokens
        are credited; one failing step never skips the others.

        Raises:
            NotFound: Unknown order.
            Forbidden: The actor is neither the owner nor staff.
            InvalidTransition: The order is completed.
            Conflict: A compensation still lost its race after every
                round; the remaining steps have run and were logged.
        """
        current = self.orders.get(order_id)
        if current is None:
            raise NotFound(f"order {order_id}")
        by_staff = actor_id != current.student_id
        if actor_is_staff is None:
            actor_is_staff = self.members.is_staff(actor_id)
        if by_staff and not actor_is_staff:
            raise Forbidden(f"cancel order {order_id}")

        def decide(order: Order) -> Optional[OrderStatus]:
            if order.status == OrderStatus.CANCELLED:
                return None
            if not can_transition(order.status, OrderStatus.CANCELLED):
                raise InvalidTransition(f"{order.status.value} -> cancelled")
            return OrderStatus.CANCELLED

        order, status = self._transition(order_id, decide)
        if status is None:
            return order

        order.status = OrderStatus.CANCELLED
        order.version += 1
        # the order is cancelled from here on: every line and the refund are owed
        failures = self._release(order.lines)
        refund_error = self._refund(order.student_id, order.tokens_charged)
        if refund_error is not None:
            failures.append(refund_error)
        if failures:
            raise failures[0]
        logger.info("order cancelled", extra={"order_id": order_id, "actor_id": actor_id, "refund": order.tokens_charged})

        self.notifier.emit(
            order.student_id,
            "Your order has been cancelled and your tokens have been refunded.",
            Category.ORDER,
            related_id=order.id,
            event_key=f"order:{order.id}:cancelled",
        )
        who = "staff" if by_staff else "the student"
        self.notifier.emit_to_staff(
            f"Order #{order.short_id} has been cancelled by {who}.",
            Category.ORDER,
            related_id=order.id,
            event_key=f"order:{order.id}:cancelled",
        )
        return order

    # -- reads --
    def get_order(self, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFound(f"order {order_id}")
        return order

    def list_for_student(self, student_id: str) -> List[Order]:
        return self.orders.list(student_id=student_id)

    def list_orders(self, status: Optional[OrderStatus] = None) -> List[Order]:
        return self.orders.list(status=OrderStatus(status) if status else None)
