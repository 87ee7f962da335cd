"""Django ORM repository for orders.

It keeps a thin interface so the domain layer is not coupled to Django
ORM details. Status writes are conditional on the order version, which
is what lets a cancel and a concurrent status update race safely.
"""

from typing import List, Optional

from django.db.models import F

from apps.common.ids import as_uuid

from .cart import OrderLine
from .domain import Order, OrderRepository, OrderStatus
from .models import OrderModel


def _to_domain(obj: OrderModel) -> Order:
    return Order(
        id=str(obj.id),
        student_id=obj.student_id,
        lines=[OrderLine(item_id=l["item_id"], name=l["name"], quantity=l["quantity"]) for l in obj.lines],
        pickup_time=obj.pickup_time,
        tokens_charged=obj.tokens_charged,
        status=OrderStatus(obj.status),
        created_at=obj.created_at,
        version=obj.version,
    )


class DjangoOrderRepository(OrderRepository):
    """Repository that persists ``Order`` domain objects using Django ORM."""

    def add(self, order: Order) -> Order:
        obj = OrderModel.objects.create(
            id=order.id,
            student_id=order.student_id,
            lines=[{"item_id": l.item_id, "name": l.name, "quantity": l.quantity} for l in order.lines],
            status=order.status.value,
            pickup_time=order.pickup_time,
            tokens_charged=order.tokens_charged,
            version=order.version,
            created_at=order.created_at,
        )
        return _to_domain(obj)

    def get(self, order_id: str) -> Optional[Order]:
        if as_uuid(order_id) is None:
            return None
        obj = OrderModel.objects.filter(id=order_id).first()
        return _to_domain(obj) if obj else None

    def compare_and_set_status(self, order_id: str, expected_version: int, status: OrderStatus) -> bool:
        if as_uuid(order_id) is None:
            return False
        updated = OrderModel.objects.filter(id=order_id, version=expected_version).update(
            status=status.value, version=F("version") + 1
        )
        return updated == 1

    def list(self, student_id: Optional[str] = None, status: Optional[OrderStatus] = None) -> List[Order]:
        qs = OrderModel.objects.all()
        if student_id is not None:
            qs = qs.filter(student_id=student_id)
        if status is not None:
            qs = qs.filter(status=status.value)
        return [_to_domain(o) for o in qs.order_by("-created_at")]
