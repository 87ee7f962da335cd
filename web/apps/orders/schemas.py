"""Pydantic schemas for orders.

This module exposes the request/validation schemas used by the orders API
and the read DTOs returned by it.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class CartLineIn(BaseModel):
    """Input schema for a single cart line.

    Attributes:
        item_id: Item identifier.
        quantity: Units requested (at least one).
    """

    item_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(default=1, ge=1)


class CreateOrderDTO(BaseModel):
    """Schema for checkout.

    Attributes:
        items: Cart lines. Emptiness, duplicates and the per-order limit
            are business rules checked by the cart validator.
        pickup_time: ISO-8601 timestamp with an offset.
    """

    items: list[CartLineIn]
    pickup_time: datetime

    @field_validator("pickup_time")
    @classmethod
    def validate_pickup_time(cls, v: datetime) -> datetime:
        """Reject naive timestamps; the pickup slot is a point in time."""
        if v.tzinfo is None:
            raise ValueError("pickup_time must include a UTC offset")
        return v


class StatusUpdateDTO(BaseModel):
    status: Literal["ready", "completed"]


class OrderLineOut(BaseModel):
    item_id: str
    name: str
    quantity: int


class OrderReadDTO(BaseModel):
    id: str
    student_id: str
    status: str
    lines: list[OrderLineOut]
    pickup_time: datetime
    tokens_charged: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, order) -> "OrderReadDTO":
        return cls(
            id=order.id,
            student_id=order.student_id,
            status=order.status.value,
            lines=[OrderLineOut(item_id=l.item_id, name=l.name, quantity=l.quantity) for l in order.lines],
            pickup_time=order.pickup_time,
            tokens_charged=order.tokens_charged,
            created_at=order.created_at,
        )
