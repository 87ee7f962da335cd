"""Pydantic schemas for the item catalogue and stock movements."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

CategoryName = Literal["food", "clothing", "hygiene", "school", "other"]


class ItemCreateDTO(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: CategoryName = "other"
    quantity: int = Field(default=0, ge=0)
    description: str = Field(default="", max_length=2000)
    image_url: str = Field(default="", max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("name must not be blank")
        return v2

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("image_url must be an http(s) URL")
        return v


class ItemUpdateDTO(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[CategoryName] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = Field(default=None, max_length=2000)
    image_url: Optional[str] = Field(default=None, max_length=500)


class StockMoveDTO(BaseModel):
    quantity: int = Field(ge=1)


class ItemReadDTO(BaseModel):
    id: str
    name: str
    category: str
    quantity: int
    description: str
    image_url: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, item) -> "ItemReadDTO":
        return cls(
            id=item.id,
            name=item.name,
            category=item.category.value,
            quantity=item.quantity,
            description=item.description,
            image_url=item.image_url,
            created_at=item.created_at,
        )
