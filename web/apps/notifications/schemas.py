from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationReadDTO(BaseModel):
    id: str
    message: str
    category: str
    read: bool
    related_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, n) -> "NotificationReadDTO":
        return cls(
            id=n.id,
            message=n.message,
            category=n.category.value,
            read=n.read,
            related_id=n.related_id,
            created_at=n.created_at,
        )
