import uuid
from typing import Optional


def as_uuid(value) -> Optional[uuid.UUID]:
    """Parse a record id; None when it cannot be a UUID primary key."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
