from datetime import datetime

from pydantic import BaseModel, Field


class RegisterDTO(BaseModel):
    """Profile fields; the id and role come from the gateway headers."""

    email: str = Field(default="", max_length=254)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)


class MemberReadDTO(BaseModel):
    user_id: str
    role: str
    email: str
    first_name: str
    last_name: str
    created_at: datetime

    @classmethod
    def from_domain(cls, m) -> "MemberReadDTO":
        return cls(
            user_id=m.user_id,
            role=m.role.value,
            email=m.email,
            first_name=m.first_name,
            last_name=m.last_name,
            created_at=m.created_at,
        )
