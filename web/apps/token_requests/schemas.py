from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SubmitRequestDTO(BaseModel):
    """A student's request for extra tokens.

    The 1..max range is a business rule checked by the service, so only
    the type is checked here.
    """

    reason: str = Field(min_length=1, max_length=1000)
    tokens_requested: int


class DecisionDTO(BaseModel):
    outcome: Literal["approved", "rejected"]


class TokenRequestReadDTO(BaseModel):
    id: str
    student_id: str
    reason: str
    tokens_requested: int
    status: str
    created_at: datetime
    decided_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, request) -> "TokenRequestReadDTO":
        return cls(
            id=request.id,
            student_id=request.student_id,
            reason=request.reason,
            tokens_requested=request.tokens_requested,
            status=request.status.value,
            created_at=request.created_at,
            decided_at=request.decided_at,
        )
