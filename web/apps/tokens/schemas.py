from typing import Optional

from pydantic import BaseModel, Field


class TokenMoveDTO(BaseModel):
    amount: int = Field(ge=1, le=100)


class WeeklyResetDTO(BaseModel):
    quota: Optional[int] = Field(default=None, ge=0, le=100)
    run_key: Optional[str] = Field(default=None, min_length=1, max_length=64)
