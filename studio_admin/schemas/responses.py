from typing import Literal

from pydantic import BaseModel, Field


class AcceptedOut(BaseModel):
    accepted: Literal[True] = True


class ChangeRequestedOut(BaseModel):
    accepted: Literal[True] = True
    expires_in: int = Field(..., description="Seconds until the code expires")


class SuccessOut(BaseModel):
    success: Literal[True] = True


class TokenOut(BaseModel):
    token: str


class AdminOut(BaseModel):
    id: str
    email: str


class ErrorOut(BaseModel):
    error: str
    detail: str
    field: str | None = None
    retry_after: int | None = None
