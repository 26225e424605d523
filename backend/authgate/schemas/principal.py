"""Pydantic schemas for principal views."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PrincipalResponse(BaseModel):
    """Response with account information. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str | None
    last_name: str | None
    role: str
    enabled: bool
    account_non_locked: bool
    failed_attempts: int
    created_at: datetime


class PrincipalListResponse(BaseModel):
    """List of accounts."""

    items: list[PrincipalResponse]
    total: int
