"""Account-related DTOs shared across services."""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AccountSummary(BaseModel):
    """Minimal public identity returned alongside a session token."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: EmailStr


class AccountProfile(AccountSummary):
    """Public account projection; never carries password material."""

    created_at: datetime = Field(..., alias="createdAt")
