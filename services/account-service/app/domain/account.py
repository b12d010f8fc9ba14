from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


def canonical_email(email: str) -> str:
    """Return the trimmed, lowercased form used for lookups and uniqueness."""
    return email.strip().lower()


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered identity."""

    account_id: str
    email: str
    display_name: str
    password_hash: str
    created_at: datetime
    updated_at: datetime

    def project(self) -> "AccountProjection":
        """Return the client-safe view of this account."""
        return AccountProjection(
            account_id=self.account_id,
            name=self.display_name,
            email=self.email,
            created_at=self.created_at,
        )


@dataclass(slots=True, frozen=True)
class AccountProjection:
    """Account fields that may leave the service; never carries the password hash."""

    account_id: str
    name: str
    email: str
    created_at: datetime
