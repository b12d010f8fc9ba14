"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class SignupInput:
    """Raw registration fields as submitted by the client."""

    name: str
    email: str
    password: str
    confirm_password: str


@dataclass(slots=True)
class ProfileUpdateInput:
    """Replacement name and email for the authenticated account."""

    account_id: str
    name: str
    email: str


@dataclass(slots=True)
class PasswordChangeInput:
    account_id: str
    old_password: str
    new_password: str
    confirm_new_password: str
