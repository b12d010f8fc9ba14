"""Shared schema exports."""

from .account import AccountProfile, AccountSummary

__all__ = [
    "AccountProfile",
    "AccountSummary",
]
