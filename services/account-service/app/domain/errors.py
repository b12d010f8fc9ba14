"""Error taxonomy for account workflows.

Every error carries a stable ``code`` and a client-safe default message. The
HTTP layer decides how each code is rendered.
"""

from __future__ import annotations


class AccountServiceError(Exception):
    """Base class for expected account workflow outcomes."""

    code = "error"
    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailedError(AccountServiceError):
    code = "validation_failed"
    default_message = "All fields are required."


class WeakPasswordError(AccountServiceError):
    code = "weak_password"
    default_message = (
        "Password must be at least 8 characters and include uppercase, lowercase, number, and symbol."
    )


class EmailTakenError(AccountServiceError):
    code = "email_taken"
    default_message = "Email already exists."


class InvalidCredentialsError(AccountServiceError):
    """Unknown email and wrong password are deliberately indistinguishable."""

    code = "invalid_credentials"
    default_message = "Invalid login credentials."


class WrongOldPasswordError(AccountServiceError):
    code = "wrong_old_password"
    default_message = "Old password is incorrect."


class AccountNotFoundError(AccountServiceError):
    code = "not_found"
    default_message = "User not found."


class UnauthorizedError(AccountServiceError):
    code = "unauthorized"
    default_message = "Invalid or expired token."


class StorageUnavailableError(AccountServiceError):
    """Infrastructure fault; the message is never shown to clients."""

    code = "storage_unavailable"
    default_message = "Account storage is unavailable."
