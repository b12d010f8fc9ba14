"""Account service orchestrating credential storage, verification, and token issuance."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

from .account import Account, AccountProjection, canonical_email
from .contracts import PasswordChangeInput, ProfileUpdateInput, SignupInput
from .errors import (
    AccountNotFoundError,
    EmailTakenError,
    InvalidCredentialsError,
    ValidationFailedError,
    WeakPasswordError,
    WrongOldPasswordError,
)
from ..repository import AccountRepository, DuplicateEmailError
from ..security.passwords import PasswordHasher
from ..security.tokens import TokenService

logger = logging.getLogger(__name__)

PASSWORD_POLICY = re.compile(
    r"^(?=.*[A-Z])(?=.*[a-z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)
MIN_NEW_PASSWORD_LENGTH = 6


@dataclass(slots=True)
class LoginResult:
    """Token and profile returned to a client after successful authentication."""

    token: str
    expires_at: int
    account: AccountProjection


def is_strong_password(password: str) -> bool:
    """Return ``True`` when ``password`` satisfies the signup strength policy."""
    return PASSWORD_POLICY.fullmatch(password) is not None


class AccountService:
    """Account workflows backed by the account repository.

    The service holds no locks and caches nothing between calls; concurrent
    requests for the same email are arbitrated by the repository's unique index.
    """

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
    ) -> None:
        """Store dependencies used to orchestrate persistence and token issuance."""
        self._repository = repository
        self._hasher = hasher
        self._tokens = tokens

    def signup(self, payload: SignupInput) -> AccountProjection:
        """Register a new account and return its public projection."""
        name = payload.name.strip()
        email = payload.email.strip()
        if not name or not email or not payload.password or not payload.confirm_password:
            raise ValidationFailedError("All fields are required.")
        if payload.password != payload.confirm_password:
            raise ValidationFailedError("Passwords do not match.")
        _require_valid_email(email)
        if not is_strong_password(payload.password):
            raise WeakPasswordError()

        password_hash = self._hasher.hash(payload.password)
        try:
            account = self._repository.create(email, name, password_hash)
        except DuplicateEmailError as exc:
            logger.info("signup rejected: email already registered")
            raise EmailTakenError() from exc

        logger.info("account %s registered", account.account_id)
        return account.project()

    def login(self, email: str, password: str) -> LoginResult:
        """Authenticate by email and password and mint a session token."""
        if not email.strip() or not password:
            raise ValidationFailedError("Email and password required.")

        account = self._repository.find_by_email(email)
        if account is None or not self._hasher.verify(password, account.password_hash):
            logger.info("login rejected: invalid credentials")
            raise InvalidCredentialsError()

        issued = self._tokens.issue(account.account_id, account.email)
        logger.info("account %s logged in", account.account_id)
        return LoginResult(token=issued.token, expires_at=issued.expires_at, account=account.project())

    def get_profile(self, account_id: str) -> AccountProjection:
        return self._require_account(account_id).project()

    def update_profile(self, payload: ProfileUpdateInput) -> AccountProjection:
        """Replace name and email for the calling account.

        The lookup by email only produces a friendlier early error; the
        repository's unique index makes the final decision at write time.
        """
        name = payload.name.strip()
        email = payload.email.strip()
        if not name or not email:
            raise ValidationFailedError("Name and email are required.")
        _require_valid_email(email)

        current = self._require_account(payload.account_id)
        holder = self._repository.find_by_email(email)
        if holder is not None and holder.account_id != current.account_id:
            raise EmailTakenError("That email is already used by another account.")

        try:
            updated = self._repository.update_profile(current.account_id, name, email)
        except DuplicateEmailError as exc:
            logger.info("profile update for %s lost email race", current.account_id)
            raise EmailTakenError("That email is already used by another account.") from exc
        if updated is None:
            raise AccountNotFoundError()

        logger.info("account %s updated profile", updated.account_id)
        return updated.project()

    def change_password(self, payload: PasswordChangeInput) -> None:
        """Replace the password after confirming the current one.

        Previously issued tokens stay valid until they expire.
        """
        if not payload.old_password or not payload.new_password or not payload.confirm_new_password:
            raise ValidationFailedError(
                "Old password, new password and confirm password are required."
            )
        if len(payload.new_password) < MIN_NEW_PASSWORD_LENGTH:
            raise ValidationFailedError(
                f"New password must be at least {MIN_NEW_PASSWORD_LENGTH} characters."
            )
        if payload.new_password != payload.confirm_new_password:
            raise ValidationFailedError("New passwords do not match.")

        account = self._require_account(payload.account_id)
        if not self._hasher.verify(payload.old_password, account.password_hash):
            logger.info("password change for %s rejected: wrong old password", account.account_id)
            raise WrongOldPasswordError()

        updated = self._repository.update_password_hash(
            account.account_id, self._hasher.hash(payload.new_password)
        )
        if updated is None:
            raise AccountNotFoundError()
        logger.info("account %s changed password", account.account_id)

    def _require_account(self, account_id: str) -> Account:
        account = self._repository.find_by_id(account_id)
        if account is None:
            raise AccountNotFoundError()
        return account


def _require_valid_email(email: str) -> None:
    try:
        validate_email(canonical_email(email), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationFailedError("Email address is not valid.") from exc
