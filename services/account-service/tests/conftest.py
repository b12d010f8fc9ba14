from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api import routes
from app.domain.account import Account, canonical_email
from app.domain.service import AccountService
from app.repository import DuplicateEmailError
from app.security.passwords import PasswordHasher
from app.security.tokens import TokenService

TEST_SECRET = "test-signing-secret-0123456789abcdef"


class FakeRepository:
    """In-memory repository mimicking the Postgres unique email index."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._accounts: dict[str, Account] = {}
        self._ids_by_email: dict[str, str] = {}

    def create(self, email: str, display_name: str, password_hash: str) -> Account:
        canonical = canonical_email(email)
        now = datetime.now(timezone.utc)
        with self._lock:
            if canonical in self._ids_by_email:
                raise DuplicateEmailError(canonical)
            account = Account(
                account_id=str(uuid.uuid4()),
                email=canonical,
                display_name=display_name,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            self._accounts[account.account_id] = account
            self._ids_by_email[canonical] = account.account_id
            return replace(account)

    def find_by_email(self, email: str) -> Account | None:
        with self._lock:
            account_id = self._ids_by_email.get(canonical_email(email))
            if account_id is None:
                return None
            return replace(self._accounts[account_id])

    def find_by_id(self, account_id: str) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            return replace(account) if account else None

    def update_profile(self, account_id: str, display_name: str, email: str) -> Account | None:
        canonical = canonical_email(email)
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            holder = self._ids_by_email.get(canonical)
            if holder is not None and holder != account_id:
                raise DuplicateEmailError(canonical)
            del self._ids_by_email[account.email]
            account.email = canonical
            account.display_name = display_name
            account.updated_at = datetime.now(timezone.utc)
            self._ids_by_email[canonical] = account_id
            return replace(account)

    def update_password_hash(self, account_id: str, password_hash: str) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            account.password_hash = password_hash
            account.updated_at = datetime.now(timezone.utc)
            return replace(account)

    def stored(self, account_id: str) -> Account:
        """Return the raw stored row, password hash included."""
        return replace(self._accounts[account_id])


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher()


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, issuer="account-service")


@pytest.fixture
def service(repository, hasher, tokens) -> AccountService:
    return AccountService(repository, hasher, tokens)


def build_app(service: AccountService, tokens: TokenService) -> FastAPI:
    app = FastAPI()
    app.include_router(routes.router)
    routes.install_exception_handlers(app)
    app.state.account_service = service
    app.state.token_service = tokens
    return app


@pytest.fixture
def api_client(service, tokens, repository):
    """Provide a FastAPI test client with isolated state."""
    with TestClient(build_app(service, tokens)) as client:
        yield client, repository
