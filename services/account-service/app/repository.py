"""Database repository for account credentials and profiles."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

import psycopg
from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, canonical_email
from .domain.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        account_id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        display_name TEXT NOT NULL CHECK (display_name <> ''),
        password_hash TEXT NOT NULL CHECK (password_hash <> ''),
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS accounts_email_key ON accounts (email)",
)

_COLUMNS = "account_id, email, display_name, password_hash, created_at, updated_at"


class DuplicateEmailError(Exception):
    """Raised when the unique email index rejects a write."""

    def __init__(self, email: str) -> None:
        super().__init__(f"email already registered: {email}")
        self.email = email


class AccountRepository:
    """Postgres-backed account persistence.

    Email uniqueness is enforced solely by the ``accounts_email_key`` unique
    index; a violation at write time is the authoritative duplicate signal.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        """Borrow a pooled connection, translating connectivity faults."""
        try:
            with self._pool.connection() as conn:
                yield conn
        except psycopg.OperationalError as exc:
            logger.error("account storage unavailable: %s", exc)
            raise StorageUnavailableError() from exc

    def ensure_schema(self) -> None:
        """Create the accounts table and its unique email index if absent."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                for statement in SCHEMA_STATEMENTS:
                    cur.execute(statement)
            conn.commit()

    def create(self, email: str, display_name: str, password_hash: str) -> Account:
        """Insert a new account, raising :class:`DuplicateEmailError` on a clash."""
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        canonical = canonical_email(email)
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                try:
                    cur.execute(
                        f"""
                        INSERT INTO accounts ({_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (account_id, canonical, display_name, password_hash, now, now),
                    )
                except errors.UniqueViolation as exc:
                    raise DuplicateEmailError(canonical) from exc
                row = cur.fetchone()
            conn.commit()
        return self._map_record(row)

    def find_by_email(self, email: str) -> Account | None:
        """Return the account registered under the canonical form of ``email``."""
        return self._fetch_one("email = %s", canonical_email(email))

    def find_by_id(self, account_id: str) -> Account | None:
        return self._fetch_one("account_id = %s", account_id)

    def update_profile(self, account_id: str, display_name: str, email: str) -> Account | None:
        """Replace name and email; ``None`` when the account does not exist."""
        canonical = canonical_email(email)
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                try:
                    cur.execute(
                        f"""
                        UPDATE accounts
                        SET display_name = %s, email = %s, updated_at = %s
                        WHERE account_id = %s
                        RETURNING {_COLUMNS}
                        """,
                        (display_name, canonical, datetime.now(timezone.utc), account_id),
                    )
                except errors.UniqueViolation as exc:
                    raise DuplicateEmailError(canonical) from exc
                row = cur.fetchone()
            conn.commit()
        return self._map_record(row) if row else None

    def update_password_hash(self, account_id: str, password_hash: str) -> Account | None:
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    UPDATE accounts
                    SET password_hash = %s, updated_at = %s
                    WHERE account_id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (password_hash, datetime.now(timezone.utc), account_id),
                )
                row = cur.fetchone()
            conn.commit()
        return self._map_record(row) if row else None

    def _fetch_one(self, where_sql: str, value: str) -> Account | None:
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM accounts WHERE {where_sql}", (value,))
                row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            email=row[1],
            display_name=row[2],
            password_hash=row[3],
            created_at=row[4],
            updated_at=row[5],
        )
