"""Password hashing helpers (argon2id via argon2-cffi)."""

from __future__ import annotations

import logging

from argon2 import PasswordHasher as Argon2Hasher, Type
from argon2.exceptions import InvalidHash, VerificationError

logger = logging.getLogger(__name__)

# Fixed work factor; every account pays the same verification cost.
TIME_COST = 3
MEMORY_COST_KIB = 64 * 1024
PARALLELISM = 4


class PasswordHasher:
    """Salted, deliberately slow one-way hashing for account passwords."""

    def __init__(self) -> None:
        self._hasher = Argon2Hasher(
            time_cost=TIME_COST,
            memory_cost=MEMORY_COST_KIB,
            parallelism=PARALLELISM,
            type=Type.ID,
        )

    def hash(self, plaintext: str) -> str:
        """Return an encoded digest embedding its own random salt and parameters."""
        if not plaintext:
            raise ValueError("password must not be empty")
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return ``True`` if ``plaintext`` matches ``digest``; never raises."""
        if not plaintext or not digest:
            return False
        try:
            return self._hasher.verify(digest, plaintext)
        except VerificationError:
            return False
        except InvalidHash:
            logger.warning("stored password digest could not be parsed")
            return False
