"""Utilities for issuing and validating session JWTs."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import jwt

ALGORITHM = "HS256"
SESSION_TTL_SECONDS = 24 * 60 * 60
_REQUIRED_CLAIMS = ["iss", "sub", "email", "iat", "exp"]


class TokenError(Exception):
    """Base class for session token verification failures."""


class TokenSignatureError(TokenError):
    """The token was not signed with this process's secret."""


class TokenExpiredError(TokenError):
    """The token's ``exp`` is at or before the current time."""


class TokenMalformedError(TokenError):
    """The token cannot be parsed or lacks the canonical claim set."""


@dataclass(slots=True, frozen=True)
class IssuedToken:
    token: str
    issued_at: int
    expires_at: int


@dataclass(slots=True, frozen=True)
class SessionClaims:
    """Identity asserted by a verified session token."""

    account_id: str
    email: str
    issued_at: int
    expires_at: int


class TokenService:
    """Signs and verifies compact bearer tokens with a process-wide secret."""

    def __init__(
        self,
        secret: str,
        *,
        issuer: str = "account-service",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self._issuer = issuer
        self._clock = clock

    def issue(self, account_id: str, email: str) -> IssuedToken:
        """Create a signed JWT asserting ``account_id`` and ``email`` for 24 hours.

        Parameters
        ----------
        account_id:
            Account identifier embedded in the ``sub`` claim.
        email:
            Canonical email of the account at issuance time.

        Returns
        -------
        IssuedToken
            The encoded token together with its ``iat`` and ``exp`` timestamps.
        """
        now = int(self._clock())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": account_id,
            "email": email,
            "iat": now,
            "exp": now + SESSION_TTL_SECONDS,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return IssuedToken(token=token, issued_at=now, expires_at=now + SESSION_TTL_SECONDS)

    def verify(self, token: str) -> SessionClaims:
        """Decode and verify a token, returning the identity it asserts.

        Expiry is evaluated against the injected clock rather than PyJWT's own so
        that ``exp <= now`` is rejected exactly.

        Raises
        ------
        TokenSignatureError
            The signature does not match the configured secret, including HMAC
            tokens signed under a digest other than HS256.
        TokenMalformedError
            The token is unparseable, foreign, or missing canonical claims.
        TokenExpiredError
            The token's validity window has closed.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidSignatureError as exc:
            raise TokenSignatureError("token signature mismatch") from exc
        except jwt.InvalidAlgorithmError as exc:
            if _header_algorithm(token).startswith("HS"):
                raise TokenSignatureError("token signed with a different HMAC key or digest") from exc
            raise TokenMalformedError(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise TokenMalformedError(str(exc)) from exc

        account_id = claims.get("sub")
        email = claims.get("email")
        issued_at = claims.get("iat")
        expires_at = claims.get("exp")
        if not isinstance(account_id, str) or not account_id:
            raise TokenMalformedError("token subject is not an account id")
        if not isinstance(email, str):
            raise TokenMalformedError("token email claim is invalid")
        if not _is_timestamp(issued_at) or not _is_timestamp(expires_at):
            raise TokenMalformedError("token timestamps are invalid")

        if expires_at <= self._clock():
            raise TokenExpiredError("token expired")

        return SessionClaims(
            account_id=account_id,
            email=email,
            issued_at=issued_at,
            expires_at=expires_at,
        )


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _header_algorithm(token: str) -> str:
    try:
        algorithm = jwt.get_unverified_header(token).get("alg")
    except jwt.InvalidTokenError:
        return ""
    return algorithm if isinstance(algorithm, str) else ""
