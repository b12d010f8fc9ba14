"""Resolve an inbound ``Authorization`` header to a verified session."""

from __future__ import annotations

import logging

from ..domain.errors import UnauthorizedError
from .tokens import SessionClaims, TokenError, TokenService

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


def resolve_session(authorization: str | None, tokens: TokenService) -> SessionClaims:
    """Extract the bearer token from ``authorization`` and verify it.

    Every failure surfaces as :class:`UnauthorizedError` with the same message;
    only the log records which check failed.
    """
    if not authorization or not authorization.strip():
        logger.info("session rejected: missing authorization header")
        raise UnauthorizedError("Missing Authorization header.")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != BEARER_SCHEME or not token or any(ch.isspace() for ch in token):
        logger.info("session rejected: malformed authorization header")
        raise UnauthorizedError("Invalid Authorization format.")

    try:
        return tokens.verify(token)
    except TokenError as exc:
        logger.info("session rejected: %s (%s)", type(exc).__name__, exc)
        raise UnauthorizedError() from exc
