"""Session authentication via a signed cookie.

Provides:
- verify_session_token(): validates an HS256 JWT and returns the session user
- get_optional_user(): FastAPI dependency, None for guests
- get_current_user(): FastAPI dependency, 401 without a valid session
- issue_session_token(): signs a token (tests and tooling; login is elsewhere)
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Request

from tripdesk.errors import AuthenticationError
from tripdesk.observability.logging import get_logger

SESSION_COOKIE = "auth_token"
_ALGORITHM = "HS256"
_DEFAULT_TTL = 3600

logger = get_logger(__name__)


@dataclass
class SessionUser:
    """Authenticated user context."""

    id: int
    email: str | None
    role_id: int | None = None


def _get_jwt_secret() -> str | None:
    """Load the session signing secret from JWT_SECRET."""
    return os.environ.get("JWT_SECRET") or None


def verify_session_token(token: str) -> SessionUser:
    """Verify a session JWT and return its user.

    Args:
        token: JWT string from the session cookie.

    Returns:
        SessionUser built from the sub, email and role_id claims.

    Raises:
        AuthenticationError: Secret not configured, or token invalid/expired.
    """
    secret = _get_jwt_secret()
    if not secret:
        raise AuthenticationError("Session auth not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid session")

    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid session")

    role_id = payload.get("role_id")
    return SessionUser(
        id=user_id,
        email=payload.get("email"),
        role_id=role_id if isinstance(role_id, int) else None,
    )


def issue_session_token(
    user_id: int,
    *,
    email: str | None = None,
    role_id: int | None = None,
    ttl_seconds: int = _DEFAULT_TTL,
    secret: str | None = None,
) -> str:
    """Sign a session token for *user_id*.

    Raises:
        RuntimeError: If no secret is passed and JWT_SECRET is not set.
    """
    key = secret or _get_jwt_secret()
    if not key:
        raise RuntimeError("JWT_SECRET not configured")

    now = int(time.time())
    payload: dict[str, Any] = {"sub": str(user_id), "iat": now, "exp": now + ttl_seconds}
    if email:
        payload["email"] = email
    if role_id is not None:
        payload["role_id"] = role_id
    return jwt.encode(payload, key, algorithm=_ALGORITHM)


def get_optional_user(request: Request) -> SessionUser | None:
    """FastAPI dependency: the session user, or None for a guest.

    A missing, invalid or expired cookie is treated as "no session".
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    try:
        return verify_session_token(token)
    except AuthenticationError as exc:
        logger.info(
            "session cookie rejected, continuing as guest",
            extra={"extra_fields": {"reason": exc.message}},
        )
        return None


def get_current_user(request: Request) -> SessionUser:
    """FastAPI dependency: the session user.

    Raises:
        AuthenticationError: 401 if no valid session cookie is present.
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise AuthenticationError("Authentication required")
    return verify_session_token(token)
