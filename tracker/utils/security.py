"""
Token and password helpers backing the identity adapter.

The tracker does not own authentication; it only needs to turn a bearer
token into a user id and role for audit attribution and the admin gate on
milestone versions. JWTs are handled with python-jose and password hashes
with bcrypt, configured from the settings singleton.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from tracker.config import get_settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Password helpers (bcrypt directly; passlib lags behind bcrypt 4.x)
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ---------------------------------------------------------------------------
# JWT helpers
# ---------------------------------------------------------------------------


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token.

    The payload is a copy of *data* plus ``exp`` and ``iat`` claims. Callers
    set ``sub`` to ``str(user.id)``.

    Example::

        token = create_access_token({"sub": str(user.id), "role": user.role})
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = data.copy()
    payload["exp"] = now + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    payload["iat"] = now

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT access token.

    Raises:
        ValueError: If the token is invalid, expired, or cannot be decoded.
                    ``get_current_user`` maps this to HTTP 401.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as exc:
        logger.debug("JWT verification failed: %s", exc)
        raise ValueError("Invalid or expired token") from exc
    return payload
