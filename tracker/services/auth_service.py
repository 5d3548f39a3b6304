"""
Identity adapter for the Project Tracker API.

Authentication proper is owned upstream; this module only resolves the
caller so the core can attribute audit entries and gate template-version
management on role.

Provides:
- ``authenticate_user`` — credential verification backing ``/auth/login``.
- ``get_current_user`` — FastAPI dependency resolving the Bearer JWT.
- ``require_role`` — dependency factory enforcing role membership.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.models.user import User
from tracker.utils.security import verify_password, verify_token

logger = logging.getLogger(__name__)

# ``tokenUrl`` must match the login endpoint path (relative to root).
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    """Verify username/password credentials against the database.

    Returns ``None`` (instead of raising) for unknown users, disabled
    accounts and wrong passwords alike, so callers control the HTTP error.
    """
    user: User | None = (
        db.query(User)
        .filter(User.username == username, User.is_active.is_(True))
        .first()
    )

    if user is None:
        logger.debug("authenticate_user: unknown or inactive user '%s'", username)
        return None

    if not verify_password(password, user.password_hash):
        logger.debug("authenticate_user: wrong password for user '%s'", username)
        return None

    # Last-login stamp is best-effort
    try:
        user.last_login_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError:  # pragma: no cover
        db.rollback()
        logger.warning("Could not update last_login_at for user '%s'", username)

    return user


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """FastAPI dependency that resolves the caller's identity from a JWT.

    Raises:
        HTTPException 401: If the token is missing, invalid, or expired, or
                           the referenced user no longer exists or is disabled.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = verify_token(token)
    except ValueError:
        raise credentials_exception

    # ``sub`` stores the user's primary key as a string.
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise credentials_exception

    user: User | None = (
        db.query(User)
        .filter(User.id == user_id, User.is_active.is_(True))
        .first()
    )
    if user is None:
        raise credentials_exception

    return user


def require_role(*roles: str):
    """Return a FastAPI dependency that restricts access to the given roles.

    .. code-block:: python

        @router.get("/admin-only")
        def admin_endpoint(
            current_user: User = Depends(require_role("SUPER_ADMIN")),
        ):
            ...

    Raises:
        HTTPException 403: If the caller's role is not in *roles*.
    """
    allowed = frozenset(roles)

    def _check_role(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in allowed:
            logger.info(
                "require_role: user '%s' (role=%s) denied, needs one of %s",
                current_user.username, current_user.role, sorted(allowed),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied. Requires one of the roles: {sorted(allowed)}",
            )
        return current_user

    return _check_role
