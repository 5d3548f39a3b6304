"""
Authentication router for the Project Tracker API.

Mounts under ``/api/auth`` (prefix set in ``main.py``).

Endpoints:
    POST /login — Authenticate with username + password, receive JWT.
    GET  /me    — Return the currently authenticated user's profile.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.models.user import User
from tracker.schemas.auth import TokenResponse, UserResponse
from tracker.services.auth_service import authenticate_user, get_current_user
from tracker.utils.security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in",
    description=(
        "Authenticates the user and returns a JWT access token valid for "
        "``JWT_EXPIRATION_MINUTES`` (default 8 h)."
    ),
    responses={
        200: {"description": "Authenticated; the JWT is included."},
        401: {"description": "Wrong credentials or inactive account."},
    },
)
def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[Session, Depends(get_db)],
) -> TokenResponse:
    """Authenticate a user and issue a JWT access token.

    Raises:
        HTTPException 401: If credentials are invalid or the account is inactive.
    """
    user = authenticate_user(db, form_data.username, form_data.password)

    if user is None:
        logger.warning("Failed login attempt for username='%s'", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect credentials or inactive account",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role}
    )

    logger.info("Successful login for username='%s' role='%s'", user.username, user.role)
    return TokenResponse(access_token=token)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user profile",
    responses={
        200: {"description": "Profile of the authenticated user."},
        401: {"description": "Missing, invalid or expired token."},
    },
)
def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    return UserResponse.model_validate(current_user)
