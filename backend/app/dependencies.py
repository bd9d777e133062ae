"""
NoteKeep Backend — Request Dependencies & Authorization Guard
===============================================================

What:  FastAPI dependencies shared by the routers: repositories bound to the
       request's session, the Google OAuth client and the bearer-token guard.
Who:   Declared with Depends() on route handlers.

Authorization guard (get_current_user):
    1. Read "Authorization: Bearer <token>"      → missing: 401
    2. Verify signature and expiry               → expired / invalid: 401
    3. Load the user (no credential columns)     → gone: 401
    4. Bind the user to request.state.user and current_user_var
    The guard only reads; it never writes to the database.
"""

import logging
from contextvars import ContextVar
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import TokenExpiredError, TokenMalformedError, UnauthenticatedError
from app.middleware.request_id import request_id_var
from app.repositories import (
    NoteRepository,
    SQLAlchemyNoteRepository,
    SQLAlchemyUserRepository,
    UserRepository,
)
from app.schemas.auth import UserResponse
from app.services.credential_service import credential_service
from app.services.google_oauth_service import GoogleOAuthService, google_oauth_service

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must produce our 401 envelope, not
# Starlette's default 403
bearer_scheme = HTTPBearer(auto_error=False)

# Coroutine-local identity of the caller, alongside request_id_var
current_user_var: ContextVar[Optional[UserResponse]] = ContextVar("current_user", default=None)


# ── Repositories ──────────────────────────────────────────────────────────

def get_user_repository(db: AsyncSession = Depends(get_db_session)) -> UserRepository:
    return SQLAlchemyUserRepository(db)


def get_note_repository(db: AsyncSession = Depends(get_db_session)) -> NoteRepository:
    return SQLAlchemyNoteRepository(db)


def get_google_oauth_service() -> GoogleOAuthService:
    return google_oauth_service


# ── Authorization Guard ───────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    users: UserRepository = Depends(get_user_repository),
) -> UserResponse:
    """
    Resolve the bearer token on the request to a user.

    Raises:
        UnauthenticatedError: reason "missing", "expired", "invalid" or
        "user not found".
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError(
            message="Access denied. No token provided.",
            reason="missing",
        )

    try:
        payload = credential_service.verify_token(credentials.credentials)
    except TokenExpiredError:
        raise UnauthenticatedError(
            message="Token expired. Please login again.",
            reason="expired",
        )
    except TokenMalformedError as e:
        logger.warning("[%s] Rejected malformed token: %s", request_id_var.get(""), str(e))
        raise UnauthenticatedError(
            message="Invalid token.",
            reason="invalid",
        )

    user = await users.get_by_id(payload.id)
    if user is None:
        raise UnauthenticatedError(
            message="Invalid token. User not found.",
            reason="user not found",
        )

    request.state.user = user
    current_user_var.set(user)
    return user
