"""
NoteKeep Backend — Authentication Route Handlers
==================================================

What:  Registration, password login, Google sign-in redirects, and the
       endpoints that describe the signed-in user.
How:   Thin handlers: parse the body, call IdentityService / GoogleOAuthService,
       issue a session token with CredentialService, wrap the result in the
       response envelope.
Who:   Called by the frontend login/register pages and the Google redirect.

Google sign-in:
    GET /api/auth/google           → 307 to Google's consent screen
    GET /api/auth/google/callback  → 307 to {FRONTEND_URL}/auth/callback?token=...
                                     or to /api/auth/google/failure
    GET /api/auth/google/failure   → 307 to {FRONTEND_URL}/login?error=oauth_failed
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse

from app.config import settings
from app.dependencies import (
    get_current_user,
    get_google_oauth_service,
    get_note_repository,
    get_user_repository,
)
from app.exceptions import ConflictError, ExternalIdentityError, ValidationError
from app.repositories import NoteRepository, UserRepository
from app.schemas.auth import (
    AuthData,
    LoginRequest,
    ProfileData,
    RegisterRequest,
    UserData,
    UserResponse,
)
from app.schemas.common import ApiResponse, ErrorResponse, MessageResponse
from app.services.credential_service import credential_service
from app.services.google_oauth_service import GoogleOAuthService
from app.services.identity_service import identity_service
from app.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

UNAUTHORIZED = {401: {"description": "Missing, expired or invalid token", "model": ErrorResponse}}


def _auth_data(user) -> AuthData:
    return AuthData(
        user=UserResponse.model_validate(user),
        token=credential_service.issue_token(user),
    )


# ── Password Accounts ─────────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing field, bad email or short password", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Register with email and password",
)
async def register(
    body: RegisterRequest,
    users: UserRepository = Depends(get_user_repository),
) -> ApiResponse[AuthData]:
    user = await identity_service.register_with_password(
        users, name=body.name, email=body.email, password=body.password
    )
    return ApiResponse(data=_auth_data(user), message="User registered successfully")


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    responses={
        400: {"description": "Missing email or password", "model": ErrorResponse},
        401: {"description": "Invalid email or password", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    users: UserRepository = Depends(get_user_repository),
) -> ApiResponse[AuthData]:
    """
    Exchange email and password for a session token.

    The 401 message does not say whether the email exists.
    """
    user = await identity_service.login_with_password(
        users, email=body.email, password=body.password
    )
    return ApiResponse(data=_auth_data(user), message="Login successful")


# ── Google Sign-In ────────────────────────────────────────────────────────

@router.get(
    "/google",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    responses={503: {"description": "Google sign-in not configured", "model": ErrorResponse}},
    summary="Start Google sign-in",
)
async def google_login(
    oauth: GoogleOAuthService = Depends(get_google_oauth_service),
) -> RedirectResponse:
    return RedirectResponse(oauth.authorization_url())


@router.get(
    "/google/callback",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Google sign-in callback",
)
async def google_callback(
    request: Request,
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    users: UserRepository = Depends(get_user_repository),
    oauth: GoogleOAuthService = Depends(get_google_oauth_service),
) -> RedirectResponse:
    """
    Finish Google sign-in and hand the token to the frontend.

    Every failure (user pressed cancel, bad state, Google unavailable,
    incomplete profile, account collision) ends on the failure redirect
    rather than a JSON error, since the browser is mid-navigation here.
    """
    failure = RedirectResponse(str(request.url_for("google_failure")))
    if error:
        logger.warning("Google sign-in cancelled or refused: %s", error)
        return failure

    try:
        profile = await oauth.fetch_profile(code, state)
        user = await identity_service.resolve_external_identity(users, profile)
    except (ExternalIdentityError, ValidationError, ConflictError) as e:
        logger.warning("Google sign-in failed: %s | Context: %s", e.message, e.context)
        return failure

    token = credential_service.issue_token(user)
    query = urlencode({"token": token})
    return RedirectResponse(f"{settings.frontend_url}/auth/callback?{query}")


@router.get(
    "/google/failure",
    name="google_failure",
    response_class=RedirectResponse,
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Google sign-in failure redirect",
)
async def google_failure() -> RedirectResponse:
    return RedirectResponse(f"{settings.frontend_url}/login?error=oauth_failed")


# ── Signed-In User ────────────────────────────────────────────────────────

@router.get(
    "/me",
    response_model=ApiResponse[UserData],
    responses=UNAUTHORIZED,
    summary="Current user",
)
async def me(user: UserResponse = Depends(get_current_user)) -> ApiResponse[UserData]:
    return ApiResponse(data=UserData(user=user))


@router.get(
    "/profile",
    response_model=ApiResponse[ProfileData],
    responses=UNAUTHORIZED,
    summary="Current user with note statistics",
)
async def profile(
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[ProfileData]:
    stats = await note_service.stats(notes, user.id)
    return ApiResponse(
        data=ProfileData(user=user, stats=stats, active_notes_count=stats.active)
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses=UNAUTHORIZED,
    summary="Log out",
)
async def logout(user: UserResponse = Depends(get_current_user)) -> MessageResponse:
    """
    Acknowledge a logout.

    Tokens are stateless, so there is nothing to revoke server-side; the
    client discards its copy.
    """
    logger.info("User %s logged out", user.id)
    return MessageResponse(message="Logout successful")
