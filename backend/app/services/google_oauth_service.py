"""
NoteKeep Backend — Google OAuth Service
=========================================

What:  The server side of "Sign in with Google" (authorization code flow).
How:   Builds the consent-screen URL, signs a short-lived `state` value,
       exchanges the returned code for tokens and reads the userinfo endpoint.
Who:   Called by GET /api/auth/google and GET /api/auth/google/callback.

Flow:
    ┌──────────┐  302   ┌──────────────┐  code+state  ┌─────────────────────┐
    │ /google  │───────▶│ Google       │─────────────▶│ /google/callback    │
    └──────────┘        │ consent page │              │ verify state        │
                        └──────────────┘              │ POST token endpoint │
                                                      │ GET userinfo        │
                                                      └─────────────────────┘

State:
    A JWT signed with the application secret, carrying a random nonce and a
    10 minute expiry. The callback refuses any state it did not sign, so no
    server-side session store is needed.

Resilience:
    Token and userinfo calls retry with tenacity (exponential backoff with
    jitter) on transport errors and 5xx responses. 4xx responses are final.
    Every failure leaving this module is an ExternalIdentityError.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
import jwt
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import settings
from app.exceptions import ExternalIdentityError
from app.schemas.auth import ExternalProfile

logger = logging.getLogger(__name__)

STATE_AUDIENCE = "notekeep:google-oauth-state"


def _is_transient(exc: BaseException) -> bool:
    """Retry network failures and Google-side 5xx, nothing else."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


_google_retry = retry(
    retry=retry_if_exception(_is_transient),
    stop=stop_after_attempt(settings.retry_max_attempts),
    wait=wait_exponential_jitter(
        initial=settings.retry_min_wait,
        max=settings.retry_max_wait,
        jitter=settings.retry_jitter,
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class GoogleOAuthService:
    """
    Google authorization-code client.

    Args:
        client_id / client_secret / callback_url: default to settings.
        state_secret: key for signing `state`; defaults to the JWT secret.
        transport: optional httpx transport (tests pass httpx.MockTransport).
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
    SCOPES = "openid email profile"
    STATE_LIFETIME = timedelta(minutes=10)

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        callback_url: Optional[str] = None,
        state_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.google_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.google_client_secret
        )
        self.callback_url = callback_url or settings.google_callback_url
        self.state_secret = state_secret or settings.jwt_secret
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _require_configured(self) -> None:
        if not self.configured:
            raise ExternalIdentityError(
                message="Google sign-in is not configured on this server",
                context={"reason": "missing_client_credentials"},
            )

    # ── State ─────────────────────────────────────────────────────────────

    def issue_state(self, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        return jwt.encode(
            {
                "nonce": secrets.token_urlsafe(16),
                "aud": STATE_AUDIENCE,
                "iat": issued_at,
                "exp": issued_at + self.STATE_LIFETIME,
            },
            self.state_secret,
            algorithm="HS256",
        )

    def verify_state(self, state: Optional[str]) -> None:
        if not state:
            raise ExternalIdentityError(
                message="Google sign-in state is missing",
                context={"reason": "missing_state"},
            )
        try:
            jwt.decode(
                state,
                self.state_secret,
                algorithms=["HS256"],
                audience=STATE_AUDIENCE,
            )
        except jwt.PyJWTError as e:
            raise ExternalIdentityError(
                message="Google sign-in state is invalid or expired",
                context={"reason": "bad_state", "error_type": type(e).__name__},
            ) from e

    # ── Consent Screen ────────────────────────────────────────────────────

    def authorization_url(self) -> str:
        """URL of Google's consent screen for this application."""
        self._require_configured()
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": self.SCOPES,
            "state": self.issue_state(),
            "access_type": "online",
            "prompt": "select_account",
        })
        return f"{self.AUTHORIZE_URL}?{query}"

    # ── Callback ──────────────────────────────────────────────────────────

    async def fetch_profile(self, code: Optional[str], state: Optional[str]) -> ExternalProfile:
        """
        Complete the callback: verify state, exchange code, read the profile.

        Raises:
            ExternalIdentityError: any failure, including after retries.
        """
        self._require_configured()
        self.verify_state(state)
        if not code:
            raise ExternalIdentityError(
                message="Google did not return an authorization code",
                context={"reason": "missing_code"},
            )

        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=settings.oauth_http_timeout,
            ) as client:
                tokens = await self._exchange_code(client, code)
                access_token = tokens.get("access_token")
                if not access_token:
                    raise ExternalIdentityError(
                        message="Google token response did not include an access token",
                        context={"reason": "no_access_token"},
                    )
                userinfo = await self._fetch_userinfo(client, access_token)
        except (httpx.HTTPError, ValueError) as e:
            # ValueError: a response body that is not JSON
            logger.error("Google OAuth request failed: %s", str(e))
            raise ExternalIdentityError(
                message="Could not complete Google sign-in. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        email = userinfo.get("email")
        subject = userinfo.get("sub")
        if not email or not subject:
            raise ExternalIdentityError(
                message="Google profile is missing an email address",
                context={"reason": "incomplete_profile"},
            )
        if userinfo.get("email_verified") is False:
            raise ExternalIdentityError(
                message="Google account email is not verified",
                context={"reason": "unverified_email"},
            )

        return ExternalProfile(id=str(subject), email=email, name=userinfo.get("name"))

    @_google_retry
    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> Dict[str, Any]:
        response = await client.post(
            self.TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.callback_url,
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json()

    @_google_retry
    async def _fetch_userinfo(self, client: httpx.AsyncClient, access_token: str) -> Dict[str, Any]:
        response = await client.get(
            self.USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        response.raise_for_status()
        return response.json()


# ── Singleton Instance ────────────────────────────────────────────────────
google_oauth_service = GoogleOAuthService()
