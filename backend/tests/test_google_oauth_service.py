"""
NoteKeep Backend — Google OAuth Service Tests
===============================================

What:  Tests for the authorization-code client.
How:   httpx.MockTransport plays Google's token and userinfo endpoints; no
       network. Retry waits are zero in the test settings (conftest.py).

What we test:
    ✅ Consent URL carries client id, callback, scopes and a verifiable state
    ✅ Unconfigured client raises ExternalIdentityError
    ✅ Forged, foreign and expired states are refused
    ✅ Happy path returns an ExternalProfile
    ✅ 5xx is retried, 4xx is not, exhaustion becomes ExternalIdentityError
    ✅ Unverified or incomplete profiles are refused
"""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.exceptions import ExternalIdentityError
from app.services.google_oauth_service import GoogleOAuthService

USERINFO = {
    "sub": "109876543210",
    "email": "Alice@Example.com",
    "email_verified": True,
    "name": "Alice Example",
}


def make_service(handler=None, **overrides) -> GoogleOAuthService:
    options = {
        "client_id": "client-id.apps.googleusercontent.com",
        "client_secret": "client-secret",
        "callback_url": "http://test/api/auth/google/callback",
        "state_secret": "state-secret-0123456789abcdef0123456789",
        "transport": httpx.MockTransport(handler) if handler else None,
    }
    options.update(overrides)
    return GoogleOAuthService(**options)


class FakeGoogle:
    """Records calls and answers token/userinfo requests from scripted responses."""

    def __init__(self, token_responses=None, userinfo_responses=None):
        self.token_responses = list(token_responses or [httpx.Response(200, json={"access_token": "at-1"})])
        self.userinfo_responses = list(userinfo_responses or [httpx.Response(200, json=USERINFO)])
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if request.url.host == "oauth2.googleapis.com":
            return self.token_responses.pop(0) if len(self.token_responses) > 1 else self.token_responses[0]
        if request.url.host == "openidconnect.googleapis.com":
            return self.userinfo_responses.pop(0) if len(self.userinfo_responses) > 1 else self.userinfo_responses[0]
        return httpx.Response(404)

    def count(self, host: str) -> int:
        return sum(1 for r in self.calls if r.url.host == host)


class TestAuthorizationUrl:
    """Tests for the consent-screen redirect."""

    def test_url_parameters(self):
        service = make_service()
        url = urlparse(service.authorization_url())
        query = parse_qs(url.query)

        assert f"{url.scheme}://{url.netloc}{url.path}" == GoogleOAuthService.AUTHORIZE_URL
        assert query["client_id"] == ["client-id.apps.googleusercontent.com"]
        assert query["redirect_uri"] == ["http://test/api/auth/google/callback"]
        assert query["response_type"] == ["code"]
        assert query["scope"] == ["openid email profile"]
        service.verify_state(query["state"][0])

    def test_unconfigured(self):
        service = make_service(client_id="", client_secret="")
        assert service.configured is False
        with pytest.raises(ExternalIdentityError):
            service.authorization_url()


class TestStateVerification:
    """Tests for issue_state / verify_state."""

    def test_missing_state(self):
        with pytest.raises(ExternalIdentityError):
            make_service().verify_state(None)

    def test_state_from_other_secret(self):
        other = make_service(state_secret="some-other-secret-0123456789abcdef01234")
        with pytest.raises(ExternalIdentityError):
            make_service().verify_state(other.issue_state())

    def test_expired_state(self):
        service = make_service()
        stale = service.issue_state(now=datetime.now(timezone.utc) - timedelta(minutes=11))
        with pytest.raises(ExternalIdentityError):
            service.verify_state(stale)


class TestFetchProfile:
    """Tests for the callback exchange."""

    @pytest.mark.asyncio
    async def test_happy_path(self):
        google = FakeGoogle()
        service = make_service(google)

        profile = await service.fetch_profile("auth-code", service.issue_state())

        assert profile.id == "109876543210"
        assert profile.email == "Alice@Example.com"
        assert profile.name == "Alice Example"

        token_request = next(r for r in google.calls if r.url.host == "oauth2.googleapis.com")
        form = parse_qs(token_request.content.decode())
        assert form["code"] == ["auth-code"]
        assert form["grant_type"] == ["authorization_code"]
        userinfo_request = next(r for r in google.calls if r.url.host == "openidconnect.googleapis.com")
        assert userinfo_request.headers["Authorization"] == "Bearer at-1"

    @pytest.mark.asyncio
    async def test_bad_state_never_calls_google(self):
        google = FakeGoogle()
        with pytest.raises(ExternalIdentityError):
            await make_service(google).fetch_profile("auth-code", "forged")
        assert google.calls == []

    @pytest.mark.asyncio
    async def test_missing_code(self):
        service = make_service(FakeGoogle())
        with pytest.raises(ExternalIdentityError):
            await service.fetch_profile(None, service.issue_state())

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self):
        google = FakeGoogle(token_responses=[
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json={"access_token": "at-1"}),
        ])
        service = make_service(google)

        profile = await service.fetch_profile("auth-code", service.issue_state())

        assert profile.id == "109876543210"
        assert google.count("oauth2.googleapis.com") == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        google = FakeGoogle(token_responses=[httpx.Response(500)])
        service = make_service(google)

        with pytest.raises(ExternalIdentityError):
            await service.fetch_profile("auth-code", service.issue_state())
        assert google.count("oauth2.googleapis.com") == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        google = FakeGoogle(token_responses=[httpx.Response(400, json={"error": "invalid_grant"})])
        service = make_service(google)

        with pytest.raises(ExternalIdentityError):
            await service.fetch_profile("used-code", service.issue_state())
        assert google.count("oauth2.googleapis.com") == 1
        assert google.count("openidconnect.googleapis.com") == 0

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if request.url.host == "oauth2.googleapis.com" and len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            if request.url.host == "oauth2.googleapis.com":
                return httpx.Response(200, json={"access_token": "at-1"})
            return httpx.Response(200, json=USERINFO)

        service = make_service(handler)
        profile = await service.fetch_profile("auth-code", service.issue_state())
        assert profile.email == "Alice@Example.com"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_token_response_without_access_token(self):
        service = make_service(FakeGoogle(token_responses=[httpx.Response(200, json={})]))
        with pytest.raises(ExternalIdentityError):
            await service.fetch_profile("auth-code", service.issue_state())

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        service = make_service(FakeGoogle(token_responses=[httpx.Response(200, text="<html>")]))
        with pytest.raises(ExternalIdentityError):
            await service.fetch_profile("auth-code", service.issue_state())

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "userinfo",
        [
            {**USERINFO, "email_verified": False},
            {k: v for k, v in USERINFO.items() if k != "email"},
            {k: v for k, v in USERINFO.items() if k != "sub"},
        ],
    )
    async def test_unusable_profile(self, userinfo):
        service = make_service(FakeGoogle(userinfo_responses=[httpx.Response(200, json=userinfo)]))
        with pytest.raises(ExternalIdentityError):
            await service.fetch_profile("auth-code", service.issue_state())
