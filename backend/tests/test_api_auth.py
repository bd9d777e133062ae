"""
NoteKeep Backend — Auth API Tests
===================================

What:  End-to-end tests for /api/auth/* and the bearer-token guard.
How:   HTTPX AsyncClient over ASGITransport, in-memory SQLite, Google
       replaced by a GoogleOAuthService on an httpx.MockTransport.

What we test:
    ✅ Register / login envelopes, status codes and error codes
    ✅ The password hash never appears in a response
    ✅ Guard: missing, malformed, expired and orphaned tokens → 401
    ✅ /me, /profile (with stats) and /logout
    ✅ Google redirects: consent URL, success, cancel and failure paths
    ✅ Returning Google users are matched by Google id, not by email
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse
from uuid import UUID, uuid4

import httpx
import pytest

from app.dependencies import get_google_oauth_service
from app.exceptions import ConflictError
from app.services.credential_service import credential_service
from app.services.google_oauth_service import GoogleOAuthService
from app.services.identity_service import identity_service

GOOGLE_USER = {
    "sub": "google-sub-1",
    "email": "Gina@Example.com",
    "email_verified": True,
    "name": "Gina",
}


def google_service(userinfo: dict) -> GoogleOAuthService:
    """OAuth client whose Google endpoints answer with `userinfo`."""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"access_token": "at"})
        return httpx.Response(200, json=userinfo)

    return GoogleOAuthService(
        client_id="cid",
        client_secret="csecret",
        callback_url="http://test/api/auth/google/callback",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def google(app):
    service = google_service(GOOGLE_USER)
    app.dependency_overrides[get_google_oauth_service] = lambda: service
    return service


@pytest.fixture
def google_sign_in(app, test_client):
    """Run the callback as the Google account described by `userinfo`."""
    async def _sign_in(userinfo: dict) -> httpx.Response:
        service = google_service(userinfo)
        app.dependency_overrides[get_google_oauth_service] = lambda: service
        return await test_client.get(
            "/api/auth/google/callback",
            params={"code": "auth-code", "state": service.issue_state()},
        )
    return _sign_in


def token_user_id(response: httpx.Response) -> UUID:
    assert response.status_code == 307
    location = response.headers["location"]
    assert location.startswith("http://frontend.test/auth/callback?token=")
    token = parse_qs(urlparse(location).query)["token"][0]
    return credential_service.verify_token(token).id


class TestRegister:
    """POST /api/auth/register"""

    @pytest.mark.asyncio
    async def test_register_returns_user_and_token(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"name": "Alice", "email": "Alice@Example.com", "password": "s3cret!"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        user = body["data"]["user"]
        assert user["email"] == "alice@example.com"
        assert user["name"] == "Alice"
        assert "password_hash" not in user
        assert "password" not in response.text
        assert credential_service.verify_token(body["data"]["token"]).id == UUID(user["id"])

    @pytest.mark.asyncio
    async def test_duplicate_email_any_case(self, test_client, register_user):
        await register_user("alice@example.com")
        response = await test_client.post(
            "/api/auth/register",
            json={"name": "Again", "email": "ALICE@example.com", "password": "s3cret!"},
        )
        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "conflict"
        assert body["message"] == "User already exists with this email"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"email": "a@b.co", "password": "s3cret!"}, "Name, email, and password are required"),
            ({"name": "A", "email": "nope", "password": "s3cret!"}, "Please provide a valid email address"),
            ({"name": "A", "email": "a@b.co", "password": "123"}, "Password must be at least 6 characters long"),
        ],
    )
    async def test_invalid_input(self, test_client, payload, message):
        response = await test_client.post("/api/auth/register", json=payload)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == message

    @pytest.mark.asyncio
    async def test_body_that_is_not_json(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            content=b"name=alice",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestLogin:
    """POST /api/auth/login"""

    @pytest.mark.asyncio
    async def test_login_success(self, test_client, register_user, test_password):
        user, _ = await register_user("alice@example.com")
        response = await test_client.post(
            "/api/auth/login",
            json={"email": "Alice@example.com", "password": test_password},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["user"]["id"] == user["id"]
        assert body["data"]["token"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password",
        [("alice@example.com", "wrong-password"), ("nobody@example.com", "correct-horse")],
    )
    async def test_bad_credentials_are_indistinguishable(self, test_client, register_user, email, password):
        await register_user("alice@example.com")
        response = await test_client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["error"] == "unauthenticated"
        assert body["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_missing_password(self, test_client):
        response = await test_client.post("/api/auth/login", json={"email": "a@b.co"})
        assert response.status_code == 400
        assert response.json()["message"] == "Email and password are required"


class TestAuthGuard:
    """The bearer-token guard, exercised through GET /api/auth/me."""

    @pytest.mark.asyncio
    async def test_me_with_valid_token(self, test_client, register_user):
        user, headers = await register_user("alice@example.com")
        response = await test_client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        me = response.json()["data"]["user"]
        assert (me["id"], me["email"], me["name"]) == (user["id"], user["email"], user["name"])
        assert "password_hash" not in me

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Basic YWxhZGRpbjpvcGVu"}])
    async def test_missing_token(self, test_client, headers):
        response = await test_client.get("/api/auth/me", headers=headers)
        assert response.status_code == 401
        body = response.json()
        assert body["message"] == "Access denied. No token provided."
        assert body["details"]["reason"] == "missing"

    @pytest.mark.asyncio
    async def test_malformed_token(self, test_client):
        response = await test_client.get("/api/auth/me", headers={"Authorization": "Bearer abc.def.ghi"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token."

    @pytest.mark.asyncio
    async def test_expired_token(self, test_client, register_user):
        user, _ = await register_user("alice@example.com")
        token = credential_service.issue_token(
            SimpleNamespace(id=user["id"], email=user["email"]),
            now=datetime.now(timezone.utc) - timedelta(days=8),
        )
        response = await test_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token expired. Please login again."

    @pytest.mark.asyncio
    async def test_token_for_unknown_user(self, test_client):
        token = credential_service.issue_token(SimpleNamespace(id=uuid4(), email="ghost@example.com"))
        response = await test_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token. User not found."


class TestProfileAndLogout:
    """GET /api/auth/profile and POST /api/auth/logout"""

    @pytest.mark.asyncio
    async def test_profile_includes_note_stats(self, test_client, register_user):
        _, headers = await register_user("alice@example.com")
        for title in ("one", "two"):
            await test_client.post("/api/notes", json={"title": title, "content": "c"}, headers=headers)
        created = await test_client.post("/api/notes", json={"title": "old", "content": "c"}, headers=headers)
        note_id = created.json()["data"]["note"]["id"]
        await test_client.put(f"/api/notes/{note_id}/archive", headers=headers)

        response = await test_client.get("/api/auth/profile", headers=headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["email"] == "alice@example.com"
        assert data["stats"] == {"active": 2, "archived": 1, "trash": 0}
        assert data["active_notes_count"] == 2

    @pytest.mark.asyncio
    async def test_logout(self, test_client, register_user):
        _, headers = await register_user("alice@example.com")
        response = await test_client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logout successful"}

    @pytest.mark.asyncio
    async def test_logout_requires_token(self, test_client):
        response = await test_client.post("/api/auth/logout")
        assert response.status_code == 401


class TestGoogleSignIn:
    """GET /api/auth/google, /google/callback and /google/failure"""

    @pytest.mark.asyncio
    async def test_not_configured(self, test_client):
        response = await test_client.get("/api/auth/google")
        assert response.status_code == 503
        assert response.json()["error"] == "external_identity_error"

    @pytest.mark.asyncio
    async def test_redirects_to_consent_screen(self, test_client, google):
        response = await test_client.get("/api/auth/google")
        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        assert location.netloc == "accounts.google.com"
        assert parse_qs(location.query)["client_id"] == ["cid"]

    @pytest.mark.asyncio
    async def test_callback_signs_in_and_redirects_with_token(self, test_client, google):
        response = await test_client.get(
            "/api/auth/google/callback",
            params={"code": "auth-code", "state": google.issue_state()},
        )

        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith("http://frontend.test/auth/callback?token=")
        token = parse_qs(urlparse(location).query)["token"][0]

        me = await test_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["user"]["email"] == "gina@example.com"

    @pytest.mark.asyncio
    async def test_callback_links_existing_account(self, test_client, google, register_user):
        user, _ = await register_user("gina@example.com", name="Gina")
        response = await test_client.get(
            "/api/auth/google/callback",
            params={"code": "auth-code", "state": google.issue_state()},
        )
        token = parse_qs(urlparse(response.headers["location"]).query)["token"][0]
        assert credential_service.verify_token(token).id == UUID(user["id"])

    @pytest.mark.asyncio
    async def test_email_changed_on_google_side(self, test_client, google_sign_in):
        first = await google_sign_in({"sub": "g-1", "email": "old@example.com", "name": "G"})
        second = await google_sign_in({"sub": "g-1", "email": "new@example.com", "name": "G"})

        assert token_user_id(second) == token_user_id(first)

    @pytest.mark.asyncio
    async def test_changed_email_belongs_to_password_account(
        self, test_client, google_sign_in, register_user
    ):
        first = await google_sign_in({"sub": "g-1", "email": "old@example.com", "name": "G"})
        other, other_headers = await register_user("new@example.com", name="Other")

        second = await google_sign_in({"sub": "g-1", "email": "new@example.com", "name": "G"})

        assert token_user_id(second) == token_user_id(first)
        assert token_user_id(second) != UUID(other["id"])
        me = await test_client.get("/api/auth/me", headers=other_headers)
        assert me.json()["data"]["user"]["email"] == "new@example.com"

    @pytest.mark.asyncio
    async def test_account_conflict_redirects_to_failure(self, test_client, google, monkeypatch):
        monkeypatch.setattr(
            identity_service,
            "resolve_external_identity",
            AsyncMock(side_effect=ConflictError(message="User already exists with this email")),
        )
        response = await test_client.get(
            "/api/auth/google/callback",
            params={"code": "auth-code", "state": google.issue_state()},
        )
        assert response.status_code == 307
        assert response.headers["location"] == "http://test/api/auth/google/failure"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"error": "access_denied"},
            {"code": "auth-code", "state": "forged"},
            {"code": "auth-code"},
        ],
    )
    async def test_callback_failures_redirect_to_failure(self, test_client, google, params):
        response = await test_client.get("/api/auth/google/callback", params=params)
        assert response.status_code == 307
        assert response.headers["location"] == "http://test/api/auth/google/failure"

    @pytest.mark.asyncio
    async def test_failure_redirects_to_frontend_login(self, test_client):
        response = await test_client.get("/api/auth/google/failure")
        assert response.status_code == 307
        assert response.headers["location"] == "http://frontend.test/login?error=oauth_failed"
