"""
NoteKeep Backend — Credential Service Unit Tests
==================================================

What:  Tests for password hashing and session-token signing.
How:   A CredentialService with a known secret and the cheapest bcrypt cost.

What we test:
    ✅ Hash never equals plaintext; verify succeeds, wrong password fails
    ✅ Same password hashes differently each time (salt)
    ✅ Google-only accounts (no hash) never verify
    ✅ issue → verify round-trips id and email before expiry
    ✅ Expired, tampered, wrong-secret and incomplete tokens are rejected
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import jwt
import pytest

from app.exceptions import TokenExpiredError, TokenMalformedError
from app.services.credential_service import CredentialService

SECRET = "unit-test-secret-0123456789abcdef0123456789"


@pytest.fixture
def credentials():
    return CredentialService(secret=SECRET, bcrypt_rounds=4)


@pytest.fixture
def user():
    return SimpleNamespace(id=uuid4(), email="alice@example.com")


class TestPasswordHashing:
    """Tests for hash_password / verify_password."""

    def test_hash_differs_from_plaintext_and_verifies(self, credentials):
        hashed = credentials.hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert credentials.verify_password("s3cret!", hashed) is True

    def test_wrong_password_fails(self, credentials):
        hashed = credentials.hash_password("s3cret!")
        assert credentials.verify_password("S3cret!", hashed) is False

    def test_each_hash_is_salted(self, credentials):
        assert credentials.hash_password("same") != credentials.hash_password("same")

    def test_missing_hash_never_verifies(self, credentials):
        """Accounts created through Google have no password hash."""
        assert credentials.verify_password("anything", None) is False
        assert credentials.verify_password("", credentials.hash_password("x")) is False

    def test_garbage_hash_returns_false(self, credentials):
        assert credentials.verify_password("s3cret!", "not-a-bcrypt-hash") is False


class TestSessionTokens:
    """Tests for issue_token / verify_token."""

    def test_round_trip_before_expiry(self, credentials, user):
        token = credentials.issue_token(user)
        payload = credentials.verify_token(token)
        assert payload.id == user.id
        assert payload.email == "alice@example.com"

    def test_lifetime_is_seven_days(self, credentials, user):
        now = datetime.now(timezone.utc)
        payload = credentials.verify_token(credentials.issue_token(user, now=now))
        assert payload.exp - payload.iat == int(timedelta(days=7).total_seconds())

    def test_expired_token_rejected(self, credentials, user):
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        token = credentials.issue_token(user, now=issued)
        with pytest.raises(TokenExpiredError):
            credentials.verify_token(token)

    def test_tampered_token_rejected(self, credentials, user):
        token = credentials.issue_token(user)
        header, payload, signature = token.split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
        with pytest.raises(TokenMalformedError):
            credentials.verify_token(f"{header}.{payload}.{flipped}")

    def test_token_from_other_secret_rejected(self, credentials, user):
        other = CredentialService(secret="another-secret-0123456789abcdef0123456", bcrypt_rounds=4)
        with pytest.raises(TokenMalformedError):
            credentials.verify_token(other.issue_token(user))

    def test_garbage_rejected(self, credentials):
        with pytest.raises(TokenMalformedError):
            credentials.verify_token("not.a.token")

    def test_missing_claim_rejected(self, credentials):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"email": "alice@example.com", "iat": now, "exp": now + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenMalformedError):
            credentials.verify_token(token)

    def test_non_uuid_id_rejected(self, credentials):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"id": "42", "email": "a@b.co", "iat": now, "exp": now + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenMalformedError):
            credentials.verify_token(token)
