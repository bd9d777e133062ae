"""
NoteKeep Backend — Credential Service
=======================================

What:  Password hashing and session-token signing/verification.
How:   passlib's CryptContext (bcrypt, cost from settings.bcrypt_rounds) for
       passwords; PyJWT HS256 for tokens.
Who:   Used by IdentityService (register/login), the Google callback route
       (token issuance) and the auth guard (token verification).

Token format:
    {"id": "<user uuid>", "email": "<email>", "iat": <epoch>, "exp": <epoch>}
    Lifetime: settings.jwt_expires_days (7 days). No refresh tokens; logging
    out is the client discarding the token.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.exceptions import TokenExpiredError, TokenMalformedError
from app.schemas.auth import TokenPayload

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["id", "email", "iat", "exp"]


class CredentialService:
    """
    Stateless helper around bcrypt and JWT.

    Instances capture their secret, algorithm and work factor at construction,
    so tests can build one with a known key without touching global settings.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        token_lifetime: Optional[timedelta] = None,
        bcrypt_rounds: Optional[int] = None,
    ):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.token_lifetime = token_lifetime or timedelta(days=settings.jwt_expires_days)
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=bcrypt_rounds or settings.bcrypt_rounds,
        )

    # ── Passwords ─────────────────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        """Salted bcrypt hash; a new salt every call."""
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: Optional[str]) -> bool:
        """
        Check a plaintext password against a stored hash.

        Returns False for accounts without a password (Google-only) and for
        hashes passlib cannot identify, so callers only ever see a boolean.
        """
        if not password or not password_hash:
            return False
        try:
            return self.pwd_context.verify(password, password_hash)
        except (ValueError, TypeError):
            logger.warning("Stored password hash could not be parsed")
            return False

    # ── Tokens ────────────────────────────────────────────────────────────

    def issue_token(self, user: Any, now: Optional[datetime] = None) -> str:
        """
        Sign a session token for `user` (anything with `id` and `email`).

        Args:
            user: ORM User or UserResponse.
            now: Issue time; defaults to the current UTC time.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "id": str(user.id),
            "email": user.email,
            "iat": issued_at,
            "exp": issued_at + self.token_lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> TokenPayload:
        """
        Verify signature and expiry and return the claims.

        Raises:
            TokenExpiredError: signature fine, `exp` in the past.
            TokenMalformedError: anything else wrong with the token.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.PyJWTError as e:
            raise TokenMalformedError(str(e)) from e

        try:
            return TokenPayload.model_validate(claims)
        except PydanticValidationError as e:
            raise TokenMalformedError("Token claims are invalid") from e


# ── Singleton Instance ────────────────────────────────────────────────────
credential_service = CredentialService()
