"""
NoteKeep Backend — Identity Service
=====================================

What:  Maps a principal (email/password or a Google profile) to a stored user.
How:   Validates input, normalizes email, delegates hashing to the credential
       service and persistence to a UserRepository.
Who:   Called by the /api/auth routes.

Flows:
    register_with_password:  validate → pre-check email → hash → insert
    login_with_password:     lookup → verify → user (one generic failure)
    resolve_external_identity:
                             lookup by google_id → by email (link google_id
                             if missing) → insert a password-less user

Enumeration safety:
    Login failures always carry the message "Invalid email or password",
    whether the email is unknown, the account has no password, or the
    password is wrong. Registration is the single place an existing email is
    reported (409).
"""

import logging
import re
from typing import Optional

from app.exceptions import ConflictError, UnauthenticatedError, ValidationError
from app.models.user import User
from app.repositories.base import UserRepository
from app.schemas.auth import ExternalProfile
from app.services.credential_service import CredentialService, credential_service

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "Invalid email or password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityService:
    """Registration, password login and Google account resolution."""

    def __init__(self, credentials: Optional[CredentialService] = None):
        self.credentials = credentials or credential_service

    async def register_with_password(
        self,
        users: UserRepository,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> User:
        """
        Create a password account.

        Raises:
            ValidationError: missing field, malformed email, short password
            ConflictError: email already registered (any letter case)
        """
        name = (name or "").strip()
        if not name or not email or not password:
            raise ValidationError(message="Name, email, and password are required")

        normalized = normalize_email(email)
        if not EMAIL_PATTERN.match(normalized):
            raise ValidationError(
                message="Please provide a valid email address",
                field="email",
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="password",
            )

        if await users.get_by_email(normalized) is not None:
            raise ConflictError(message="User already exists with this email")

        # A concurrent registration that slips past the pre-check is turned
        # into ConflictError by the repository's unique-constraint handling.
        user = await users.create(
            email=normalized,
            name=name,
            password_hash=self.credentials.hash_password(password),
        )
        logger.info("Registered user %s", user.id)
        return user

    async def login_with_password(
        self,
        users: UserRepository,
        email: Optional[str],
        password: Optional[str],
    ) -> User:
        """
        Authenticate with email and password.

        Raises:
            ValidationError: a field is missing
            UnauthenticatedError: any lookup or password mismatch
        """
        if not email or not password:
            raise ValidationError(message="Email and password are required")

        user = await users.get_by_email(normalize_email(email))
        if user is None or not self.credentials.verify_password(password, user.password_hash):
            logger.warning("Failed password login attempt")
            raise UnauthenticatedError(message=INVALID_CREDENTIALS, reason="bad credentials")

        logger.info("User %s logged in", user.id)
        return user

    async def resolve_external_identity(
        self,
        users: UserRepository,
        profile: ExternalProfile,
    ) -> User:
        """
        Return the user for a Google profile, creating one on first sign-in.

        An account already linked to the Google id wins, whatever email
        Google now reports. Otherwise an account with the same email is
        reused; if it was a password-only account the Google id is linked.

        Raises:
            ValidationError: profile without id or email
            ConflictError: the profile collides with another account
        """
        if not profile.id or not profile.email:
            raise ValidationError(message="Google profile is missing an email address")

        # The Google id is stable; the email on the Google side can change
        user = await users.get_by_google_id(profile.id)
        if user is not None:
            return user

        email = normalize_email(profile.email)
        user = await users.get_by_email(email)
        if user is not None:
            if user.google_id is None:
                user = await users.link_google_id(user, profile.id)
                logger.info("Linked Google account to user %s", user.id)
            return user

        try:
            user = await users.create(
                email=email,
                name=profile.name,
                google_id=profile.id,
            )
        except ConflictError:
            # Another callback for the same account won the insert
            user = await users.get_by_google_id(profile.id) or await users.get_by_email(email)
            if user is None:
                raise
            return user

        logger.info("Created user %s from Google sign-in", user.id)
        return user


# ── Singleton Instance ────────────────────────────────────────────────────
identity_service = IdentityService()
