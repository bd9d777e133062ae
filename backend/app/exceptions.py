"""
NoteKeep Backend — Custom Exception Hierarchy
===============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the `{success: false, error, message}` envelope with the
       matching HTTP status code.
Who:   Raised by services, repositories, the auth guard and middleware.

Exception Hierarchy:
    NoteKeepError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnauthenticatedError     → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── DatabaseError            → 500 Internal Server Error
    └── ExternalIdentityError    → 503 Service Unavailable

Credential-level token failures (TokenExpiredError, TokenMalformedError)
live in the same module but are not NoteKeepErrors: they never reach a
handler directly. The auth guard translates them into UnauthenticatedError.
"""

from typing import Any, Dict, Optional


class NoteKeepError(Exception):
    """
    Base exception for all NoteKeep application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info; logged, and returned as `details`
                  only for validation, authentication and rate-limit errors
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteKeepError):
    """
    Raised when client input fails validation.

    When:    Missing title/content, malformed email, short password.
    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Title and content are required",
            "details": {"field": "title"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthenticatedError(NoteKeepError):
    """
    Raised when a request cannot be tied to a known user.

    When:    Missing bearer token, expired or invalid token, deleted account,
             wrong email/password on login.
    HTTP:    401 Unauthorized

    `reason` is a short machine-readable tag ("missing", "expired",
    "invalid", "user not found", "bad credentials") recorded in context for
    logs and returned in the response details.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        reason: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class NotFoundError(NoteKeepError):
    """
    Raised when a requested resource does not exist for the caller.

    When:    Note id unknown, owned by another user, or not in a status the
             requested transition accepts. These cases are deliberately
             indistinguishable to the client.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(NoteKeepError):
    """
    Raised when a write collides with an existing unique value.

    When:    Registering an email that already has an account.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NoteKeepError):
    """
    Raised when database operations fail unexpectedly.

    When:    Connection lost mid-query, deadlock, unexpected constraint failure.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ExternalIdentityError(NoteKeepError):
    """
    Raised when Google sign-in cannot be completed.

    When:    OAuth not configured, state check failed, Google's token or
             userinfo endpoint failed after retries.
    HTTP:    503 Service Unavailable (the browser flow redirects to the
             failure route instead of surfacing this directly)
    """

    def __init__(
        self,
        message: str = "Google sign-in is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NoteKeepError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Too many requests, please try again later"
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


# ── Token verification failures ───────────────────────────────────────────

class TokenError(Exception):
    """Base class for session-token verification failures."""


class TokenExpiredError(TokenError):
    """The token's signature is valid but its `exp` claim has passed."""


class TokenMalformedError(TokenError):
    """Bad signature, undecodable structure or missing required claims."""
