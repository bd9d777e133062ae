"""
NoteKeep Backend — Authentication Schemas
===========================================

What:  Request bodies for register/login, the public user representation,
       session-token claims and the profile returned by Google.

Request fields are optional at the schema level on purpose: a missing field
must produce the same 400 "... are required" message as an empty one, and
that check lives in the identity service.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.note import NoteStats


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="Display name")
    email: Optional[str] = Field(default=None, description="Email address (case-insensitive)")
    password: Optional[str] = Field(default=None, description="At least 6 characters")


class LoginRequest(BaseModel):
    email: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """
    Public view of a user. Never carries the password hash.

    Also the identity the auth guard binds to each request.
    """
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthData(BaseModel):
    user: UserResponse
    token: str = Field(description="Bearer token, valid for 7 days")


class UserData(BaseModel):
    user: UserResponse


class ProfileData(BaseModel):
    user: UserResponse
    stats: NoteStats
    active_notes_count: int


# ══════════════════════════════════════════════════════════════════════════
# Internal Models
# ══════════════════════════════════════════════════════════════════════════


class TokenPayload(BaseModel):
    """Claims carried by a session token."""
    id: uuid.UUID
    email: str
    iat: int
    exp: int


class ExternalProfile(BaseModel):
    """The subset of a Google userinfo response the identity service needs."""
    id: str
    email: str
    name: Optional[str] = None
