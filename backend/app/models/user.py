"""
NoteKeep Backend — User SQLAlchemy Model
==========================================

What:  ORM model representing the `users` table.
Who:   Written by the identity service (registration, Google sign-in) and
       read by the auth guard on every protected request.

Table Design:
    - UUID primary key, generated in Python
    - email: unique, always stored lower-cased
    - password_hash: NULL for accounts that only ever signed in with Google
    - google_id: NULL for password-only accounts; unique when present
    - CHECK constraint guarantees at least one sign-in method per row

Users are never deleted by the application. When a row is removed by an
operator, the notes foreign key cascades.
"""

import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, TimestampMixin


class User(TimestampMixin, Base):
    """An account that owns notes."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
    )

    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
    )

    google_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        default=None,
    )

    __table_args__ = (
        CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_users_has_auth_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
