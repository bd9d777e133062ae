"""
NoteKeep Backend — Note SQLAlchemy Model
==========================================

What:  ORM model representing the `notes` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by the SQLAlchemy note repository for CRUD and status transitions.

Table Design:
    - UUID primary key
    - user_id: owning user, fixed at creation, ON DELETE CASCADE
    - title / content: TEXT, never empty after trimming (checked before insert)
    - status: NoteStatus enum, stored by member name (ACTIVE / ARCHIVED / TRASH)
    - created_at / updated_at: UTC; updated_at moves on every edit or transition

Status lifecycle:

    ┌───────────┬────────────────────┬──────────┐
    │ Operation │ From               │ To       │
    ├───────────┼────────────────────┼──────────┤
    │ archive   │ ACTIVE             │ ARCHIVED │
    │ unarchive │ ARCHIVED           │ ACTIVE   │
    │ trash     │ ACTIVE, ARCHIVED   │ TRASH    │
    │ restore   │ TRASH              │ ACTIVE   │
    └───────────┴────────────────────┴──────────┘

    Delete is allowed from any status and removes the row.

Index (user_id, status, updated_at):
    Serves the list endpoints, which always filter by owner and status and
    sort newest-updated first.
"""

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, TimestampMixin


class NoteStatus(str, enum.Enum):
    """Visibility state of a note. Values are the API representation."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    TRASH = "trash"


class Note(TimestampMixin, Base):
    """A user-owned note."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[NoteStatus] = mapped_column(
        Enum(NoteStatus, name="note_status"),
        nullable=False,
        default=NoteStatus.ACTIVE,
        server_default=NoteStatus.ACTIVE.name,
        index=True,
    )

    __table_args__ = (
        Index(
            "idx_notes_user_status_updated",
            "user_id",
            "status",
            "updated_at",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, user_id={self.user_id}, "
            f"status='{self.status.name}')>"
        )
