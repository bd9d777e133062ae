"""Create users and notes tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: `users`, the `note_status` enum type and `notes`.
How:   UUID primary keys generated by the application, TIMESTAMP WITH TIME
       ZONE everywhere, notes.user_id → users.id ON DELETE CASCADE.

Rollback: downgrade() drops both tables and the enum (all data lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

note_status = sa.Enum("ACTIVE", "ARCHIVED", "TRASH", name="note_status")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "email",
            sa.String(320),
            nullable=False,
            comment="Lower-cased; unique across all users",
        ),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=True,
            comment="bcrypt hash; NULL for Google-only accounts",
        ),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column(
            "google_id",
            sa.String(255),
            nullable=True,
            comment="Google account subject; NULL for password-only accounts",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("google_id"),
        sa.CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_users_has_auth_method",
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "status",
            note_status,
            nullable=False,
            server_default="ACTIVE",
            comment="ACTIVE, ARCHIVED or TRASH",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Moves on every edit and status change; list sort key",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_notes_user_id", "notes", ["user_id"])
    op.create_index("ix_notes_status", "notes", ["status"])
    # Every list query filters by owner and status and sorts by updated_at
    op.create_index(
        "idx_notes_user_status_updated",
        "notes",
        ["user_id", "status", "updated_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_notes_user_status_updated", table_name="notes")
    op.drop_index("ix_notes_status", table_name="notes")
    op.drop_index("ix_notes_user_id", table_name="notes")
    op.drop_table("notes")
    note_status.drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
