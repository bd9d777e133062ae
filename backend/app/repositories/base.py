"""
NoteKeep Backend — Abstract Repository Interfaces
===================================================

What:  Contracts for user and note storage.
How:   Concrete implementations inherit and implement every abstract method.
Who:   Called by IdentityService, NoteService and the auth guard.

Contract shared by all implementations:
    - Note methods are always scoped by `owner_id`; a note owned by somebody
      else behaves exactly like a note that does not exist.
    - Status transitions are a single conditional write
      (`update_conditional`), never read-then-write.
    - Unique-constraint violations on users surface as ConflictError.
    - Implementations never commit; the request session owns the transaction.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from app.models.note import Note, NoteStatus
from app.models.user import User
from app.schemas.auth import UserResponse


class UserRepository(ABC):
    """Storage for user accounts."""

    @abstractmethod
    async def get_by_id(self, user_id: uuid.UUID) -> Optional[UserResponse]:
        """
        Load the public projection of a user.

        Returns:
            UserResponse without any credential columns, or None when the id
            no longer resolves (for example a deleted account).
        """
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Full user row (including password hash) by normalized email."""
        ...

    @abstractmethod
    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        """Full user row by linked Google account id."""
        ...

    @abstractmethod
    async def create(
        self,
        email: str,
        name: Optional[str] = None,
        password_hash: Optional[str] = None,
        google_id: Optional[str] = None,
    ) -> User:
        """
        Insert a user.

        Raises:
            ConflictError: email or google_id already taken.
        """
        ...

    @abstractmethod
    async def link_google_id(self, user: User, google_id: str) -> User:
        """
        Attach a Google account id to an existing user.

        Raises:
            ConflictError: google_id already linked to another user.
        """
        ...


class NoteRepository(ABC):
    """Storage for notes, always filtered by owner."""

    @abstractmethod
    async def create(self, owner_id: uuid.UUID, title: str, content: str) -> Note:
        """Insert an ACTIVE note for `owner_id`."""
        ...

    @abstractmethod
    async def get_owned(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> Optional[Note]:
        """The note if it exists and belongs to `owner_id`, else None."""
        ...

    @abstractmethod
    async def find_many(
        self,
        owner_id: uuid.UUID,
        status: NoteStatus,
        offset: int,
        limit: int,
        search: Optional[str] = None,
    ) -> List[Note]:
        """
        Owned notes in `status`, newest `updated_at` first.

        `search`, when given, keeps notes whose title or content contains it
        (case-insensitive, taken literally).
        """
        ...

    @abstractmethod
    async def count(
        self,
        owner_id: uuid.UUID,
        status: NoteStatus,
        search: Optional[str] = None,
    ) -> int:
        """Number of notes `find_many` would match without paging."""
        ...

    @abstractmethod
    async def count_by_status(self, owner_id: uuid.UUID) -> Dict[NoteStatus, int]:
        """Counts grouped by status. Statuses with no notes may be absent."""
        ...

    @abstractmethod
    async def update_content(
        self,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        title: str,
        content: str,
    ) -> Optional[Note]:
        """Replace title/content of an owned note; None when not owned."""
        ...

    @abstractmethod
    async def update_conditional(
        self,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        sources: Iterable[NoteStatus],
        target: NoteStatus,
    ) -> bool:
        """
        Compare-and-swap the status of an owned note.

        Returns:
            True when exactly one row moved from a status in `sources` to
            `target`; False when nothing matched.
        """
        ...

    @abstractmethod
    async def delete(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> bool:
        """Remove an owned note permanently. False when nothing matched."""
        ...
