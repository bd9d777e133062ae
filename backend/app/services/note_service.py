"""
NoteKeep Backend — Note Service (Lifecycle Manager)
=====================================================

What:  Owner-scoped note CRUD, status transitions, listing and statistics.
How:   Validates and trims input, then calls a NoteRepository. Storage
       failures are logged with detail and re-raised as DatabaseError.
Who:   Called by the /api/notes route handlers and the profile endpoint.

Transitions:
    ┌───────────┬──────────────────┬──────────┐
    │ archive   │ ACTIVE           │ ARCHIVED │
    │ unarchive │ ARCHIVED         │ ACTIVE   │
    │ trash     │ ACTIVE, ARCHIVED │ TRASH    │
    │ restore   │ TRASH            │ ACTIVE   │
    └───────────┴──────────────────┴──────────┘

    Each one is a single conditional UPDATE. If the note is missing, owned
    by someone else, or not in an allowed source status, zero rows change
    and the caller gets NotFoundError. Two racing requests therefore cannot
    both apply the same transition.

NoteService is stateless. It receives the repository for every call, so
one instance serves all requests.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import DatabaseError, NotFoundError, ValidationError
from app.models.note import Note, NoteStatus
from app.repositories.base import NoteRepository
from app.schemas.note import NotePage, NoteStats

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

TRANSITIONS: Dict[str, Tuple[Tuple[NoteStatus, ...], NoteStatus]] = {
    "archive": ((NoteStatus.ACTIVE,), NoteStatus.ARCHIVED),
    "unarchive": ((NoteStatus.ARCHIVED,), NoteStatus.ACTIVE),
    "trash": ((NoteStatus.ACTIVE, NoteStatus.ARCHIVED), NoteStatus.TRASH),
    "restore": ((NoteStatus.TRASH,), NoteStatus.ACTIVE),
}

TRANSITION_NOT_FOUND = {
    "archive": "Active note not found",
    "unarchive": "Archived note not found",
    "trash": "Note not found or already trashed",
    "restore": "Trashed note not found",
}


@contextmanager
def storage_errors(operation: str, **context) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as DatabaseError with a generic message."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
        raise DatabaseError(
            message="Could not complete the note operation. Please try again.",
            context={"operation": operation, "error_type": type(e).__name__, **context},
        ) from e


def clean_note_fields(title: Optional[str], content: Optional[str]) -> Tuple[str, str]:
    """
    Trim title and content.

    Raises:
        ValidationError: either value missing or blank after trimming.
    """
    title = (title or "").strip()
    content = (content or "").strip()
    if not title or not content:
        raise ValidationError(
            message="Title and content are required",
            field="title" if not title else "content",
        )
    return title, content


class NoteService:
    """
    Business logic for notes.

    Every method takes `owner_id` from the authenticated request and passes
    it into each repository call.
    """

    async def create_note(
        self,
        notes: NoteRepository,
        owner_id: uuid.UUID,
        title: Optional[str],
        content: Optional[str],
    ) -> Note:
        """Create an ACTIVE note. Raises ValidationError on blank fields."""
        title, content = clean_note_fields(title, content)
        with storage_errors("create_note"):
            note = await notes.create(owner_id, title, content)
        logger.info("Note %s created", note.id)
        return note

    async def get_note(
        self,
        notes: NoteRepository,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> Note:
        """Fetch an owned note in any status. Raises NotFoundError otherwise."""
        with storage_errors("get_note", note_id=str(note_id)):
            note = await notes.get_owned(owner_id, note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def update_note(
        self,
        notes: NoteRepository,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        title: Optional[str],
        content: Optional[str],
    ) -> Note:
        """
        Replace title and content. Status is left as it was.

        Raises:
            ValidationError: blank field (checked before touching storage)
            NotFoundError: note not owned or not existent
        """
        title, content = clean_note_fields(title, content)
        with storage_errors("update_note", note_id=str(note_id)):
            note = await notes.update_content(owner_id, note_id, title, content)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        logger.info("Note %s updated", note_id)
        return note

    async def transition(
        self,
        notes: NoteRepository,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        action: str,
    ) -> Note:
        """
        Apply one of archive / unarchive / trash / restore.

        Returns:
            The note after the transition.

        Raises:
            NotFoundError: no owned note with that id in an allowed source status
        """
        if action not in TRANSITIONS:
            raise ValueError(f"Unknown note transition '{action}'")
        sources, target = TRANSITIONS[action]

        with storage_errors(action, note_id=str(note_id)):
            moved = await notes.update_conditional(owner_id, note_id, sources, target)
            if not moved:
                raise NotFoundError(
                    resource="note",
                    resource_id=str(note_id),
                    message=TRANSITION_NOT_FOUND[action],
                )
            note = await notes.get_owned(owner_id, note_id)

        if note is None:
            # Deleted between the update and the re-read
            raise NotFoundError(resource="note", resource_id=str(note_id))
        logger.info("Note %s moved to %s", note_id, target.name)
        return note

    async def archive(self, notes: NoteRepository, owner_id: uuid.UUID, note_id: uuid.UUID) -> Note:
        return await self.transition(notes, owner_id, note_id, "archive")

    async def unarchive(self, notes: NoteRepository, owner_id: uuid.UUID, note_id: uuid.UUID) -> Note:
        return await self.transition(notes, owner_id, note_id, "unarchive")

    async def trash(self, notes: NoteRepository, owner_id: uuid.UUID, note_id: uuid.UUID) -> Note:
        return await self.transition(notes, owner_id, note_id, "trash")

    async def restore(self, notes: NoteRepository, owner_id: uuid.UUID, note_id: uuid.UUID) -> Note:
        return await self.transition(notes, owner_id, note_id, "restore")

    async def delete_note(
        self,
        notes: NoteRepository,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> None:
        """Permanently delete an owned note, whatever its status."""
        with storage_errors("delete_note", note_id=str(note_id)):
            deleted = await notes.delete(owner_id, note_id)
        if not deleted:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        logger.info("Note %s permanently deleted", note_id)

    async def list_notes(
        self,
        notes: NoteRepository,
        owner_id: uuid.UUID,
        status: NoteStatus,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
    ) -> NotePage:
        """
        One page of owned notes in `status`, newest-updated first.

        Pagination:
            1-indexed; page < 1 is treated as 1. The page holds rows
            [(page-1)*page_size, page*page_size). `total` counts every match.

        Search:
            Case-insensitive substring of title or content. Whitespace-only
            terms are ignored.
        """
        page = max(page, 1)
        page_size = max(page_size, 1)
        if search is not None and not search.strip():
            search = None

        with storage_errors("list_notes", status=status.name):
            items = await notes.find_many(
                owner_id,
                status,
                offset=(page - 1) * page_size,
                limit=page_size,
                search=search,
            )
            total = await notes.count(owner_id, status, search=search)

        return NotePage(
            notes=items,
            total=total,
            page=page,
            page_size=page_size,
            search=search,
        )

    async def stats(self, notes: NoteRepository, owner_id: uuid.UUID) -> NoteStats:
        """Counts per status; statuses without notes report 0."""
        with storage_errors("note_stats"):
            counts = await notes.count_by_status(owner_id)
        return NoteStats(
            active=counts.get(NoteStatus.ACTIVE, 0),
            archived=counts.get(NoteStatus.ARCHIVED, 0),
            trash=counts.get(NoteStatus.TRASH, 0),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
