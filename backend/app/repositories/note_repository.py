"""
NoteKeep Backend — SQLAlchemy Note Repository
===============================================

What:  NoteRepository implementation over an AsyncSession.
How:   Each method builds one statement whose WHERE clause always includes
       `Note.user_id == owner_id`.

Query plans (PostgreSQL):
    List:   WHERE user_id = :owner AND status = :status [AND (title ILIKE ... OR content ILIKE ...)]
            ORDER BY updated_at DESC, created_at DESC, id DESC OFFSET :o LIMIT :l
            → idx_notes_user_status_updated
    Transition:
            UPDATE notes SET status = :target, updated_at = :now
            WHERE id = :id AND user_id = :owner AND status IN (:sources)
            → rowcount 1 on success, 0 when the note is missing, foreign
              or already moved by a concurrent request
"""

import logging
import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.note import Note, NoteStatus
from app.repositories.base import NoteRepository

logger = logging.getLogger(__name__)


class SQLAlchemyNoteRepository(NoteRepository):
    """
    Note storage on top of SQLAlchemy 2.0 async sessions.

    Writes are flushed, never committed; `get_db_session` commits once the
    request handler returns.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Predicates ────────────────────────────────────────────────────────

    @staticmethod
    def _filtered(query: Select, owner_id: uuid.UUID, status: NoteStatus,
                  search: Optional[str]) -> Select:
        query = query.where(Note.user_id == owner_id, Note.status == status)
        if search:
            # autoescape: a literal "%" or "_" in the search box matches itself
            query = query.where(
                or_(
                    Note.title.icontains(search, autoescape=True),
                    Note.content.icontains(search, autoescape=True),
                )
            )
        return query

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_owned(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> Optional[Note]:
        result = await self.db.execute(
            select(Note)
            .where(Note.id == note_id, Note.user_id == owner_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_many(
        self,
        owner_id: uuid.UUID,
        status: NoteStatus,
        offset: int,
        limit: int,
        search: Optional[str] = None,
    ) -> List[Note]:
        query = self._filtered(select(Note), owner_id, status, search)
        query = (
            query.order_by(
                Note.updated_at.desc(),
                Note.created_at.desc(),
                Note.id.desc(),
            )
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        owner_id: uuid.UUID,
        status: NoteStatus,
        search: Optional[str] = None,
    ) -> int:
        query = self._filtered(select(func.count(Note.id)), owner_id, status, search)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def count_by_status(self, owner_id: uuid.UUID) -> Dict[NoteStatus, int]:
        result = await self.db.execute(
            select(Note.status, func.count(Note.id))
            .where(Note.user_id == owner_id)
            .group_by(Note.status)
        )
        return {status: count for status, count in result.all()}

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, owner_id: uuid.UUID, title: str, content: str) -> Note:
        note = Note(
            user_id=owner_id,
            title=title,
            content=content,
            status=NoteStatus.ACTIVE,
        )
        self.db.add(note)
        await self.db.flush()
        return note

    async def update_content(
        self,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        title: str,
        content: str,
    ) -> Optional[Note]:
        note = await self.get_owned(owner_id, note_id)
        if note is None:
            return None
        note.title = title
        note.content = content
        note.updated_at = utcnow()
        await self.db.flush()
        return note

    async def update_conditional(
        self,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        sources: Iterable[NoteStatus],
        target: NoteStatus,
    ) -> bool:
        result = await self.db.execute(
            update(Note)
            .where(
                Note.id == note_id,
                Note.user_id == owner_id,
                Note.status.in_(list(sources)),
            )
            .values(status=target, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            delete(Note)
            .where(Note.id == note_id, Note.user_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
