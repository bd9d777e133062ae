"""
NoteKeep Backend — Note Request/Response Schemas
==================================================

What:  Pydantic models defining the notes API contract.
How:   FastAPI validates request bodies against these, serializes responses
       through them and generates the OpenAPI docs from them.

Schemas are kept apart from the SQLAlchemy models so the API never exposes
internal columns (user_id) and can add computed fields (pagination).
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.note import Note, NoteStatus


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteWriteRequest(BaseModel):
    """
    Body for POST /api/notes and PUT /api/notes/{id}.

    Both fields are trimmed and must be non-empty; the note service enforces
    that so the error message is the same for missing and blank values.
    """
    title: Optional[str] = Field(default=None, description="Note title")
    content: Optional[str] = Field(default=None, description="Note body")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    title: str
    content: str
    status: NoteStatus = Field(description="active, archived or trash")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int = Field(description="1-indexed page number")
    limit: int = Field(description="Page size")
    total: int = Field(description="Number of notes matching the filters")
    pages: int = Field(description="Number of pages at this page size")


class NoteData(BaseModel):
    note: NoteResponse


class NoteListData(BaseModel):
    notes: List[NoteResponse]
    pagination: Pagination


class NoteStats(BaseModel):
    """Per-status counts. Every status is present, zero when empty."""
    active: int = 0
    archived: int = 0
    trash: int = 0


class StatsData(BaseModel):
    stats: NoteStats


# ══════════════════════════════════════════════════════════════════════════
# Service Results
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class NotePage:
    """One page of notes as returned by NoteService.list_notes()."""
    notes: List[Note]
    total: int
    page: int
    page_size: int
    search: Optional[str] = field(default=None)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    def to_response(self) -> NoteListData:
        return NoteListData(
            notes=[NoteResponse.model_validate(note) for note in self.notes],
            pagination=Pagination(
                page=self.page,
                limit=self.page_size,
                total=self.total,
                pages=self.pages,
            ),
        )
