"""
NoteKeep Backend — Notes Route Handlers
=========================================

What:  CRUD, listing and status transitions for the caller's notes.
How:   Every handler depends on get_current_user and passes the caller's id
       into NoteService, so no query can reach another user's rows.
Who:   Called by the frontend notes, archive and trash views.

Routes:
    GET    /api/notes                    active notes (page, limit, search)
    GET    /api/notes/archived           archived notes
    GET    /api/notes/trash              trashed notes
    GET    /api/notes/stats              counts per status
    POST   /api/notes                    create (201)
    GET    /api/notes/{id}               read, any status
    PUT    /api/notes/{id}               replace title and content
    DELETE /api/notes/{id}               permanent delete, any status
    PUT    /api/notes/{id}/archive       ACTIVE           → ARCHIVED
    PUT    /api/notes/{id}/unarchive     ARCHIVED         → ACTIVE
    PUT    /api/notes/{id}/trash         ACTIVE|ARCHIVED  → TRASH
    PUT    /api/notes/{id}/restore       TRASH            → ACTIVE

The static paths (archived, trash, stats) are registered before /{note_id}.
Anything that is not a UUID in the id position is a 400.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.dependencies import get_current_user, get_note_repository
from app.models.note import NoteStatus
from app.repositories import NoteRepository
from app.schemas.auth import UserResponse
from app.schemas.common import ApiResponse, ErrorResponse, MessageResponse
from app.schemas.note import (
    NoteData,
    NoteListData,
    NoteResponse,
    NoteWriteRequest,
    StatsData,
)
from app.services.note_service import DEFAULT_PAGE_SIZE, note_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/notes", tags=["Notes"])

ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing, expired or invalid token", "model": ErrorResponse},
}
NOT_FOUND = {
    **ERRORS,
    404: {"description": "Note not found", "model": ErrorResponse},
}
MAX_PAGE_SIZE = 100


class ListParams:
    """Query parameters shared by the three list endpoints."""

    def __init__(
        self,
        page: int = Query(default=1, description="1-indexed page number"),
        limit: int = Query(
            default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE,
            description="Notes per page (max 100)",
        ),
        search: Optional[str] = Query(
            default=None,
            description="Case-insensitive match on title or content",
        ),
    ):
        self.page = page
        self.limit = limit
        self.search = search


async def _list(
    notes: NoteRepository,
    user: UserResponse,
    note_status: NoteStatus,
    params: ListParams,
) -> ApiResponse[NoteListData]:
    result = await note_service.list_notes(
        notes,
        user.id,
        note_status,
        page=params.page,
        page_size=params.limit,
        search=params.search,
    )
    return ApiResponse(data=result.to_response())


def _note(note, message: Optional[str] = None) -> ApiResponse[NoteData]:
    return ApiResponse(data=NoteData(note=NoteResponse.model_validate(note)), message=message)


# ── Listing ───────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=ApiResponse[NoteListData],
    responses=ERRORS,
    summary="List active notes",
)
async def list_active_notes(
    params: ListParams = Depends(),
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteListData]:
    """
    Active notes, most recently updated first.

    Example:
        GET /api/notes?page=2&limit=10&search=groceries
    """
    return await _list(notes, user, NoteStatus.ACTIVE, params)


@router.get(
    "/archived",
    response_model=ApiResponse[NoteListData],
    responses=ERRORS,
    summary="List archived notes",
)
async def list_archived_notes(
    params: ListParams = Depends(),
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteListData]:
    return await _list(notes, user, NoteStatus.ARCHIVED, params)


@router.get(
    "/trash",
    response_model=ApiResponse[NoteListData],
    responses=ERRORS,
    summary="List trashed notes",
)
async def list_trashed_notes(
    params: ListParams = Depends(),
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteListData]:
    return await _list(notes, user, NoteStatus.TRASH, params)


@router.get(
    "/stats",
    response_model=ApiResponse[StatsData],
    responses=ERRORS,
    summary="Note counts per status",
)
async def note_stats(
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[StatsData]:
    stats = await note_service.stats(notes, user.id)
    return ApiResponse(data=StatsData(stats=stats))


# ── CRUD ──────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=ApiResponse[NoteData],
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
    summary="Create a note",
)
async def create_note(
    body: NoteWriteRequest,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteData]:
    note = await note_service.create_note(notes, user.id, body.title, body.content)
    return _note(note, "Note created successfully")


@router.get(
    "/{note_id}",
    response_model=ApiResponse[NoteData],
    responses=NOT_FOUND,
    summary="Get a note",
)
async def get_note(
    note_id: UUID,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteData]:
    return _note(await note_service.get_note(notes, user.id, note_id))


@router.put(
    "/{note_id}",
    response_model=ApiResponse[NoteData],
    responses=NOT_FOUND,
    summary="Update a note",
)
async def update_note(
    note_id: UUID,
    body: NoteWriteRequest,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteData]:
    note = await note_service.update_note(notes, user.id, note_id, body.title, body.content)
    return _note(note, "Note updated successfully")


@router.delete(
    "/{note_id}",
    response_model=MessageResponse,
    responses=NOT_FOUND,
    summary="Delete a note permanently",
)
async def delete_note(
    note_id: UUID,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> MessageResponse:
    await note_service.delete_note(notes, user.id, note_id)
    return MessageResponse(message="Note permanently deleted")


# ── Status Transitions ────────────────────────────────────────────────────

@router.put(
    "/{note_id}/archive",
    response_model=ApiResponse[NoteData],
    responses=NOT_FOUND,
    summary="Archive an active note",
)
async def archive_note(
    note_id: UUID,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteData]:
    return _note(await note_service.archive(notes, user.id, note_id), "Note archived successfully")


@router.put(
    "/{note_id}/unarchive",
    response_model=ApiResponse[NoteData],
    responses=NOT_FOUND,
    summary="Move an archived note back to active",
)
async def unarchive_note(
    note_id: UUID,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteData]:
    return _note(await note_service.unarchive(notes, user.id, note_id), "Note unarchived successfully")


@router.put(
    "/{note_id}/trash",
    response_model=ApiResponse[NoteData],
    responses=NOT_FOUND,
    summary="Move a note to the trash",
)
async def trash_note(
    note_id: UUID,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteData]:
    return _note(await note_service.trash(notes, user.id, note_id), "Note moved to trash")


@router.put(
    "/{note_id}/restore",
    response_model=ApiResponse[NoteData],
    responses=NOT_FOUND,
    summary="Restore a trashed note",
)
async def restore_note(
    note_id: UUID,
    user: UserResponse = Depends(get_current_user),
    notes: NoteRepository = Depends(get_note_repository),
) -> ApiResponse[NoteData]:
    return _note(await note_service.restore(notes, user.id, note_id), "Note restored successfully")
