"""Notes endpoints: filtered listings, CRUD, duplicate and per-user statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from knowledgehub.api.v1.auth import get_current_user, get_optional_user, require_note_creation
from knowledgehub.core.database import get_db
from knowledgehub.schemas.auth import CurrentUser
from knowledgehub.schemas.common import DeletedData, Envelope, Pagination
from knowledgehub.schemas.note import (
    NoteCreate,
    NoteData,
    NoteRead,
    NotesListData,
    NotesQuery,
    NoteStatsData,
    NoteUpdate,
)
from knowledgehub.services import notes
from knowledgehub.services.listing import Page

router = APIRouter()


def _list_payload(page: Page) -> NotesListData:
    return NotesListData(
        notes=[NoteRead.model_validate(n) for n in page.rows],
        pagination=Pagination(
            total=page.total, limit=page.limit, offset=page.offset, has_more=page.has_more
        ),
    )


@router.get("", response_model=Envelope[NotesListData])
def list_notes(
    query: Annotated[NotesQuery, Query()],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NotesListData]:
    """
    The caller's notes, filtered and paginated.

    Filters: category (exact), tags (comma separated, any may match), search
    (title and content, case-insensitive) and archived (default false).
    """
    page = notes.list_notes(db, query, scope_user_id=current_user.id)
    return Envelope(data=_list_payload(page))


@router.get("/public", response_model=Envelope[NotesListData])
def list_public_notes(
    query: Annotated[NotesQuery, Query()],
    _user: Annotated[CurrentUser | None, Depends(get_optional_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NotesListData]:
    """Shared knowledge base: notes of every user, same filters as the private listing."""
    page = notes.list_notes(db, query, scope_user_id=None)
    return Envelope(data=_list_payload(page))


@router.get("/stats/summary", response_model=Envelope[NoteStatsData])
def get_note_stats(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NoteStatsData]:
    return Envelope(data=notes.note_stats(db, current_user.id))


@router.get("/{note_id}", response_model=Envelope[NoteData])
def get_note(
    note_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NoteData]:
    note = notes.get_note(db, current_user.id, note_id)
    return Envelope(data=NoteData(note=NoteRead.model_validate(note)))


@router.post("", response_model=Envelope[NoteData], status_code=status.HTTP_201_CREATED)
def create_note(
    body: NoteCreate,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NoteData]:
    note = notes.create_note(db, current_user.id, body)
    return Envelope(
        message="Note created successfully",
        data=NoteData(note=NoteRead.model_validate(note)),
    )


@router.put("/{note_id}", response_model=Envelope[NoteData])
def update_note(
    note_id: int,
    body: NoteUpdate,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NoteData]:
    """Partial update of an owned note; only fields present in the body change."""
    note = notes.update_note(db, current_user.id, note_id, body)
    return Envelope(
        message="Note updated successfully",
        data=NoteData(note=NoteRead.model_validate(note)),
    )


@router.delete("/{note_id}", response_model=Envelope[DeletedData])
def delete_note(
    note_id: int,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[DeletedData]:
    deleted_id = notes.delete_note(db, current_user.id, note_id)
    return Envelope(message="Note deleted successfully", data=DeletedData(id=deleted_id))


@router.post(
    "/{note_id}/duplicate",
    response_model=Envelope[NoteData],
    status_code=status.HTTP_201_CREATED,
)
def duplicate_note(
    note_id: int,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NoteData]:
    note = notes.duplicate_note(db, current_user.id, note_id)
    return Envelope(
        message="Note duplicated successfully",
        data=NoteData(note=NoteRead.model_validate(note)),
    )
