"""Note reads and mutations: listing, create, partial update, delete, duplicate, statistics."""

import logging
from collections import Counter

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from knowledgehub.core.errors import NotFound, ValidationFailed
from knowledgehub.models import PREDEFINED_CATEGORIES, Note
from knowledgehub.models.base import utcnow
from knowledgehub.schemas.note import (
    NoteCreate,
    NoteStats,
    NoteStatsData,
    NotesQuery,
    NoteUpdate,
    TagCount,
)
from knowledgehub.services.categories import ensure_category_allowed
from knowledgehub.services.listing import NOTES, Page, build_filters, run_listing

logger = logging.getLogger(__name__)

TOP_TAGS_LIMIT = 50


def list_notes(db: Session, query: NotesQuery, scope_user_id: int | None) -> Page:
    """Page of notes; scope_user_id=None lists the shared knowledge base across all users."""
    filters = build_filters(
        archived=query.archived,
        category=query.category,
        tags=query.tags,
        search=query.search,
    )
    return run_listing(
        db,
        NOTES,
        filters,
        scope_user_id=scope_user_id,
        sort=query.sort,
        order=query.order,
        limit=query.limit,
        offset=query.offset,
    )


def get_note(db: Session, user_id: int, note_id: int) -> Note:
    note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()
    if note is None:
        raise NotFound("Note not found")
    return note


def create_note(db: Session, user_id: int, body: NoteCreate) -> Note:
    ensure_category_allowed(db, user_id, body.category)
    note = Note(
        user_id=user_id,
        title=body.title,
        content=body.content,
        category=body.category,
        tags=body.tags,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def update_note(db: Session, user_id: int, note_id: int, body: NoteUpdate) -> Note:
    """Write exactly the fields present in the request plus updated_at."""
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailed("Empty update: at least one field must be provided")
    for key in ("title", "content", "category", "tags", "is_archived"):
        if key in changes and changes[key] is None:
            raise ValidationFailed(f'"{key}" must not be null')
    note = get_note(db, user_id, note_id)
    if "category" in changes:
        ensure_category_allowed(db, user_id, changes["category"])
    changes["updated_at"] = utcnow()
    db.query(Note).filter(Note.id == note.id, Note.user_id == user_id).update(
        changes, synchronize_session="fetch"
    )
    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, user_id: int, note_id: int) -> int:
    deleted = (
        db.query(Note)
        .filter(Note.id == note_id, Note.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        raise NotFound("Note not found")
    db.commit()
    return note_id


def duplicate_note(db: Session, user_id: int, note_id: int) -> Note:
    original = get_note(db, user_id, note_id)
    copy = Note(
        user_id=user_id,
        title=f"{original.title} (Copy)"[:500],
        content=original.content,
        category=original.category,
        tags=list(original.tags or []),
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def note_stats(db: Session, user_id: int) -> NoteStatsData:
    """Per-category counts and the most used tags over the user's non-archived notes."""
    scope = (Note.user_id == user_id, Note.is_archived.is_(False))
    columns = [func.count(Note.id), func.max(Note.updated_at)]
    columns += [func.sum(case((Note.category == c, 1), else_=0)) for c in PREDEFINED_CATEGORIES]
    row = db.query(*columns).filter(*scope).one()
    total, last_update, *per_category = row

    # Tags live in a JSON array; count them here so SQLite and Postgres agree.
    counter: Counter[str] = Counter()
    for (tags,) in db.query(Note.tags).filter(*scope):
        counter.update(tags or [])
    top = sorted(counter.items(), key=lambda item: (-item[1], item[0]))[:TOP_TAGS_LIMIT]

    counts = dict(zip(PREDEFINED_CATEGORIES, (int(n or 0) for n in per_category)))
    return NoteStatsData(
        stats=NoteStats(
            total_notes=int(total or 0),
            ideas_count=counts["ideas"],
            projects_count=counts["projects"],
            learning_count=counts["learning"],
            resources_count=counts["resources"],
            unique_tags_count=len(counter),
            last_note_update=last_update,
        ),
        tags=[TagCount(tag=tag, count=count) for tag, count in top],
    )
