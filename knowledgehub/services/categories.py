"""Predefined and per-user custom note categories."""

import logging

from sqlalchemy.orm import Session

from knowledgehub.core.errors import Conflict, NotFound, ValidationFailed
from knowledgehub.models import PREDEFINED_CATEGORIES, Note, UserCategory
from knowledgehub.models.base import utcnow
from knowledgehub.schemas.note import (
    BulkCategoryUpdate,
    CategoriesData,
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
)

logger = logging.getLogger(__name__)


def custom_category_names(db: Session, user_id: int) -> list[str]:
    rows = (
        db.query(UserCategory.name)
        .filter(UserCategory.user_id == user_id, UserCategory.is_active.is_(True))
        .order_by(UserCategory.name)
        .all()
    )
    return [name for (name,) in rows]


def allowed_categories(db: Session, user_id: int) -> list[str]:
    """Categories a user's notes may use: predefined first, then active custom ones."""
    return list(PREDEFINED_CATEGORIES) + [
        c for c in custom_category_names(db, user_id) if c not in PREDEFINED_CATEGORIES
    ]


def ensure_category_allowed(db: Session, user_id: int, category: str) -> None:
    allowed = allowed_categories(db, user_id)
    if category not in allowed:
        raise ValidationFailed(f'"category" must be one of [{", ".join(allowed)}]')


def list_categories(db: Session, user_id: int) -> CategoriesData:
    """Union of predefined, custom and in-use categories, with each source listed separately."""
    note_rows = (
        db.query(Note.category)
        .filter(Note.user_id == user_id)
        .distinct()
        .order_by(Note.category)
        .all()
    )
    note_categories = [c for (c,) in note_rows]
    custom = (
        db.query(UserCategory)
        .filter(UserCategory.user_id == user_id, UserCategory.is_active.is_(True))
        .order_by(UserCategory.name)
        .all()
    )
    names: list[str] = []
    for name in [*PREDEFINED_CATEGORIES, *note_categories, *(c.name for c in custom)]:
        if name not in names:
            names.append(name)
    return CategoriesData(
        categories=names,
        predefined=list(PREDEFINED_CATEGORIES),
        custom=[CategoryRead.model_validate(c) for c in custom],
        from_notes=[c for c in note_categories if c not in PREDEFINED_CATEGORIES],
    )


def create_category(db: Session, user_id: int, body: CategoryCreate) -> UserCategory:
    if body.name in PREDEFINED_CATEGORIES:
        raise Conflict("Category already exists")
    existing = (
        db.query(UserCategory.id)
        .filter(UserCategory.user_id == user_id, UserCategory.name == body.name)
        .first()
    )
    if existing is not None:
        raise Conflict("Category already exists")
    category = UserCategory(
        user_id=user_id,
        name=body.name,
        display_name=body.display_name,
        description=body.description,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, user_id: int, name: str, body: CategoryUpdate) -> UserCategory:
    category = (
        db.query(UserCategory)
        .filter(UserCategory.user_id == user_id, UserCategory.name == name)
        .first()
    )
    if category is None:
        raise NotFound("Category not found")
    category.display_name = body.display_name
    category.description = body.description or None
    category.updated_at = utcnow()
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, user_id: int, name: str) -> None:
    """Delete a custom category that no note uses. Predefined categories cannot be deleted."""
    if name in PREDEFINED_CATEGORIES:
        raise ValidationFailed("Cannot delete predefined categories")
    in_use = db.query(Note.id).filter(Note.user_id == user_id, Note.category == name).count()
    if in_use > 0:
        raise ValidationFailed(
            f"Cannot delete category. {in_use} notes are using this category. "
            "Please move or delete those notes first."
        )
    deleted = (
        db.query(UserCategory)
        .filter(UserCategory.user_id == user_id, UserCategory.name == name)
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        db.rollback()
        raise NotFound("Category not found")
    db.commit()


def bulk_update_category(db: Session, user_id: int, body: BulkCategoryUpdate) -> int:
    """Move the caller's listed notes to one category in a single transaction; returns rows changed."""
    ensure_category_allowed(db, user_id, body.new_category)
    try:
        updated = (
            db.query(Note)
            .filter(Note.id.in_(body.note_ids), Note.user_id == user_id)
            .update(
                {"category": body.new_category, "updated_at": utcnow()},
                synchronize_session=False,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Bulk category update",
        extra={"user_id": user_id, "category": body.new_category, "updated_count": updated},
    )
    return updated
