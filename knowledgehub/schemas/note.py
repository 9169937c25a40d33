"""Pydantic schemas for notes, note listings, statistics and custom categories."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from knowledgehub.schemas.common import Pagination
from knowledgehub.services.tags import normalize_tags

CATEGORY_PATTERN = r"^[a-z0-9-]+$"


class NoteCreate(BaseModel):
    """New note. category must be predefined or one of the caller's custom categories."""

    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1, max_length=50000)
    category: str = Field(..., min_length=1, max_length=50)
    tags: list[str] = Field(default_factory=list, max_length=100)

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class NoteUpdate(BaseModel):
    """Partial update; only fields present in the request body are written."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    content: str | None = Field(default=None, min_length=1, max_length=50000)
    category: str | None = Field(default=None, min_length=1, max_length=50)
    tags: list[str] | None = Field(default=None, max_length=100)
    is_archived: bool | None = None

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else normalize_tags(v)


class NoteRead(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    user_id: int
    title: str
    content: str
    category: str
    tags: list[str]
    source_url: str | None = None
    source_type: str | None = None
    source_title: str | None = None
    is_archived: bool
    created_at: datetime
    updated_at: datetime


class NotesQuery(BaseModel):
    """Query string for note listings. Unknown parameters are rejected."""

    model_config = {"extra": "forbid"}

    category: str | None = Field(default=None, max_length=50, pattern=CATEGORY_PATTERN)
    tags: str | None = Field(default=None, max_length=1100, description="Comma-separated tags")
    search: str | None = Field(default=None, max_length=100)
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    sort: Literal["created_at", "updated_at", "title"] = "updated_at"
    order: Literal["asc", "desc"] = "desc"
    archived: bool = False


class NoteData(BaseModel):
    note: NoteRead


class NotesListData(BaseModel):
    notes: list[NoteRead]
    pagination: Pagination


class TagCount(BaseModel):
    tag: str
    count: int


class NoteStats(BaseModel):
    total_notes: int
    ideas_count: int
    projects_count: int
    learning_count: int
    resources_count: int
    unique_tags_count: int
    last_note_update: datetime | None = None


class NoteStatsData(BaseModel):
    stats: NoteStats
    tags: list[TagCount]


class CategoryCreate(BaseModel):
    model_config = {"populate_by_name": True}

    name: str = Field(..., min_length=1, max_length=50, pattern=CATEGORY_PATTERN)
    display_name: str = Field(..., min_length=1, max_length=100, alias="displayName")
    description: str | None = Field(default=None, max_length=255)


class CategoryUpdate(BaseModel):
    model_config = {"populate_by_name": True}

    display_name: str = Field(..., min_length=1, max_length=100, alias="displayName")
    description: str | None = Field(default=None, max_length=255)


class CategoryRead(BaseModel):
    model_config = {"from_attributes": True, "populate_by_name": True}

    name: str
    display_name: str = Field(..., alias="displayName")
    description: str | None = None


class CategoryData(BaseModel):
    category: CategoryRead


class CategoriesData(BaseModel):
    """All category names usable by the caller, and where each one comes from."""

    model_config = {"populate_by_name": True}

    categories: list[str]
    predefined: list[str]
    custom: list[CategoryRead]
    from_notes: list[str] = Field(..., alias="fromNotes")


class BulkCategoryUpdate(BaseModel):
    model_config = {"populate_by_name": True}

    note_ids: list[int] = Field(..., min_length=1, max_length=500, alias="noteIds")
    new_category: str = Field(..., min_length=1, max_length=50, alias="newCategory")


class BulkCategoryResult(BaseModel):
    model_config = {"populate_by_name": True}

    updated_count: int = Field(..., alias="updatedCount")

