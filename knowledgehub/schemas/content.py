"""Pydantic schemas for RSS sources, feed imports, quick capture and capture templates."""

from datetime import datetime

from pydantic import BaseModel, Field, HttpUrl, field_validator

from knowledgehub.schemas.note import CATEGORY_PATTERN
from knowledgehub.services.tags import normalize_tags


class RssSourceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    url: HttpUrl
    category: str = Field(..., min_length=1, max_length=50, pattern=CATEGORY_PATTERN)


class RssSourceRead(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    user_id: int
    name: str
    url: str
    category: str
    is_active: bool
    last_fetched: datetime | None = None
    created_at: datetime


class RssSourceData(BaseModel):
    source: RssSourceRead


class RssSourcesData(BaseModel):
    sources: list[RssSourceRead]


class RssImportResult(BaseModel):
    """Outcome of one fetch-and-import pass: new notes created and feed items examined."""

    imported: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class QuickCaptureRequest(BaseModel):
    """Capture an external link as a note; missing title/content are read from the page."""

    url: HttpUrl
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, max_length=10000)
    category: str = Field(..., min_length=1, max_length=50, pattern=CATEGORY_PATTERN)
    tags: list[str] = Field(default_factory=list, max_length=100)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class CaptureTemplate(BaseModel):
    title: str
    content: str
    tags: list[str]
    category: str


class TemplatesData(BaseModel):
    templates: dict[str, CaptureTemplate]
