"""Content intake endpoints: RSS sources and imports, quick capture, categories and templates."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from knowledgehub.api.v1.auth import get_current_user, require_note_creation
from knowledgehub.core.config import get_settings
from knowledgehub.core.database import get_db
from knowledgehub.schemas.auth import CurrentUser
from knowledgehub.schemas.common import DeletedData, Envelope
from knowledgehub.schemas.content import (
    QuickCaptureRequest,
    RssImportResult,
    RssSourceCreate,
    RssSourceData,
    RssSourceRead,
    RssSourcesData,
    TemplatesData,
)
from knowledgehub.schemas.note import (
    BulkCategoryResult,
    BulkCategoryUpdate,
    CategoriesData,
    CategoryCreate,
    CategoryData,
    CategoryRead,
    CategoryUpdate,
    NoteData,
    NoteRead,
)
from knowledgehub.services import capture, categories, rss

router = APIRouter()


@router.get("/rss-sources", response_model=Envelope[RssSourcesData])
def list_rss_sources(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[RssSourcesData]:
    sources = rss.list_sources(db, current_user.id)
    return Envelope(data=RssSourcesData(sources=[RssSourceRead.model_validate(s) for s in sources]))


@router.post(
    "/rss-sources",
    response_model=Envelope[RssSourceData],
    status_code=status.HTTP_201_CREATED,
)
async def add_rss_source(
    body: RssSourceCreate,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[RssSourceData]:
    """Register a feed. The URL is fetched once; an unreadable feed is rejected with 400."""
    source = await rss.add_source(db, current_user.id, body, get_settings())
    return Envelope(
        message="RSS source added successfully",
        data=RssSourceData(source=RssSourceRead.model_validate(source)),
    )


@router.delete("/rss-sources/{source_id}", response_model=Envelope[DeletedData])
def delete_rss_source(
    source_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[DeletedData]:
    deleted_id = rss.delete_source(db, current_user.id, source_id)
    return Envelope(message="RSS source deleted successfully", data=DeletedData(id=deleted_id))


@router.post("/fetch-rss/{source_id}", response_model=Envelope[RssImportResult])
async def fetch_rss(
    source_id: int,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
    limit: Annotated[int, Query(ge=1)] = rss.DEFAULT_IMPORT_LIMIT,
) -> Envelope[RssImportResult]:
    """
    Fetch an active source and import its items as notes.

    At most min(limit, 50) items are examined; items whose link is already
    stored for the caller are skipped. A failed fetch returns 502.
    """
    result = await rss.fetch_and_import(db, current_user.id, source_id, limit, get_settings())
    return Envelope(
        message=f"Imported {result.imported} new articles from RSS feed",
        data=result,
    )


@router.post(
    "/quick-capture",
    response_model=Envelope[NoteData],
    status_code=status.HTTP_201_CREATED,
)
async def quick_capture(
    body: QuickCaptureRequest,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[NoteData]:
    note = await capture.quick_capture(db, current_user.id, body, get_settings())
    return Envelope(
        message="Content captured successfully",
        data=NoteData(note=NoteRead.model_validate(note)),
    )


@router.get("/categories", response_model=Envelope[CategoriesData])
def list_categories(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[CategoriesData]:
    return Envelope(data=categories.list_categories(db, current_user.id))


@router.post(
    "/categories",
    response_model=Envelope[CategoryData],
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    body: CategoryCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[CategoryData]:
    category = categories.create_category(db, current_user.id, body)
    return Envelope(
        message="Category created successfully",
        data=CategoryData(category=CategoryRead.model_validate(category)),
    )


@router.put("/categories/bulk-update", response_model=Envelope[BulkCategoryResult])
def bulk_update_category(
    body: BulkCategoryUpdate,
    current_user: Annotated[CurrentUser, Depends(require_note_creation)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[BulkCategoryResult]:
    """Move several of the caller's notes to one category in a single transaction."""
    updated = categories.bulk_update_category(db, current_user.id, body)
    return Envelope(
        message=f"Updated {updated} notes",
        data=BulkCategoryResult(updated_count=updated),
    )


@router.put("/categories/{name}", response_model=Envelope[CategoryData])
def update_category(
    name: str,
    body: CategoryUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[CategoryData]:
    category = categories.update_category(db, current_user.id, name, body)
    return Envelope(
        message="Category updated successfully",
        data=CategoryData(category=CategoryRead.model_validate(category)),
    )


@router.delete("/categories/{name}", response_model=Envelope[None])
def delete_category(
    name: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[None]:
    categories.delete_category(db, current_user.id, name)
    return Envelope(message="Category deleted successfully")


@router.get("/templates", response_model=Envelope[TemplatesData])
def list_templates(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Envelope[TemplatesData]:
    """Static capture templates keyed by name."""
    return Envelope(data=TemplatesData(templates=capture.TEMPLATES))
