"""RSS sources and feed import: fetch a feed over HTTP, turn new items into notes."""

import logging
import time
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import feedparser
import httpx
from bs4 import BeautifulSoup
from sqlalchemy.orm import Session

from knowledgehub.core.errors import NotFound, UpstreamError, ValidationFailed
from knowledgehub.models import Note, RssSource
from knowledgehub.models.base import utcnow
from knowledgehub.schemas.content import RssImportResult, RssSourceCreate
from knowledgehub.services.categories import ensure_category_allowed
from knowledgehub.services.tags import normalize_tags, slugify_tag

if TYPE_CHECKING:
    from knowledgehub.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_IMPORT_LIMIT = 10
MAX_IMPORT_ITEMS = 50
UNTITLED = "Untitled Article"
NO_CONTENT = "No content available"


async def fetch_feed(url: str, settings: "Settings") -> list[Mapping[str, Any]]:
    """
    Download and parse a feed; return its entries.

    Raises UpstreamError when the feed is unreachable, times out, answers with
    an error status, or is not a parseable feed.
    """
    timeout = httpx.Timeout(settings.RSS_TIMEOUT_SEC)
    headers = {"User-Agent": settings.RSS_USER_AGENT}
    start = time.perf_counter()
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url, headers=headers)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        raise UpstreamError("RSS feed request timed out") from e
    except httpx.HTTPError as e:
        raise UpstreamError("RSS feed is not accessible") from e
    finally:
        logger.debug(
            "RSS feed request finished",
            extra={"feed_url": url, "latency_seconds": time.perf_counter() - start},
        )

    parsed = feedparser.parse(response.content)
    if parsed.bozo and not parsed.entries:
        raise UpstreamError("Response is not a valid RSS or Atom feed")
    return list(parsed.entries)


def _text_snippet(entry: Mapping[str, Any]) -> str:
    """Plain-text body of a feed item: summary, else first content block, HTML stripped."""
    html = entry.get("summary") or ""
    if not html and entry.get("content"):
        html = entry["content"][0].get("value", "")
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


def entry_to_note_fields(entry: Mapping[str, Any], source: RssSource) -> dict[str, Any]:
    """Column values for the note created from one feed item."""
    title = (entry.get("title") or "").strip() or UNTITLED
    link = (entry.get("link") or "").strip() or None
    snippet = _text_snippet(entry) or NO_CONTENT
    return {
        "title": title[:500],
        "content": f"{snippet}\n\n---\nSource: {link or source.url}",
        "category": source.category,
        "tags": normalize_tags(["rss-import", slugify_tag(source.name)]),
        "source_url": link,
        "source_type": "rss",
        "source_title": source.name,
    }


def import_entries(
    db: Session, user_id: int, source: RssSource, entries: Iterable[Mapping[str, Any]], limit: int
) -> RssImportResult:
    """
    Create notes for up to min(limit, 50) entries, skipping links the user already has.

    Entries without a link cannot be de-duplicated and are skipped. The source's
    last_fetched is stamped even when nothing new was imported. All writes
    share one transaction.
    """
    batch = list(entries)[: min(limit, MAX_IMPORT_ITEMS)]
    candidates = [entry_to_note_fields(entry, source) for entry in batch]
    links = [c["source_url"] for c in candidates if c["source_url"]]
    seen: set[str] = set()
    if links:
        rows = (
            db.query(Note.source_url)
            .filter(Note.user_id == user_id, Note.source_url.in_(links))
            .all()
        )
        seen.update(url for (url,) in rows)

    imported = 0
    try:
        for fields in candidates:
            link = fields["source_url"]
            if link is None or link in seen:
                continue
            db.add(Note(user_id=user_id, **fields))
            seen.add(link)
            imported += 1
        source.last_fetched = utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return RssImportResult(imported=imported, total=len(batch))


def get_source(db: Session, user_id: int, source_id: int, active_only: bool = False) -> RssSource:
    q = db.query(RssSource).filter(RssSource.id == source_id, RssSource.user_id == user_id)
    if active_only:
        q = q.filter(RssSource.is_active.is_(True))
    source = q.first()
    if source is None:
        raise NotFound("RSS source not found")
    return source


def list_sources(db: Session, user_id: int) -> list[RssSource]:
    return (
        db.query(RssSource)
        .filter(RssSource.user_id == user_id)
        .order_by(RssSource.created_at.desc(), RssSource.id.desc())
        .all()
    )


async def add_source(
    db: Session, user_id: int, body: RssSourceCreate, settings: "Settings"
) -> RssSource:
    """Register a feed after checking that it can be fetched and parsed."""
    ensure_category_allowed(db, user_id, body.category)
    url = str(body.url)
    try:
        await fetch_feed(url, settings)
    except UpstreamError as e:
        raise ValidationFailed("Invalid RSS feed URL or feed is not accessible") from e
    source = RssSource(user_id=user_id, name=body.name, url=url, category=body.category)
    db.add(source)
    db.commit()
    db.refresh(source)
    return source


def delete_source(db: Session, user_id: int, source_id: int) -> int:
    deleted = (
        db.query(RssSource)
        .filter(RssSource.id == source_id, RssSource.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        raise NotFound("RSS source not found")
    db.commit()
    return source_id


async def fetch_and_import(
    db: Session, user_id: int, source_id: int, limit: int, settings: "Settings"
) -> RssImportResult:
    """Fetch an active source's feed and import its new items as notes."""
    source = get_source(db, user_id, source_id, active_only=True)
    entries = await fetch_feed(source.url, settings)
    result = import_entries(db, user_id, source, entries, limit)
    logger.info(
        "RSS import completed",
        extra={
            "user_id": user_id,
            "source_id": source_id,
            "imported": result.imported,
            "total": result.total,
        },
    )
    return result
