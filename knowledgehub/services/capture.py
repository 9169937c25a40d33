"""Quick capture of external links as notes, and the static capture templates."""

import logging
from typing import TYPE_CHECKING

import httpx
from bs4 import BeautifulSoup
from sqlalchemy.orm import Session

from knowledgehub.models import Note
from knowledgehub.schemas.content import CaptureTemplate, QuickCaptureRequest
from knowledgehub.services.categories import ensure_category_allowed
from knowledgehub.services.tags import MAX_TAGS, normalize_tags

if TYPE_CHECKING:
    from knowledgehub.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Captured Article"
DEFAULT_CONTENT = "Content captured from external source."
CAPTURE_TAG = "quick-capture"

TEMPLATES: dict[str, CaptureTemplate] = {
    "tech-article": CaptureTemplate(
        title="[Tech] {title}",
        content=(
            "## Summary\n{summary}\n\n## Key Points\n- \n- \n- \n\n## My Notes\n{notes}\n\n"
            "## Action Items\n- [ ] \n- [ ] \n\n---\nSource: {url}"
        ),
        tags=["technology", "article"],
        category="learning",
    ),
    "research-paper": CaptureTemplate(
        title="[Research] {title}",
        content=(
            "## Abstract\n{abstract}\n\n## Key Findings\n{findings}\n\n## Methodology\n{methodology}\n\n"
            "## Relevance to My Work\n{relevance}\n\n## Follow-up Questions\n{questions}\n\n"
            "---\nSource: {url}\nAuthors: {authors}"
        ),
        tags=["research", "paper"],
        category="learning",
    ),
    "tool-review": CaptureTemplate(
        title="[Tool] {tool-name}",
        content=(
            "## Overview\n{overview}\n\n## Features\n{features}\n\n## Pros\n{pros}\n\n## Cons\n{cons}\n\n"
            "## Use Cases\n{use-cases}\n\n## My Rating\n{rating}/10\n\n---\nSource: {url}"
        ),
        tags=["tools", "review"],
        category="resources",
    ),
    "industry-news": CaptureTemplate(
        title="[News] {headline}",
        content=(
            "## Summary\n{summary}\n\n## Impact Analysis\n{impact}\n\n## My Thoughts\n{thoughts}\n\n"
            "## Related Trends\n{trends}\n\n---\nSource: {url}\nDate: {date}"
        ),
        tags=["news", "industry"],
        category="ideas",
    ),
}


def extract_page_metadata(html: str) -> tuple[str | None, str | None]:
    """Return (<title>, meta description or og:description) from an HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else None
    description = None
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        tag = soup.find("meta", attrs=attrs)
        if tag is not None and tag.get("content", "").strip():
            description = tag["content"].strip()
            break
    return title or None, description


async def fetch_page_metadata(url: str, settings: "Settings") -> tuple[str | None, str | None]:
    """Fetch a page and read its metadata; any failure yields (None, None)."""
    timeout = httpx.Timeout(settings.CAPTURE_TIMEOUT_SEC)
    headers = {"User-Agent": settings.CAPTURE_USER_AGENT}
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.info("Could not fetch URL metadata", extra={"capture_url": url, "reason": str(e)[:200]})
        return None, None
    return extract_page_metadata(response.text)


def capture_tags(tags: list[str]) -> list[str]:
    """User tags, trimmed to leave room, followed by the capture marker tag."""
    user_tags = [t for t in normalize_tags(tags) if t.casefold() != CAPTURE_TAG]
    return [*user_tags[: MAX_TAGS - 1], CAPTURE_TAG]


async def quick_capture(
    db: Session, user_id: int, body: QuickCaptureRequest, settings: "Settings"
) -> Note:
    """Store an external link as a note, filling missing title/content from the page itself."""
    ensure_category_allowed(db, user_id, body.category)
    url = str(body.url)
    title, content = body.title, body.content
    if not title or not content:
        page_title, page_description = await fetch_page_metadata(url, settings)
        title = title or page_title or DEFAULT_TITLE
        content = content or page_description or DEFAULT_CONTENT

    note = Note(
        user_id=user_id,
        title=title[:500],
        content=content,
        category=body.category,
        tags=capture_tags(body.tags),
        source_url=url,
        source_type="quick-capture",
        source_title="External Link",
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("Quick capture stored", extra={"user_id": user_id, "note_id": note.id})
    return note
