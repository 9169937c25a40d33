"""Tag normalization shared by notes and workflows."""

from collections.abc import Iterable

MAX_TAGS = 20
MAX_TAG_LENGTH = 50


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """
    Trim each tag, drop empty ones and remove duplicates, keeping at most MAX_TAGS.

    Duplicates are detected case-insensitively; the first spelling wins, so
    ["A", " a ", "a"] becomes ["A"]. Order of first occurrence is preserved.
    Raises ValueError for a tag longer than MAX_TAG_LENGTH after trimming.
    """
    if not tags:
        return []
    seen: set[str] = set()
    result: list[str] = []
    for raw in tags:
        tag = raw.strip()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"each tag must be at most {MAX_TAG_LENGTH} characters")
        key = tag.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(tag)
    return result[:MAX_TAGS]


def parse_tag_query(value: str | None) -> list[str]:
    """Split a comma-separated ?tags= value into trimmed, non-empty tags."""
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def slugify_tag(name: str) -> str:
    """Lower-case a name and join whitespace runs with '-' (used for RSS source tags)."""
    return "-".join(name.lower().split())[:MAX_TAG_LENGTH]
