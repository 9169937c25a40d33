"""
Filtered listing: paginated reads over notes and workflows.

Filters form a closed set of small frozen dataclasses; each one contributes
exactly one SQL predicate. Sort keys are looked up in a per-target allow-list
so client input never reaches an identifier position. Every listing issues two
reads: the page itself and a COUNT over the identical predicate set.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from sqlalchemy import ColumnElement, case, exists, func, or_, select
from sqlalchemy.orm import Session

from knowledgehub.core.database import dialect_name
from knowledgehub.models import WORKFLOW_PRIORITIES, Note, Workflow
from knowledgehub.services.tags import parse_tag_query

DEFAULT_LIMIT = 50
MAX_LIMIT = 100

SortOrder = Literal["asc", "desc"]


def tags_overlap(column: Any, tags: Iterable[str], dialect: str) -> ColumnElement[bool]:
    """Predicate: the JSON tag array in `column` contains at least one of `tags`."""
    if dialect == "postgresql":
        elements = func.jsonb_array_elements_text(column).table_valued("value")
    else:
        elements = func.json_each(column).table_valued("value")
    return exists(select(1).select_from(elements).where(elements.c.value.in_(list(tags))))


@dataclass(frozen=True)
class ArchivedFilter:
    archived: bool

    def predicate(self, model: type, dialect: str) -> ColumnElement[bool]:
        return model.is_archived.is_(self.archived)


@dataclass(frozen=True)
class StatusFilter:
    status: str

    def predicate(self, model: type, dialect: str) -> ColumnElement[bool]:
        return model.status == self.status


@dataclass(frozen=True)
class PriorityFilter:
    priority: str

    def predicate(self, model: type, dialect: str) -> ColumnElement[bool]:
        return model.priority == self.priority


@dataclass(frozen=True)
class CategoryFilter:
    category: str

    def predicate(self, model: type, dialect: str) -> ColumnElement[bool]:
        return model.category == self.category


@dataclass(frozen=True)
class TagsFilter:
    """OR semantics: a row matches when it carries any of the requested tags."""

    tags: tuple[str, ...]

    def predicate(self, model: type, dialect: str) -> ColumnElement[bool]:
        return tags_overlap(model.tags, self.tags, dialect)


@dataclass(frozen=True)
class SearchFilter:
    """Case-insensitive substring match over the target's text columns; % and _ match literally."""

    term: str
    columns: tuple[str, ...] = ()

    def predicate(self, model: type, dialect: str) -> ColumnElement[bool]:
        return or_(
            *(getattr(model, name).icontains(self.term, autoescape=True) for name in self.columns)
        )


ListingFilter = (
    ArchivedFilter | StatusFilter | PriorityFilter | CategoryFilter | TagsFilter | SearchFilter
)

# Predicates are always appended in this order, whatever order filters arrive in.
FILTER_ORDER: tuple[type, ...] = (
    ArchivedFilter,
    StatusFilter,
    PriorityFilter,
    CategoryFilter,
    TagsFilter,
    SearchFilter,
)


@dataclass(frozen=True)
class ListingTarget:
    """What can be listed: the model, its searchable columns, accepted filters and sort keys."""

    model: type
    search_columns: tuple[str, ...]
    allowed_filters: frozenset[type]
    sort_keys: Mapping[str, Callable[[], Any]] = field(default_factory=dict)

    def sort_expression(self, sort: str) -> Any:
        try:
            return self.sort_keys[sort]()
        except KeyError:
            raise ValueError(f"Unsupported sort key for {self.model.__tablename__}: {sort!r}") from None


PRIORITY_RANK = {name: rank for rank, name in enumerate(WORKFLOW_PRIORITIES)}

NOTES = ListingTarget(
    model=Note,
    search_columns=("title", "content"),
    allowed_filters=frozenset({ArchivedFilter, CategoryFilter, TagsFilter, SearchFilter}),
    sort_keys={
        "created_at": lambda: Note.created_at,
        "updated_at": lambda: Note.updated_at,
        "title": lambda: Note.title,
    },
)

WORKFLOWS = ListingTarget(
    model=Workflow,
    search_columns=("title", "description"),
    allowed_filters=frozenset(
        {StatusFilter, PriorityFilter, CategoryFilter, TagsFilter, SearchFilter}
    ),
    sort_keys={
        "created_at": lambda: Workflow.created_at,
        "updated_at": lambda: Workflow.updated_at,
        "title": lambda: Workflow.title,
        "due_date": lambda: Workflow.due_date,
        "status": lambda: Workflow.status,
        # low < medium < high < urgent, not alphabetical
        "priority": lambda: case(PRIORITY_RANK, value=Workflow.priority, else_=-1),
    },
)


@dataclass
class Page:
    """One page of rows plus pagination metadata."""

    rows: list[Any]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


def build_filters(
    *,
    archived: bool | None = None,
    status: str | None = None,
    priority: str | None = None,
    category: str | None = None,
    tags: str | None = None,
    search: str | None = None,
) -> list[ListingFilter]:
    """Turn validated query parameters into filter values; unset parameters add nothing."""
    filters: list[ListingFilter] = []
    if archived is not None:
        filters.append(ArchivedFilter(archived))
    if status:
        filters.append(StatusFilter(status))
    if priority:
        filters.append(PriorityFilter(priority))
    if category:
        filters.append(CategoryFilter(category))
    tag_list = parse_tag_query(tags)
    if tag_list:
        filters.append(TagsFilter(tuple(tag_list)))
    if search:
        filters.append(SearchFilter(search))
    return filters


def build_predicates(
    target: ListingTarget,
    filters: Iterable[ListingFilter],
    dialect: str,
    scope_user_id: int | None = None,
) -> list[ColumnElement[bool]]:
    """
    Scope predicate first (when scoped), then one predicate per filter in FILTER_ORDER.

    scope_user_id=None means a shared listing across all owners.
    """
    model = target.model
    predicates: list[ColumnElement[bool]] = []
    if scope_user_id is not None:
        predicates.append(model.user_id == scope_user_id)

    ordered = sorted(filters, key=lambda f: FILTER_ORDER.index(type(f)))
    for f in ordered:
        if type(f) not in target.allowed_filters:
            raise ValueError(f"{type(f).__name__} does not apply to {model.__tablename__}")
        if isinstance(f, SearchFilter) and not f.columns:
            f = SearchFilter(f.term, target.search_columns)
        predicates.append(f.predicate(model, dialect))
    return predicates


def run_listing(
    db: Session,
    target: ListingTarget,
    filters: Iterable[ListingFilter],
    *,
    scope_user_id: int | None,
    sort: str = "updated_at",
    order: SortOrder = "desc",
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> Page:
    """
    Return one page of `target` rows matching all filters, and the total match count.

    Rows with equal sort values keep storage order; no secondary key is added.
    """
    if not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_LIMIT}")
    if offset < 0:
        raise ValueError("offset must be >= 0")

    predicates = build_predicates(target, filters, dialect_name(db), scope_user_id)
    sort_expr = target.sort_expression(sort)
    sort_expr = sort_expr.asc() if order == "asc" else sort_expr.desc()

    model = target.model
    rows = (
        db.query(model)
        .filter(*predicates)
        .order_by(sort_expr)
        .limit(limit)
        .offset(offset)
        .all()
    )
    total = db.query(func.count(model.id)).filter(*predicates).scalar() or 0
    return Page(rows=rows, total=int(total), limit=limit, offset=offset)
