"""Listing engine tests against an in-memory SQLite database."""

import itertools
import unittest
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import sessionmaker

from knowledgehub.models import Note, Workflow
from knowledgehub.services.listing import (
    NOTES,
    WORKFLOWS,
    CategoryFilter,
    PriorityFilter,
    SearchFilter,
    StatusFilter,
    TagsFilter,
    build_filters,
    build_predicates,
    run_listing,
)
from support import create_test_engine, make_user

NOTE_FIXTURE = [
    ("Python tips", "Use generators", "learning", ["python", "tips"], False),
    ("Web ideas", "A 100% new idea", "ideas", ["web"], False),
    ("Side project", "Build a CLI", "projects", ["python", "cli"], False),
    ("Reading list", "Books about_design", "resources", [], False),
    ("Old idea", "Archived thought", "ideas", ["web", "python"], True),
    ("Another idea", "snake_case naming", "ideas", ["Python"], False),
]


def matches(note: dict, category, tags, search, archived) -> bool:
    if note["is_archived"] != archived:
        return False
    if category and note["category"] != category:
        return False
    if tags and not set(tags) & set(note["tags"]):
        return False
    if search:
        needle = search.lower()
        if needle not in note["title"].lower() and needle not in note["content"].lower():
            return False
    return True


class ListingTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_test_engine()
        self.db = sessionmaker(bind=self.engine)()
        self.owner = make_user(self.db, "owner@example.com")
        self.other = make_user(self.db, "other@example.com")

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()


class TestNoteListingTotals(ListingTestCase):
    """Total from the COUNT query equals an in-memory evaluation of the same predicates."""

    def setUp(self) -> None:
        super().setUp()
        base = datetime(2024, 1, 1, tzinfo=UTC)
        self.rows = []
        for i, (title, content, category, tags, archived) in enumerate(NOTE_FIXTURE):
            row = {
                "title": title,
                "content": content,
                "category": category,
                "tags": tags,
                "is_archived": archived,
            }
            self.rows.append(row)
            self.db.add(
                Note(
                    user_id=self.owner.id,
                    created_at=base + timedelta(days=i),
                    updated_at=base + timedelta(days=i),
                    **row,
                )
            )
        self.db.add(Note(user_id=self.other.id, title="Foreign", content="x", category="ideas", tags=["web"]))
        self.db.commit()

    def test_totals_match_in_memory_evaluation(self) -> None:
        categories = [None, "ideas", "learning"]
        tag_sets = [None, "python", "web,cli"]
        searches = [None, "idea", "100%", "_"]
        for category, tags, search, archived in itertools.product(
            categories, tag_sets, searches, [False, True]
        ):
            with self.subTest(category=category, tags=tags, search=search, archived=archived):
                filters = build_filters(archived=archived, category=category, tags=tags, search=search)
                page = run_listing(
                    self.db, NOTES, filters, scope_user_id=self.owner.id, limit=100
                )
                tag_list = tags.split(",") if tags else None
                expected = [r for r in self.rows if matches(r, category, tag_list, search, archived)]
                self.assertEqual(page.total, len(expected))
                self.assertEqual(len(page.rows), len(expected))

    def test_tags_match_exact_case(self) -> None:
        filters = build_filters(archived=False, tags="Python")
        page = run_listing(self.db, NOTES, filters, scope_user_id=self.owner.id)
        self.assertEqual([n.title for n in page.rows], ["Another idea"])

    def test_wildcards_in_search_are_literal(self) -> None:
        filters = build_filters(archived=False, search="%")
        page = run_listing(self.db, NOTES, filters, scope_user_id=self.owner.id)
        self.assertEqual([n.title for n in page.rows], ["Web ideas"])

    def test_pagination_metadata(self) -> None:
        filters = build_filters(archived=False, category="ideas")
        page = run_listing(self.db, NOTES, filters, scope_user_id=self.owner.id, limit=1)
        self.assertEqual(page.total, 2)
        self.assertEqual(len(page.rows), 1)
        self.assertTrue(page.has_more)
        last = run_listing(self.db, NOTES, filters, scope_user_id=self.owner.id, limit=1, offset=1)
        self.assertFalse(last.has_more)

    def test_shared_scope_includes_every_owner(self) -> None:
        filters = build_filters(archived=False, category="ideas")
        page = run_listing(self.db, NOTES, filters, scope_user_id=None)
        self.assertEqual(page.total, 3)

    def test_sort_by_title_ascending(self) -> None:
        filters = build_filters(archived=False)
        page = run_listing(
            self.db, NOTES, filters, scope_user_id=self.owner.id, sort="title", order="asc"
        )
        titles = [n.title for n in page.rows]
        self.assertEqual(titles, sorted(titles))

    def test_default_sort_is_newest_update_first(self) -> None:
        page = run_listing(self.db, NOTES, build_filters(archived=False), scope_user_id=self.owner.id)
        self.assertEqual(page.rows[0].title, "Another idea")

    def test_rejects_out_of_range_limit_and_unknown_sort(self) -> None:
        with self.assertRaises(ValueError):
            run_listing(self.db, NOTES, [], scope_user_id=self.owner.id, limit=101)
        with self.assertRaises(ValueError):
            run_listing(self.db, NOTES, [], scope_user_id=self.owner.id, offset=-1)
        with self.assertRaises(ValueError):
            run_listing(self.db, NOTES, [], scope_user_id=self.owner.id, sort="password_hash")


class TestPredicateOrder(ListingTestCase):
    def test_filters_are_applied_in_fixed_order(self) -> None:
        filters = [
            SearchFilter("x"),
            TagsFilter(("a",)),
            CategoryFilter("general"),
            PriorityFilter("high"),
            StatusFilter("active"),
        ]
        predicates = build_predicates(WORKFLOWS, filters, "sqlite", scope_user_id=self.owner.id)
        rendered = [str(p) for p in predicates]
        self.assertIn("user_id", rendered[0])
        self.assertIn("status", rendered[1])
        self.assertIn("priority", rendered[2])
        self.assertIn("category", rendered[3])
        self.assertIn("json_each", rendered[4])
        self.assertIn("LIKE", rendered[5].upper())

    def test_workflow_only_filter_rejected_for_notes(self) -> None:
        with self.assertRaises(ValueError):
            build_predicates(NOTES, [StatusFilter("active")], "sqlite")

    def test_postgres_tag_overlap_uses_jsonb_elements(self) -> None:
        (predicate,) = build_predicates(NOTES, [TagsFilter(("a",))], "postgresql")
        self.assertIn("jsonb_array_elements_text", str(predicate))


class TestWorkflowListing(ListingTestCase):
    def setUp(self) -> None:
        super().setUp()
        for title, priority, status in [
            ("Launch", "urgent", "active"),
            ("Cleanup", "low", "draft"),
            ("Review", "high", "active"),
            ("Retro", "medium", "completed"),
        ]:
            self.db.add(Workflow(user_id=self.owner.id, title=title, priority=priority, status=status, tags=[]))
        self.db.commit()

    def test_priority_sorts_by_rank_not_alphabet(self) -> None:
        page = run_listing(
            self.db, WORKFLOWS, [], scope_user_id=self.owner.id, sort="priority", order="desc"
        )
        self.assertEqual([w.priority for w in page.rows], ["urgent", "high", "medium", "low"])

    def test_status_and_priority_filters(self) -> None:
        filters = build_filters(status="active", priority="high")
        page = run_listing(self.db, WORKFLOWS, filters, scope_user_id=self.owner.id)
        self.assertEqual([w.title for w in page.rows], ["Review"])
        self.assertEqual(page.total, 1)
