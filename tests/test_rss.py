"""Tests for RSS feed fetching, item mapping and idempotent import."""

import asyncio
import unittest
from unittest.mock import MagicMock, patch

import httpx
from sqlalchemy.orm import sessionmaker

from knowledgehub.core.errors import UpstreamError
from knowledgehub.models import Note, RssSource
from knowledgehub.services.rss import entry_to_note_fields, fetch_feed, import_entries
from support import create_test_engine, make_user

FEED_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Example</title>
<item><title>First post</title><link>https://example.com/1</link>
<description>&lt;p&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;</description></item>
<item><title>Second post</title><link>https://example.com/2</link>
<description>More text</description></item>
</channel></rss>"""


def fetch_settings() -> MagicMock:
    settings = MagicMock()
    settings.RSS_TIMEOUT_SEC = 1.0
    settings.RSS_USER_AGENT = "test-agent"
    return settings


def client_with(handler):
    """Patch httpx.AsyncClient so requests go to `handler` instead of the network."""
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    return patch("httpx.AsyncClient", side_effect=factory)


class TestFetchFeed(unittest.TestCase):
    def test_parses_entries_and_sends_user_agent(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["agent"] = request.headers["user-agent"]
            return httpx.Response(200, content=FEED_XML)

        with client_with(handler):
            entries = asyncio.run(fetch_feed("https://example.com/feed", fetch_settings()))
        self.assertEqual([e["title"] for e in entries], ["First post", "Second post"])
        self.assertEqual(seen["agent"], "test-agent")

    def test_timeout_becomes_upstream_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with client_with(handler):
            with self.assertRaises(UpstreamError) as ctx:
                asyncio.run(fetch_feed("https://example.com/feed", fetch_settings()))
        self.assertEqual(ctx.exception.message, "RSS feed request timed out")
        self.assertEqual(ctx.exception.status_code, 502)

    def test_error_status_becomes_upstream_error(self) -> None:
        with client_with(lambda request: httpx.Response(404)):
            with self.assertRaises(UpstreamError):
                asyncio.run(fetch_feed("https://example.com/feed", fetch_settings()))

    def test_non_feed_body_is_rejected(self) -> None:
        with client_with(lambda request: httpx.Response(200, content=b"<<<not xml")):
            with self.assertRaises(UpstreamError):
                asyncio.run(fetch_feed("https://example.com/feed", fetch_settings()))


class TestEntryMapping(unittest.TestCase):
    def setUp(self) -> None:
        self.source = RssSource(name="Tech Daily", url="https://example.com/feed", category="learning")

    def test_maps_fields_and_strips_html(self) -> None:
        entry = {"title": "Post", "link": "https://example.com/p", "summary": "<p>Hi <b>there</b></p>"}
        fields = entry_to_note_fields(entry, self.source)
        self.assertEqual(fields["title"], "Post")
        self.assertEqual(fields["content"], "Hi there\n\n---\nSource: https://example.com/p")
        self.assertEqual(fields["tags"], ["rss-import", "tech-daily"])
        self.assertEqual(fields["category"], "learning")
        self.assertEqual(fields["source_type"], "rss")
        self.assertEqual(fields["source_title"], "Tech Daily")

    def test_missing_title_and_body_fall_back(self) -> None:
        fields = entry_to_note_fields({"link": "https://example.com/p"}, self.source)
        self.assertEqual(fields["title"], "Untitled Article")
        self.assertTrue(fields["content"].startswith("No content available"))


class TestImportEntries(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_test_engine()
        self.db = sessionmaker(bind=self.engine)()
        self.user = make_user(self.db, "reader@example.com", role="editor", can_create_notes=True)
        self.source = RssSource(
            user_id=self.user.id, name="Example", url="https://example.com/feed", category="learning"
        )
        self.db.add(self.source)
        self.db.commit()
        self.entries = [
            {"title": f"Item {i}", "link": f"https://example.com/{i}", "summary": "text"}
            for i in range(5)
        ]

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def test_second_import_of_same_feed_imports_nothing(self) -> None:
        first = import_entries(self.db, self.user.id, self.source, self.entries, limit=10)
        second = import_entries(self.db, self.user.id, self.source, self.entries, limit=10)
        self.assertEqual((first.imported, first.total), (5, 5))
        self.assertEqual((second.imported, second.total), (0, 5))
        self.assertEqual(self.db.query(Note).count(), 5)
        self.assertIsNotNone(self.source.last_fetched)

    def test_limit_is_capped_at_fifty(self) -> None:
        many = [{"title": str(i), "link": f"https://example.com/m{i}"} for i in range(60)]
        result = import_entries(self.db, self.user.id, self.source, many, limit=500)
        self.assertEqual(result.total, 50)
        self.assertEqual(result.imported, 50)

    def test_items_without_link_and_repeated_links_are_skipped(self) -> None:
        entries = [
            {"title": "No link"},
            {"title": "A", "link": "https://example.com/a"},
            {"title": "A again", "link": "https://example.com/a"},
        ]
        result = import_entries(self.db, self.user.id, self.source, entries, limit=10)
        self.assertEqual(result.imported, 1)
        self.assertEqual(result.total, 3)

    def test_failure_rolls_back_whole_pass(self) -> None:
        with patch.object(self.db, "commit", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                import_entries(self.db, self.user.id, self.source, self.entries, limit=10)
        self.assertEqual(self.db.query(Note).count(), 0)
