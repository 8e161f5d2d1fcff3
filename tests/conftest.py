# ABOUTME: Pytest fixtures and configuration for FeedPulse tests.
# ABOUTME: Provides settings, in-memory stores, a scripted fetcher, RSS builders, and SQLite.

import asyncio
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID, uuid4
from xml.sax.saxutils import escape

import pytest
import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from feed_pulse.config import Settings, get_settings
from feed_pulse.db.session import init_db, make_session_factory
from feed_pulse.exceptions import StoreError
from feed_pulse.models import FeedRecord, InsertOutcome, NewPost

VALID_DATE = "Mon, 02 Jan 2006 15:04:05 GMT"


def make_rss(items: list[dict[str, str]], title: str = "Test Feed") -> bytes:
    """Build an RSS 2.0 document; each item dict may hold title, link, description, pubDate."""
    parts = []
    for item in items:
        fields = "".join(f"<{key}>{escape(value)}</{key}>" for key, value in item.items())
        parts.append(f"<item>{fields}</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{escape(title)}</title>"
        "<link>https://example.com/</link>"
        "<description>Test channel</description>"
        f"{''.join(parts)}"
        "</channel></rss>"
    ).encode()


MALFORMED_XML = b"<rss version='2.0'><channel><item><title>broken</title></channel>"


def make_feed(
    name: str = "Example",
    url: str | None = None,
    last_fetched_at: datetime | None = None,
) -> FeedRecord:
    """Create a FeedRecord for testing."""
    return FeedRecord(
        id=uuid4(),
        name=name,
        url=url or f"https://example.com/{name.lower().replace(' ', '-')}.rss",
        user_id=uuid4(),
        last_fetched_at=last_fetched_at,
    )


class MemoryFeedStore:
    """In-memory FeedStore with stale-first selection and injectable failures."""

    def __init__(self, feeds: list[FeedRecord]) -> None:
        self.feeds: dict[UUID, FeedRecord] = {feed.id: feed for feed in feeds}
        self.marks: list[tuple[UUID, datetime]] = []
        self.fail_select = False
        self.fail_mark_for: set[UUID] = set()
        self.select_calls = 0

    async def select_feeds_to_fetch(self, limit: int) -> list[FeedRecord]:
        self.select_calls += 1
        if self.fail_select:
            raise StoreError("database unavailable")
        never = [f for f in self.feeds.values() if f.last_fetched_at is None]
        fetched = sorted(
            (f for f in self.feeds.values() if f.last_fetched_at is not None),
            key=lambda f: f.last_fetched_at,
        )
        return (never + fetched)[:limit]

    async def mark_feed_fetched(self, feed_id: UUID, fetched_at: datetime) -> None:
        if feed_id in self.fail_mark_for:
            raise StoreError("write failed")
        feed = self.feeds[feed_id]
        if feed.last_fetched_at is None or fetched_at >= feed.last_fetched_at:
            self.feeds[feed_id] = feed.model_copy(update={"last_fetched_at": fetched_at})
        self.marks.append((feed_id, fetched_at))


class MemoryPostStore:
    """In-memory PostStore enforcing (feed_id, url) uniqueness."""

    def __init__(self) -> None:
        self.posts: dict[tuple[UUID, str], NewPost] = {}
        self.fail_urls: set[str] = set()
        self.raise_urls: set[str] = set()

    async def create_post_if_absent(self, post: NewPost) -> InsertOutcome:
        if post.url in self.raise_urls:
            raise StoreError("connection reset")
        if post.url in self.fail_urls:
            return InsertOutcome.ERROR
        key = (post.feed_id, post.url)
        if key in self.posts:
            return InsertOutcome.DUPLICATE
        self.posts[key] = post
        return InsertOutcome.CREATED

    def for_feed(self, feed_id: UUID) -> list[NewPost]:
        return [post for (fid, _), post in self.posts.items() if fid == feed_id]


class ScriptedFetcher:
    """Fetcher returning canned documents (or raising canned errors) per URL."""

    def __init__(self, documents: dict[str, bytes | Exception], delay: float = 0.0) -> None:
        self.documents = documents
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.completed = 0

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            document = self.documents[url]
            if isinstance(document, Exception):
                raise document
            return document
        finally:
            self.in_flight -= 1
            self.completed += 1


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until predicate() is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture(autouse=True)
def _reset_global_state() -> Iterator[None]:
    """Clear cached settings and structlog configuration between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def mock_settings() -> Settings:
    """Create mock settings for testing."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        fetch_interval_seconds=0.05,
        fetch_concurrency=3,
        feed_timeout=5,
        feed_user_agent="FeedPulse-Test/1.0",
        log_level="DEBUG",
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """SQLite database file with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'feedpulse.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(db_engine)
