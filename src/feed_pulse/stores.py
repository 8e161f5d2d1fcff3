# ABOUTME: Store contracts consumed by the ingestion pipeline.
# ABOUTME: FeedStore selects and marks feeds; PostStore performs idempotent post inserts.

from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from feed_pulse.models import FeedRecord, InsertOutcome, NewPost


@runtime_checkable
class FeedStore(Protocol):
    """Holds feed records and their fetch bookkeeping."""

    async def select_feeds_to_fetch(self, limit: int) -> list[FeedRecord]:
        """Return up to ``limit`` feeds, never-fetched first, then oldest fetch first."""
        ...

    async def mark_feed_fetched(self, feed_id: UUID, fetched_at: datetime) -> None:
        """Record a fetch attempt. Raises on failure."""
        ...


@runtime_checkable
class PostStore(Protocol):
    """Holds posts, unique per (feed, item URL)."""

    async def create_post_if_absent(self, post: NewPost) -> InsertOutcome:
        """Insert a post unless one with the same (feed_id, url) exists."""
        ...
