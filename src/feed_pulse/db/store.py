# ABOUTME: Database-backed implementation of the FeedStore and PostStore contracts.
# ABOUTME: Opens one session per call so concurrent ingestion workers never share a session.

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feed_pulse.db.repository import FeedRepository, PostRepository
from feed_pulse.db.session import session_scope
from feed_pulse.exceptions import StoreError
from feed_pulse.models import FeedRecord, InsertOutcome, NewPost

log = structlog.get_logger()


class DatabaseStore:
    """FeedStore and PostStore backed by SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def select_feeds_to_fetch(self, limit: int) -> list[FeedRecord]:
        try:
            async with session_scope(self.session_factory) as session:
                feeds = await FeedRepository(session).select_next_to_fetch(limit)
                return [FeedRecord.model_validate(feed) for feed in feeds]
        except SQLAlchemyError as e:
            raise StoreError(f"couldn't select feeds to fetch: {e}") from e

    async def mark_feed_fetched(self, feed_id: UUID, fetched_at: datetime) -> None:
        try:
            async with session_scope(self.session_factory) as session:
                await FeedRepository(session).mark_fetched(feed_id, fetched_at)
        except SQLAlchemyError as e:
            raise StoreError(f"couldn't mark feed {feed_id} fetched: {e}") from e

    async def create_post_if_absent(self, post: NewPost) -> InsertOutcome:
        try:
            async with session_scope(self.session_factory) as session:
                created = await PostRepository(session).insert_if_absent(post)
        except SQLAlchemyError as e:
            log.error("post_insert_error", feed_id=str(post.feed_id), url=post.url, error=str(e))
            return InsertOutcome.ERROR
        return InsertOutcome.CREATED if created else InsertOutcome.DUPLICATE
