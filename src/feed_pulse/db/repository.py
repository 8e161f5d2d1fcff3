# ABOUTME: Repository classes for database access patterns.
# ABOUTME: Provides FeedRepository and PostRepository over an AsyncSession.

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from feed_pulse.db.models import Feed, Post
from feed_pulse.exceptions import FeedNotFoundError
from feed_pulse.models import NewPost


class FeedRepository:
    """Repository for Feed operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str, url: str, user_id: UUID) -> Feed:
        """Insert a new feed."""
        feed = Feed(name=name, url=url, user_id=user_id)
        self.session.add(feed)
        await self.session.flush()
        return feed

    async def get_by_id(self, feed_id: UUID) -> Feed | None:
        """Get feed by ID."""
        return await self.session.get(Feed, feed_id)

    async def list_all(self) -> Sequence[Feed]:
        """List all feeds ordered by name."""
        result = await self.session.execute(select(Feed).order_by(Feed.name))
        return result.scalars().all()

    async def select_next_to_fetch(self, limit: int) -> Sequence[Feed]:
        """List feeds never fetched first, then the longest-unfetched ones."""
        result = await self.session.execute(
            select(Feed)
            .order_by(Feed.last_fetched_at.asc().nulls_first(), Feed.created_at)
            .limit(limit)
        )
        return result.scalars().all()

    async def mark_fetched(self, feed_id: UUID, fetched_at: datetime) -> None:
        """Set last_fetched_at unless the stored value is already newer.

        Raises:
            FeedNotFoundError: If no feed has this ID.
        """
        result = await self.session.execute(
            update(Feed)
            .where(Feed.id == feed_id)
            .where(or_(Feed.last_fetched_at.is_(None), Feed.last_fetched_at <= fetched_at))
            .values(last_fetched_at=fetched_at, updated_at=fetched_at)
        )
        if result.rowcount == 0 and await self.get_by_id(feed_id) is None:
            raise FeedNotFoundError(f"feed {feed_id} not found")


class PostRepository:
    """Repository for Post operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert_if_absent(self, post: NewPost) -> bool:
        """Insert a post keyed by (feed_id, url).

        Returns:
            True if a row was created, False if the key already existed.
        """
        dialect = self.session.get_bind().dialect.name
        insert = sqlite_insert if dialect == "sqlite" else pg_insert
        stmt = (
            insert(Post)
            .values(**post.model_dump())
            .on_conflict_do_nothing(index_elements=[Post.feed_id, Post.url])
            .returning(Post.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_for_feed(self, feed_id: UUID, limit: int = 20) -> Sequence[Post]:
        """List most recent posts for a feed."""
        result = await self.session.execute(
            select(Post)
            .where(Post.feed_id == feed_id)
            .order_by(Post.published_at.desc().nulls_last(), Post.created_at.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def list_for_user(self, user_id: UUID, limit: int = 20) -> Sequence[Post]:
        """List most recent posts across all feeds owned by an account.

        Feed ownership stands in for feed follows, which this service does not model.
        """
        result = await self.session.execute(
            select(Post)
            .join(Feed, Post.feed_id == Feed.id)
            .where(Feed.user_id == user_id)
            .order_by(Post.published_at.desc().nulls_last(), Post.created_at.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def count_for_feed(self, feed_id: UUID) -> int:
        """Count posts belonging to a feed."""
        result = await self.session.execute(
            select(func.count(Post.id)).where(Post.feed_id == feed_id)
        )
        return result.scalar_one()
