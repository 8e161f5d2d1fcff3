# ABOUTME: SQLAlchemy ORM models for feed and post persistence.
# ABOUTME: Defines Feed and Post tables; (feed_id, url) is the post deduplication key.

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Feed(Base):
    """A subscribed RSS feed with fetch bookkeeping."""

    __tablename__ = "feeds"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False, unique=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    last_fetched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    posts: Mapped[list["Post"]] = relationship(
        "Post", back_populates="feed", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (Index("ix_feeds_last_fetched_at", last_fetched_at),)

    def __repr__(self) -> str:
        return f"<Feed {self.id}: {self.name[:50]}>"


class Post(Base):
    """A single ingested feed item."""

    __tablename__ = "posts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    feed_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("feeds.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    feed: Mapped[Feed] = relationship("Feed", back_populates="posts")

    __table_args__ = (
        UniqueConstraint("feed_id", "url", name="uq_posts_feed_id_url"),
        Index("ix_posts_published_at_desc", published_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Post {self.id}: {self.title[:50]}>"
