# ABOUTME: Pydantic models for the ingestion pipeline data structures.
# ABOUTME: Defines FeedRecord, FeedItem, NewPost, insert outcomes, and per-tick reports.

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InsertOutcome(str, Enum):
    """Result of an idempotent post insert."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    ERROR = "error"


class IngestStatus(str, Enum):
    """How far a single feed got through the pipeline in one tick."""

    COMPLETED = "completed"
    MARK_FAILED = "mark_failed"
    FETCH_FAILED = "fetch_failed"
    PARSE_FAILED = "parse_failed"
    CRASHED = "crashed"


class FeedRecord(BaseModel):
    """A subscribed feed as seen by the scheduler."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    name: str
    url: str
    user_id: UUID
    last_fetched_at: datetime | None = None

    @field_validator("last_fetched_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite hands back naive timestamps; everything is stored as UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class FeedItem(BaseModel):
    """One item of a parsed syndication document."""

    title: str = ""
    link: str = ""
    description: str | None = None
    pub_date: str | None = None


class NewPost(BaseModel):
    """Payload for inserting a post keyed by (feed_id, url)."""

    feed_id: UUID
    title: str
    url: str
    description: str | None = None
    published_at: datetime | None = None


class IngestResult(BaseModel):
    """Outcome of one ingestion worker run for one feed."""

    feed_id: UUID
    status: IngestStatus
    created: int = 0
    duplicates: int = 0
    skipped: int = 0


class TickReport(BaseModel):
    """Summary of one scheduler tick."""

    started_at: datetime
    finished_at: datetime | None = None
    selected: int = 0
    skipped: bool = False
    results: list[IngestResult] = Field(default_factory=list)

    @property
    def posts_created(self) -> int:
        return sum(r.created for r in self.results)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status != IngestStatus.COMPLETED)
