# ABOUTME: Per-feed ingestion worker: mark fetched, fetch, parse, and store each item.
# ABOUTME: Contains every failure to its feed or item; never raises into the scheduler.

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from feed_pulse.exceptions import DateParseError, FetchError, ParseError
from feed_pulse.feeds.fetcher import FeedFetcher
from feed_pulse.feeds.parser import parse_feed, parse_pub_date
from feed_pulse.models import (
    FeedItem,
    FeedRecord,
    IngestResult,
    IngestStatus,
    InsertOutcome,
    NewPost,
)
from feed_pulse.stores import FeedStore, PostStore

log = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(UTC)


class FeedIngestor:
    """Runs the fetch/parse/store pipeline for one feed at a time."""

    def __init__(
        self,
        feed_store: FeedStore,
        post_store: PostStore,
        fetcher: FeedFetcher,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.feed_store = feed_store
        self.post_store = post_store
        self.fetcher = fetcher
        self.clock = clock

    async def ingest(self, feed: FeedRecord) -> IngestResult:
        """Ingest one feed. Always returns; failures are reported in the result status."""
        feed_log = log.bind(feed_id=str(feed.id), feed_name=feed.name)
        try:
            return await self._ingest(feed, feed_log)
        except Exception as e:
            feed_log.exception("feed_ingest_crashed", error=str(e))
            return IngestResult(feed_id=feed.id, status=IngestStatus.CRASHED)

    async def _ingest(self, feed: FeedRecord, feed_log: structlog.BoundLogger) -> IngestResult:
        # Marked before any network I/O so a broken source drops to the back of the queue.
        try:
            await self.feed_store.mark_feed_fetched(feed.id, self.clock())
        except Exception as e:
            feed_log.error("feed_mark_fetched_failed", error=str(e))
            return IngestResult(feed_id=feed.id, status=IngestStatus.MARK_FAILED)

        try:
            content = await self.fetcher.fetch(feed.url)
        except FetchError as e:
            feed_log.error("feed_fetch_failed", feed_url=feed.url, error=str(e))
            return IngestResult(feed_id=feed.id, status=IngestStatus.FETCH_FAILED)

        try:
            items = parse_feed(content)
        except ParseError as e:
            feed_log.error("feed_parse_failed", feed_url=feed.url, error=str(e))
            return IngestResult(feed_id=feed.id, status=IngestStatus.PARSE_FAILED)

        result = IngestResult(feed_id=feed.id, status=IngestStatus.COMPLETED)
        for item in items:
            outcome = await self._store_item(feed, item, feed_log)
            if outcome is InsertOutcome.CREATED:
                result.created += 1
            elif outcome is InsertOutcome.DUPLICATE:
                result.duplicates += 1
            else:
                result.skipped += 1

        feed_log.info(
            "feed_collected",
            items=len(items),
            created=result.created,
            duplicates=result.duplicates,
            skipped=result.skipped,
        )
        return result

    async def _store_item(
        self, feed: FeedRecord, item: FeedItem, feed_log: structlog.BoundLogger
    ) -> InsertOutcome:
        """Store a single item. Returns ERROR for anything that was skipped."""
        if not item.link:
            feed_log.warning("item_missing_link", title=item.title)
            return InsertOutcome.ERROR

        try:
            published_at = parse_pub_date(item.pub_date)
        except DateParseError as e:
            feed_log.error("item_pub_date_invalid", pub_date=item.pub_date, error=str(e))
            return InsertOutcome.ERROR

        post = NewPost(
            feed_id=feed.id,
            title=item.title,
            url=item.link,
            description=item.description,
            published_at=published_at,
        )
        try:
            outcome = await self.post_store.create_post_if_absent(post)
        except Exception as e:
            feed_log.error("post_create_failed", title=item.title, url=item.link, error=str(e))
            return InsertOutcome.ERROR

        if outcome is InsertOutcome.ERROR:
            feed_log.error("post_create_failed", title=item.title, url=item.link)
        return outcome
