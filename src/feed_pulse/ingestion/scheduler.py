# ABOUTME: Fixed-interval scheduler selecting stale feeds and ingesting them in bounded batches.
# ABOUTME: Each tick fans out one worker per feed and waits for the whole batch before the next.

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from feed_pulse.feeds.fetcher import FeedFetcher
from feed_pulse.ingestion.worker import FeedIngestor, utcnow
from feed_pulse.models import IngestResult, IngestStatus, TickReport
from feed_pulse.stores import FeedStore, PostStore

log = structlog.get_logger()


class FeedScheduler:
    """Periodically ingests the ``concurrency`` most stale feeds.

    Ticks never overlap: a batch that takes longer than ``interval`` delays
    the next tick until every worker has finished, and missed firings are
    not replayed.

    Example:
        >>> scheduler = FeedScheduler(store, store, fetcher, timedelta(minutes=1), 10)
        >>> scheduler.start()
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        feed_store: FeedStore,
        post_store: PostStore,
        fetcher: FeedFetcher,
        interval: timedelta,
        concurrency: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")

        self.feed_store = feed_store
        self.interval = interval
        self.concurrency = concurrency
        self.clock = clock
        self.ingestor = FeedIngestor(feed_store, post_store, fetcher, clock=clock)
        self.last_report: TickReport | None = None
        self._tick_lock = asyncio.Lock()
        self._stop_requested = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Run the scheduler loop in a background task."""
        if self.running:
            raise RuntimeError("scheduler is already running")
        self._stop_requested.clear()
        self._task = asyncio.create_task(self.run_forever(), name="feed-scheduler")
        return self._task

    async def stop(self) -> None:
        """Stop ticking. An in-flight batch is allowed to finish."""
        self._stop_requested.set()
        if self._task is not None:
            task, self._task = self._task, None
            await task

    async def run_forever(self) -> None:
        """Tick immediately, then every interval, until stop() is requested."""
        log.info(
            "scheduler_started",
            interval_seconds=self.interval.total_seconds(),
            concurrency=self.concurrency,
        )
        loop = asyncio.get_running_loop()
        period = self.interval.total_seconds()

        while not self._stop_requested.is_set():
            tick_started = loop.time()
            await self.run_tick()

            delay = period - (loop.time() - tick_started)
            if delay <= 0:
                log.warning("tick_overran_interval", overrun_seconds=round(-delay, 3))
                continue
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_requested.wait(), timeout=delay)

        log.info("scheduler_stopped")

    async def run_tick(self) -> TickReport:
        """Select one batch of feeds and ingest it, waiting for every worker."""
        async with self._tick_lock:
            report = TickReport(started_at=self.clock())

            try:
                feeds = await self.feed_store.select_feeds_to_fetch(self.concurrency)
            except Exception as e:
                log.error("feed_selection_failed", error=str(e))
                report.skipped = True
                report.finished_at = self.clock()
                self.last_report = report
                return report

            batch = list(feeds)[: self.concurrency]
            report.selected = len(batch)
            log.info("feeds_selected", count=len(batch))

            outcomes = await asyncio.gather(
                *(self.ingestor.ingest(feed) for feed in batch),
                return_exceptions=True,
            )
            for feed, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    log.error("feed_worker_failed", feed_id=str(feed.id), error=repr(outcome))
                    outcome = IngestResult(feed_id=feed.id, status=IngestStatus.CRASHED)
                report.results.append(outcome)

            report.finished_at = self.clock()
            self.last_report = report
            log.info(
                "tick_complete",
                feeds=report.selected,
                failed=report.failed,
                posts_created=report.posts_created,
            )
            return report
