# ABOUTME: Ingestion pipeline: per-feed worker and the fixed-interval batch scheduler.
# ABOUTME: Exposes FeedIngestor and FeedScheduler.

from feed_pulse.ingestion.scheduler import FeedScheduler
from feed_pulse.ingestion.worker import FeedIngestor

__all__ = ["FeedIngestor", "FeedScheduler"]
