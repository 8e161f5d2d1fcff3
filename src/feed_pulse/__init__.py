# ABOUTME: Main package for the FeedPulse RSS ingestion service.
# ABOUTME: Exports settings, pipeline models, and the scheduler.

from feed_pulse.config import get_settings
from feed_pulse.ingestion import FeedIngestor, FeedScheduler
from feed_pulse.models import FeedItem, FeedRecord, InsertOutcome, NewPost, TickReport

__all__ = [
    "get_settings",
    "FeedIngestor",
    "FeedItem",
    "FeedRecord",
    "FeedScheduler",
    "InsertOutcome",
    "NewPost",
    "TickReport",
]
