# ABOUTME: Feed processing module for fetching and parsing syndication documents.
# ABOUTME: Handles downloading raw bytes, decoding items, and normalizing publication dates.

from feed_pulse.feeds.fetcher import FeedFetcher
from feed_pulse.feeds.parser import parse_feed, parse_pub_date

__all__ = ["FeedFetcher", "parse_feed", "parse_pub_date"]
