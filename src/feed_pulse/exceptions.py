# ABOUTME: Exception hierarchy for the feed ingestion pipeline.
# ABOUTME: Separates transport, parse, date, and store failures so callers can contain them.


class FeedPulseError(Exception):
    """Base class for all FeedPulse errors."""


class FetchError(FeedPulseError):
    """Feed source could not be retrieved (transport error, timeout, or bad status)."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


class ParseError(FeedPulseError):
    """Raw bytes are not a well-formed syndication document."""


class DateParseError(FeedPulseError, ValueError):
    """Publication date text could not be interpreted."""

    def __init__(self, text: str | None) -> None:
        super().__init__(f"unable to parse publication date: {text!r}")
        self.text = text


class StoreError(FeedPulseError):
    """Feed or post store operation failed."""


class FeedNotFoundError(StoreError):
    """Referenced feed does not exist."""
