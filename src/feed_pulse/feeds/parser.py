# ABOUTME: Syndication document parser and publication date normalizer.
# ABOUTME: Uses feedparser for RSS/Atom decoding and dateutil for permissive date parsing.

from datetime import UTC, datetime

import feedparser
from dateutil import parser as dateparser
from dateutil import tz
from feedparser.exceptions import CharacterEncodingOverride

from feed_pulse.exceptions import DateParseError, ParseError
from feed_pulse.models import FeedItem

# RFC 822 section 5 zone names that dateutil does not know on its own.
RFC822_ZONES = {
    "UT": tz.UTC,
    "GMT": tz.UTC,
    "Z": tz.UTC,
    "EST": tz.tzoffset("EST", -5 * 3600),
    "EDT": tz.tzoffset("EDT", -4 * 3600),
    "CST": tz.tzoffset("CST", -6 * 3600),
    "CDT": tz.tzoffset("CDT", -5 * 3600),
    "MST": tz.tzoffset("MST", -7 * 3600),
    "MDT": tz.tzoffset("MDT", -6 * 3600),
    "PST": tz.tzoffset("PST", -8 * 3600),
    "PDT": tz.tzoffset("PDT", -7 * 3600),
}


def parse_feed(content: bytes) -> list[FeedItem]:
    """Decode a syndication document into its items, in document order.

    Raises:
        ParseError: If the document is malformed or not a recognised feed format.
            No partial item list is ever returned.
    """
    feed = feedparser.parse(content)

    if feed.bozo and not isinstance(feed.bozo_exception, CharacterEncodingOverride):
        raise ParseError(f"malformed feed document: {feed.bozo_exception}")
    if not feed.version:
        raise ParseError("unrecognised feed format")

    return [
        FeedItem(
            title=entry.get("title", ""),
            link=entry.get("link", ""),
            description=entry.get("summary"),
            pub_date=entry.get("published") or entry.get("updated"),
        )
        for entry in feed.entries
    ]


def parse_pub_date(text: str | None) -> datetime:
    """Parse free-form publication date text into an aware UTC datetime.

    Naive dates are assumed to be UTC.

    Raises:
        DateParseError: If the text is empty or cannot be interpreted as a date.
    """
    if not text or not text.strip():
        raise DateParseError(text)
    try:
        parsed = dateparser.parse(text, tzinfos=RFC822_ZONES)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        # Offsets are only checked on conversion, and edge years can overflow.
        return parsed.astimezone(UTC)
    except (ValueError, OverflowError) as e:
        raise DateParseError(text) from e
