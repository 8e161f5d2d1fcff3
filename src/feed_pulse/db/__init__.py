# ABOUTME: Database module initialization.
# ABOUTME: Exports ORM models, session helpers, and the database-backed store.

from feed_pulse.db.models import Base, Feed, Post
from feed_pulse.db.session import get_session, init_db
from feed_pulse.db.store import DatabaseStore

__all__ = [
    "Base",
    "DatabaseStore",
    "Feed",
    "Post",
    "get_session",
    "init_db",
]
