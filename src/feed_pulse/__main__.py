# ABOUTME: CLI entry point for the FeedPulse ingestion service.
# ABOUTME: Provides subcommands: init-db, add-feed, run, tick, status, posts.

import argparse
import asyncio
import logging
import signal
import sys
from uuid import UUID

import structlog
from pydantic import ValidationError

from feed_pulse.config import Settings, get_settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog for console or JSON output."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
        )
    else:
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
                structlog.processors.add_log_level,
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
        )


def build_scheduler(settings: Settings, fetcher):
    """Wire a scheduler to the configured database."""
    from feed_pulse.db.session import get_session_factory
    from feed_pulse.db.store import DatabaseStore
    from feed_pulse.ingestion.scheduler import FeedScheduler

    store = DatabaseStore(get_session_factory())
    return FeedScheduler(
        feed_store=store,
        post_store=store,
        fetcher=fetcher,
        interval=settings.fetch_interval,
        concurrency=settings.fetch_concurrency,
    )


async def _init_db() -> None:
    from feed_pulse.db.session import close_db, init_db

    try:
        await init_db()
    finally:
        await close_db()


def cmd_init_db(_args: argparse.Namespace) -> int:
    """Create database tables."""
    log = structlog.get_logger()
    try:
        asyncio.run(_init_db())
    except Exception:
        log.exception("cmd_init_db_failed")
        return 1
    log.info("cmd_init_db_complete")
    return 0


async def _add_feed(name: str, url: str, user_id: UUID) -> UUID:
    from feed_pulse.db.repository import FeedRepository
    from feed_pulse.db.session import close_db, get_session

    try:
        async with get_session() as session:
            feed = await FeedRepository(session).create(name=name, url=url, user_id=user_id)
            return feed.id
    finally:
        await close_db()


def cmd_add_feed(args: argparse.Namespace) -> int:
    """Register a feed for ingestion."""
    log = structlog.get_logger()
    try:
        feed_id = asyncio.run(_add_feed(args.name, args.url, args.user_id))
    except Exception:
        log.exception("cmd_add_feed_failed", url=args.url)
        return 1
    log.info("feed_added", feed_id=str(feed_id), url=args.url)
    print(feed_id)
    return 0


async def _run(settings: Settings) -> None:
    from feed_pulse.db.session import close_db, init_db
    from feed_pulse.feeds.fetcher import FeedFetcher

    log = structlog.get_logger()
    try:
        # Unreachable database at boot is fatal.
        await init_db()

        async with FeedFetcher(settings) as fetcher:
            scheduler = build_scheduler(settings, fetcher)
            task = scheduler.start()

            loop = asyncio.get_running_loop()
            stop_requested = asyncio.Event()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop_requested.set)

            stop_waiter = asyncio.create_task(stop_requested.wait())
            await asyncio.wait({task, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
            stop_waiter.cancel()
            log.info("shutdown_requested")
            await scheduler.stop()
    finally:
        await close_db()


def cmd_run(_args: argparse.Namespace) -> int:
    """Run the ingestion scheduler until interrupted."""
    log = structlog.get_logger()
    settings = get_settings()
    log.info("cmd_run_start")
    try:
        asyncio.run(_run(settings))
    except Exception:
        log.exception("cmd_run_failed")
        return 1
    log.info("cmd_run_complete")
    return 0


async def _tick(settings: Settings):
    from feed_pulse.db.session import close_db
    from feed_pulse.feeds.fetcher import FeedFetcher

    try:
        async with FeedFetcher(settings) as fetcher:
            return await build_scheduler(settings, fetcher).run_tick()
    finally:
        await close_db()


def cmd_tick(_args: argparse.Namespace) -> int:
    """Ingest a single batch of feeds and exit."""
    log = structlog.get_logger()
    settings = get_settings()
    try:
        report = asyncio.run(_tick(settings))
    except Exception:
        log.exception("cmd_tick_failed")
        return 1

    if report.skipped:
        print("\nFeed selection failed; no feeds were ingested.\n")
        return 1

    print(f"\nFeeds ingested: {report.selected} (failed: {report.failed})")
    for result in report.results:
        print(
            f"  - {result.feed_id}: {result.status.value} "
            f"(created: {result.created}, duplicates: {result.duplicates}, "
            f"skipped: {result.skipped})"
        )
    print(f"Posts created: {report.posts_created}\n")
    return 0


async def _status() -> list[tuple]:
    from feed_pulse.db.repository import FeedRepository, PostRepository
    from feed_pulse.db.session import close_db, get_session

    try:
        async with get_session() as session:
            feeds = await FeedRepository(session).list_all()
            posts = PostRepository(session)
            return [(feed, await posts.count_for_feed(feed.id)) for feed in feeds]
    finally:
        await close_db()


def cmd_status(_args: argparse.Namespace) -> int:
    """Show feeds with their last fetch time and post counts."""
    log = structlog.get_logger()
    try:
        rows = asyncio.run(_status())
    except Exception:
        log.exception("cmd_status_failed")
        return 1

    print("\n=== FeedPulse Status ===\n")
    print(f"Feeds: {len(rows)}")
    for feed, post_count in rows:
        fetched = feed.last_fetched_at.isoformat() if feed.last_fetched_at else "never"
        print(f"  - {feed.name} <{feed.url}> (last fetched: {fetched}, posts: {post_count})")
    print()
    return 0


async def _posts(user_id: UUID, limit: int) -> list:
    from feed_pulse.db.repository import PostRepository
    from feed_pulse.db.session import close_db, get_session

    try:
        async with get_session() as session:
            return list(await PostRepository(session).list_for_user(user_id, limit=limit))
    finally:
        await close_db()


def cmd_posts(args: argparse.Namespace) -> int:
    """List the most recent posts from an account's feeds."""
    log = structlog.get_logger()
    try:
        posts = asyncio.run(_posts(args.user_id, args.limit))
    except Exception:
        log.exception("cmd_posts_failed")
        return 1

    print()
    for post in posts:
        published = post.published_at.isoformat() if post.published_at else "unknown date"
        print(f"{published}  {post.title}\n    {post.url}")
    if not posts:
        print("No posts found.")
    print()
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="feed_pulse",
        description="FeedPulse - periodic RSS feed ingestion",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")

    add_feed_parser = subparsers.add_parser("add-feed", help="Register a feed")
    add_feed_parser.add_argument("--name", required=True, help="Display name of the feed")
    add_feed_parser.add_argument("--url", required=True, help="Feed URL")
    add_feed_parser.add_argument(
        "--user-id",
        type=UUID,
        required=True,
        help="Owning account ID (UUID)",
    )

    subparsers.add_parser("run", help="Run the ingestion scheduler until interrupted")
    subparsers.add_parser("tick", help="Ingest one batch of feeds and exit")
    subparsers.add_parser("status", help="Show feeds and their fetch state")

    posts_parser = subparsers.add_parser("posts", help="List recent posts for an account")
    posts_parser.add_argument("--user-id", type=UUID, required=True, help="Account ID (UUID)")
    posts_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum number of posts to show (default: 20)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 1
    configure_logging(settings)

    parser = create_parser()
    args = parser.parse_args(argv)

    commands = {
        "init-db": cmd_init_db,
        "add-feed": cmd_add_feed,
        "run": cmd_run,
        "tick": cmd_tick,
        "status": cmd_status,
        "posts": cmd_posts,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
