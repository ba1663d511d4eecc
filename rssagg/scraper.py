"""Periodic fetching of feeds into posts."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from . import database as db
from .rss import RSSFeed, url_to_feed

log = logging.getLogger(__name__)

_RFC1123Z = "%a, %d %b %Y %H:%M:%S %z"


def parse_pub_date(value: str) -> datetime:
    """Parse an RFC 1123 date with a numeric zone; raises ValueError otherwise."""
    return datetime.strptime(value, _RFC1123Z)


def scrape_feed(
    db: db.Queries, feed: db.Feed, fetch: Callable[[str], RSSFeed] = url_to_feed
) -> None:
    """Mark ``feed`` fetched, download it and store its items as posts."""
    log.info("Scrapping feed %s", feed.id)
    try:
        db.mark_feed_as_fetched(feed.id)
    except Exception as exc:
        log.error("Error marking feed as fetched: %s", exc)
        return

    try:
        rss_feed = fetch(feed.url)
    except Exception as exc:
        log.error("Error fetching feed for %s: %s", feed.url, exc)
        return

    items = rss_feed.channel.items
    for item in items:
        try:
            published_at = parse_pub_date(item.pub_date)
        except ValueError as exc:
            log.warning("Couldn't parse date %s with err: %s", item.pub_date, exc)
            continue
        now = datetime.now(timezone.utc)
        try:
            db.create_post(
                uuid.uuid4(), now, now, item.title, item.description or None,
                published_at, item.link, feed.id,
            )
        except DuplicateKeyError:
            continue
        except Exception as exc:
            log.error("Couldn't create post for %s: %s", item.title, exc)
    log.info("Feed %s has %d posts", feed.id, len(items))


from .database import DuplicateKeyError  # noqa: E402


def start_scraping(
    db: db.Queries,
    concurrency: int,
    time_between_requests: timedelta | float,
    stop_event: threading.Event | None = None,
) -> None:
    """Scrape up to ``concurrency`` feeds at once, every interval, until ``stop_event`` is set."""
    interval = (
        time_between_requests.total_seconds()
        if isinstance(time_between_requests, timedelta)
        else float(time_between_requests)
    )
    stop = stop_event or threading.Event()
    log.info("Scrapping on %d threads every %ss", concurrency, interval)
    with ThreadPoolExecutor(max_workers=max(concurrency, 1)) as pool:
        while True:
            try:
                feeds = db.get_next_feeds_to_fetch(concurrency)
            except Exception as exc:
                log.error("Error fetching feeds: %s", exc)
            else:
                for future in [pool.submit(scrape_feed, db, feed) for feed in feeds]:
                    future.result()
            if stop.wait(interval):
                return