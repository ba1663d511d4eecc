import threading
import uuid
from datetime import datetime, timezone

import pytest

from rssagg.database import open_database
from rssagg.rss import RSSChannel, RSSFeed, RSSItem
from rssagg.scraper import parse_pub_date, scrape_feed, start_scraping

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
DATE = "Mon, 02 Jan 2006 15:04:05 -0700"


@pytest.fixture
def setup():
    q = open_database(":memory:")
    user = q.create_user(uuid.uuid4(), NOW, NOW, "u")
    feed = q.create_feed(uuid.uuid4(), NOW, NOW, "f", "http://example.com/rss", user.id)
    return q, user, feed


def fake_fetch(items):
    return lambda url: RSSFeed(channel=RSSChannel(items=items))


def test_parse_pub_date():
    d = parse_pub_date(DATE)
    assert (d.year, d.month, d.day, d.hour) == (2006, 1, 2, 15)
    assert d.utcoffset().total_seconds() == -7 * 3600


def test_parse_pub_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_pub_date("yesterday")


def test_scrape_stores_posts(setup):
    q, user, feed = setup
    items = [
        RSSItem(title="a", link="http://example.com/1", description="d", pub_date=DATE),
        RSSItem(title="b", link="http://example.com/2", description="", pub_date=DATE),
        RSSItem(title="c", link="http://example.com/3", pub_date="bad"),
    ]
    scrape_feed(q, feed, fake_fetch(items))
    posts = {p.title: p for p in q.get_posts_by_user(user.id, 10)}
    assert set(posts) == {"a", "b"}
    assert posts["a"].description == "d"
    assert posts["b"].description is None
    assert q.get_feeds()[0].last_fetched_at is not None


def test_scrape_twice_ignores_duplicates(setup):
    q, user, feed = setup
    items = [RSSItem(title="a", link="http://example.com/1", pub_date=DATE)]
    scrape_feed(q, feed, fake_fetch(items))
    scrape_feed(q, feed, fake_fetch(items))
    assert len(q.get_posts_by_user(user.id, 10)) == 1


def test_scrape_fetch_failure_still_marks(setup):
    q, user, feed = setup

    def boom(url):
        raise OSError("down")

    scrape_feed(q, feed, boom)
    assert q.get_posts_by_user(user.id, 10) == []
    assert q.get_feeds()[0].last_fetched_at is not None


def test_start_scraping_one_round(setup, monkeypatch):
    q, user, feed = setup
    items = [RSSItem(title="a", link="http://example.com/1", pub_date=DATE)]
    monkeypatch.setattr("rssagg.scraper.url_to_feed", fake_fetch(items))
    stop = threading.Event()
    stop.set()
    start_scraping(q, 10, 0.01, stop)
    posts = q.get_posts_by_user(user.id, 10)
    assert [(p.title, p.url, p.feed_id) for p in posts] == [("a", "http://example.com/1", feed.id)]
    assert q.get_feeds()[0].last_fetched_at >= NOW