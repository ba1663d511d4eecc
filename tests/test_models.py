import json
import uuid
from datetime import datetime, timedelta, timezone

from rssagg import database as db
from rssagg.models import Feed, FeedFollow, Post, User

BASE = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _parse(text):
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def test_user_from_record_and_to_dict():
    record = db.User(uuid.uuid4(), BASE, BASE + timedelta(hours=1), "alice", "token")
    user = User.from_record(record)
    assert user.name == "alice"
    assert user.api_key == "token"
    data = user.to_dict()
    assert set(data) == {"id", "created_at", "updated_at", "name", "api_key"}
    assert uuid.UUID(data["id"]) == record.id
    assert data["created_at"] == "2024-01-02T03:04:05Z"
    assert _parse(data["updated_at"]) == record.updated_at


def test_fraction_trims_trailing_zeros():
    moment = BASE.replace(microsecond=500000)
    record = db.User(uuid.uuid4(), moment, moment, "alice", "token")
    assert User.from_record(record).to_dict()["created_at"] == "2024-01-02T03:04:05.5Z"


def test_offset_is_kept():
    moment = datetime(2024, 1, 2, 8, 34, 5, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    record = db.User(uuid.uuid4(), moment, moment, "alice", "token")
    text = User.from_record(record).to_dict()["created_at"]
    assert text.endswith("+05:30")
    assert _parse(text) == moment


def test_feed_drops_last_fetched_at():
    record = db.Feed(
        uuid.uuid4(), BASE, BASE, "Blog", "https://example.com/feed.xml", uuid.uuid4(), BASE
    )
    feed = Feed.from_record(record)
    data = feed.to_dict()
    assert set(data) == {"id", "created_at", "updated_at", "name", "url", "user_id"}
    assert data["url"] == record.url
    assert uuid.UUID(data["user_id"]) == record.user_id


def test_feed_follow_to_dict():
    record = db.FeedFollow(uuid.uuid4(), BASE, BASE, uuid.uuid4(), uuid.uuid4())
    data = FeedFollow.from_record(record).to_dict()
    assert uuid.UUID(data["feed_id"]) == record.feed_id
    assert uuid.UUID(data["user_id"]) == record.user_id
    assert _parse(data["created_at"]) == BASE


def test_post_without_description_serialises_null():
    record = db.Post(
        uuid.uuid4(), BASE, BASE, "Hello", None, BASE, "https://example.com/p", uuid.uuid4()
    )
    post = Post.from_record(record)
    assert post.description is None
    decoded = json.loads(json.dumps(post.to_dict()))
    assert decoded["description"] is None
    assert decoded["title"] == "Hello"
    assert _parse(decoded["published_at"]) == BASE


def test_post_with_description():
    record = db.Post(
        uuid.uuid4(), BASE, BASE, "Hello", "body", BASE, "https://example.com/p", uuid.uuid4()
    )
    assert Post.from_record(record).to_dict()["description"] == "body"


def test_naive_time_treated_as_utc():
    naive = BASE.replace(tzinfo=None)
    record = db.User(uuid.uuid4(), naive, naive, "alice", "token")
    assert _parse(User.from_record(record).to_dict()["created_at"]) == BASE