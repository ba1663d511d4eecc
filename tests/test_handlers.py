import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from flask import Flask

from rssagg.database import open_database
from rssagg.handlers import ApiConfig, handler_error, handler_readiness
from rssagg.responses import respond_with_json

app = Flask(__name__)
NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def cfg():
    return ApiConfig(open_database(":memory:"))


def body(resp):
    return json.loads(resp.get_data())


def make_user(cfg, name="alice"):
    return cfg.db.create_user(uuid.uuid4(), NOW, NOW, name)


def test_readiness_and_error():
    with app.test_request_context():
        assert body(handler_readiness()) == {}
        resp = handler_error()
    assert resp.status_code == 400
    assert body(resp) == {"error": "Something went wrong"}


def test_create_user(cfg):
    with app.test_request_context(method="POST", json={"name": "bob"}):
        resp = cfg.create_user()
    assert resp.status_code == 201
    data = body(resp)
    assert data["name"] == "bob"
    assert cfg.db.get_user_by_api_key(data["api_key"]).name == "bob"


def test_create_user_bad_json(cfg):
    with app.test_request_context(method="POST", data="{bad"):
        resp = cfg.create_user()
    assert resp.status_code == 400
    assert body(resp)["error"].startswith("Error parsing JSON")


def test_middleware_rejects_missing_header(cfg):
    wrapped = cfg.middleware_auth(lambda user: respond_with_json(200, {}))
    with app.test_request_context():
        resp = wrapped()
    assert resp.status_code == 403
    assert body(resp) == {"error": "Error getting API key: No Authentication header found"}


def test_middleware_unknown_key(cfg):
    wrapped = cfg.middleware_auth(lambda user: respond_with_json(200, {}))
    with app.test_request_context(headers={"Authorization": "ApiKey token"}):
        resp = wrapped()
    assert resp.status_code == 400
    assert body(resp)["error"].startswith("Error getting user")


def test_middleware_passes_user(cfg):
    user = make_user(cfg)
    wrapped = cfg.middleware_auth(lambda u: respond_with_json(200, {"name": u.name}))
    with app.test_request_context(headers={"Authorization": "ApiKey " + user.api_key}):
        resp = wrapped()
    assert body(resp) == {"name": "alice"}


def test_feeds_and_follows(cfg):
    user = make_user(cfg)
    with app.test_request_context(method="POST", json={"name": "n", "url": "http://example.com/rss"}):
        resp = cfg.create_feed(user)
    assert resp.status_code == 201
    feed = body(resp)
    assert feed["user_id"] == str(user.id)
    with app.test_request_context():
        assert [f["id"] for f in body(cfg.get_feeds(user))] == [feed["id"]]
        assert len(body(cfg.get_all_feeds())) == 1
    with app.test_request_context(method="POST", json={"feed_id": feed["id"]}):
        resp = cfg.create_feed_follow(user)
    assert resp.status_code == 201
    follow = body(resp)
    with app.test_request_context():
        assert [f["id"] for f in body(cfg.get_feed_follows_by_user(user))] == [follow["id"]]
        resp = cfg.delete_feed_follow(user, follow["id"])
        assert body(resp) == {"message": "Feed follow deleted"}
        assert body(cfg.get_feed_follows_by_user(user)) == []


def test_delete_other_users_follow_refused(cfg):
    owner = make_user(cfg, "owner")
    other = make_user(cfg, "other")
    feed = cfg.db.create_feed(uuid.uuid4(), NOW, NOW, "n", "http://example.com/a", owner.id)
    follow = cfg.db.create_feed_follow(uuid.uuid4(), NOW, NOW, owner.id, feed.id)
    with app.test_request_context():
        resp = cfg.delete_feed_follow(other, str(follow.id))
    assert resp.status_code == 400
    assert cfg.db.get_feed_follow(follow.id).user_id == owner.id


def test_delete_bad_id(cfg):
    user = make_user(cfg)
    with app.test_request_context():
        resp = cfg.delete_feed_follow(user, "nope")
    assert resp.status_code == 400
    assert body(resp)["error"].startswith("Error parsing feed follow ID")


def test_posts_limited_and_ordered(cfg):
    user = make_user(cfg)
    feed = cfg.db.create_feed(uuid.uuid4(), NOW, NOW, "n", "http://example.com/b", user.id)
    for i in range(12):
        cfg.db.create_post(uuid.uuid4(), NOW, NOW, f"t{i}", None, NOW + timedelta(hours=i),
                           f"http://example.com/p{i}", feed.id)
    with app.test_request_context():
        posts = body(cfg.get_posts_for_user(user))
    assert len(posts) == 10
    assert posts[0]["title"] == "t11"
    assert posts == sorted(posts, key=lambda p: p["published_at"], reverse=True)