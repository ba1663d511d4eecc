"""HTTP handlers of the API and the authentication wrapper."""

from __future__ import annotations

import functools
import json
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from flask import Response, request

from . import database as db
from .auth import ApiKeyError, get_api_key
from .models import Feed, FeedFollow, Post, User
from .responses import respond_with_error, respond_with_json

POSTS_LIMIT = 10


class _BadJSON(ValueError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _request_object() -> dict[str, Any]:
    raw = request.get_data()
    if not raw.strip():
        raise _BadJSON("EOF")
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise _BadJSON(str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise _BadJSON(f"cannot unmarshal {type(data).__name__} into an object")
    return data


def _string_field(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _BadJSON(f"field {name!r} must be a string")
    return value


def _uuid_field(data: dict[str, Any], name: str) -> uuid.UUID:
    value = data.get(name)
    if value is None:
        return uuid.UUID(int=0)
    if not isinstance(value, str):
        raise _BadJSON(f"field {name!r} must be a string")
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise _BadJSON(f"invalid UUID {value!r}") from exc


def handler_readiness() -> Response:
    """Report that the server is up."""
    return respond_with_json(200, {})


def handler_error() -> Response:
    """Always answer with an error, for checking error handling."""
    return respond_with_error(400, "Something went wrong")


class ApiConfig:
    """Handlers that share one database."""

    def __init__(self, db: db.Queries) -> None:
        self.db = db

    def middleware_auth(self, handler: Callable[..., Response]) -> Callable[..., Response]:
        """Wrap ``handler`` so that it receives the user owning the request's API key."""

        @functools.wraps(handler)
        def wrapper(**kwargs: Any) -> Response:
            try:
                api_key = get_api_key(request.headers)
            except ApiKeyError as exc:
                return respond_with_error(403, f"Error getting API key: {exc}")
            try:
                user = self.db.get_user_by_api_key(api_key)
            except db.DatabaseError as exc:
                return respond_with_error(400, f"Error getting user: {exc}")
            return handler(user, **kwargs)

        return wrapper

    def create_user(self) -> Response:
        try:
            name = _string_field(_request_object(), "name")
        except _BadJSON as exc:
            return respond_with_error(400, f"Error parsing JSON: {exc}")
        try:
            user = self.db.create_user(uuid.uuid4(), _now(), _now(), name)
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Couldn't create user: {exc}")
        return respond_with_json(201, User.from_record(user).to_dict())

    def get_user(self, user: db.User) -> Response:
        return respond_with_json(200, User.from_record(user).to_dict())

    def create_feed(self, user: db.User) -> Response:
        try:
            data = _request_object()
            name = _string_field(data, "name")
            url = _string_field(data, "url")
        except _BadJSON as exc:
            return respond_with_error(400, f"Error parsing JSON: {exc}")
        try:
            feed = self.db.create_feed(uuid.uuid4(), _now(), _now(), name, url, user.id)
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Error creating feed: {exc}")
        return respond_with_json(201, Feed.from_record(feed).to_dict())

    def get_feeds(self, user: db.User) -> Response:
        try:
            feeds = self.db.get_feeds_by_user(user.id)
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Error getting feeds: {exc}")
        return respond_with_json(200, [Feed.from_record(f).to_dict() for f in feeds])

    def get_all_feeds(self) -> Response:
        try:
            feeds = self.db.get_feeds()
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Error getting feeds: {exc}")
        return respond_with_json(200, [Feed.from_record(f).to_dict() for f in feeds])

    def create_feed_follow(self, user: db.User) -> Response:
        try:
            feed_id = _uuid_field(_request_object(), "feed_id")
        except _BadJSON as exc:
            return respond_with_error(400, f"Error parsing JSON: {exc}")
        try:
            follow = self.db.create_feed_follow(uuid.uuid4(), _now(), _now(), user.id, feed_id)
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Error creating feed follow: {exc}")
        return respond_with_json(201, FeedFollow.from_record(follow).to_dict())

    def get_feed_follows_by_user(self, user: db.User) -> Response:
        try:
            follows = self.db.get_feed_follows_by_user(user.id)
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Error getting feeds: {exc}")
        return respond_with_json(200, [FeedFollow.from_record(f).to_dict() for f in follows])

    def delete_feed_follow(self, user: db.User, feed_follow_id: str) -> Response:
        try:
            follow_id = uuid.UUID(feed_follow_id)
        except ValueError as exc:
            return respond_with_error(400, f"Error parsing feed follow ID: {exc}")
        try:
            self.db.delete_feed_follow(follow_id, user.id)
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Error deleting feed follow: {exc}")
        try:
            remaining = self.db.get_feed_follow(follow_id)
        except db.DatabaseError:
            remaining = None
        if remaining is not None and remaining.user_id != user.id:
            return respond_with_error(400, "User is not authorized to delete this feed follow\n")
        return respond_with_json(200, {"message": "Feed follow deleted"})

    def get_posts_for_user(self, user: db.User) -> Response:
        try:
            posts = self.db.get_posts_by_user(user.id, POSTS_LIMIT)
        except db.DatabaseError as exc:
            return respond_with_error(400, f"Couldn't get posts: {exc}")
        return respond_with_json(200, [Post.from_record(p).to_dict() for p in posts])