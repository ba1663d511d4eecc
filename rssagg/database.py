"""SQLite storage for users, feeds, feed follows and posts."""

from __future__ import annotations

import hashlib
import secrets
import sqlite3
import threading
import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    api_key TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    published_at TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "id, created_at, updated_at, name, api_key"
_FEED_COLUMNS = "id, created_at, updated_at, name, url, user_id, last_fetched_at"
_FOLLOW_COLUMNS = "id, created_at, updated_at, user_id, feed_id"
_POST_COLUMNS = "id, created_at, updated_at, title, description, published_at, url, feed_id"


class DatabaseError(Exception):
    """Raised when a database operation fails."""


class NotFoundError(DatabaseError):
    """Raised when a query that returns one row finds none."""


class DuplicateKeyError(DatabaseError):
    """Raised when an insert violates a unique constraint."""


@dataclass(frozen=True)
class User:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    api_key: str


@dataclass(frozen=True)
class Feed:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: uuid.UUID
    last_fetched_at: datetime | None


@dataclass(frozen=True)
class FeedFollow:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID
    feed_id: uuid.UUID


@dataclass(frozen=True)
class Post:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    title: str
    description: str | None
    published_at: datetime
    url: str
    feed_id: uuid.UUID


def _encode_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _decode_time(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _decode_optional_time(value: str | None) -> datetime | None:
    return None if value is None else _decode_time(value)


def _user(row: Sequence[Any]) -> User:
    return User(
        id=uuid.UUID(row[0]),
        created_at=_decode_time(row[1]),
        updated_at=_decode_time(row[2]),
        name=row[3],
        api_key=row[4],
    )


def _feed(row: Sequence[Any]) -> Feed:
    return Feed(
        id=uuid.UUID(row[0]),
        created_at=_decode_time(row[1]),
        updated_at=_decode_time(row[2]),
        name=row[3],
        url=row[4],
        user_id=uuid.UUID(row[5]),
        last_fetched_at=_decode_optional_time(row[6]),
    )


def _feed_follow(row: Sequence[Any]) -> FeedFollow:
    return FeedFollow(
        id=uuid.UUID(row[0]),
        created_at=_decode_time(row[1]),
        updated_at=_decode_time(row[2]),
        user_id=uuid.UUID(row[3]),
        feed_id=uuid.UUID(row[4]),
    )


def _post(row: Sequence[Any]) -> Post:
    return Post(
        id=uuid.UUID(row[0]),
        created_at=_decode_time(row[1]),
        updated_at=_decode_time(row[2]),
        title=row[3],
        description=row[4],
        published_at=_decode_time(row[5]),
        url=row[6],
        feed_id=uuid.UUID(row[7]),
    )


def _check_limit(limit: int) -> int:
    if limit < 0:
        raise DatabaseError("LIMIT must not be negative")
    return limit


class Queries:
    """Typed queries over one SQLite connection, safe to share between threads."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        connection.isolation_level = None
        self._conn = connection
        self._lock = threading.RLock()
        with self._guard():
            self._conn.execute("PRAGMA foreign_keys = ON")

    @contextmanager
    def _guard(self) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except sqlite3.IntegrityError as exc:
                if "UNIQUE" in str(exc):
                    raise DuplicateKeyError(
                        f"duplicate key value violates unique constraint: {exc}"
                    ) from exc
                raise DatabaseError(str(exc)) from exc
            except sqlite3.Error as exc:
                raise DatabaseError(str(exc)) from exc

    def _one(self, sql: str, params: Sequence[Any], factory: Callable[[Sequence[Any]], T]) -> T:
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError("no rows in result set")
        return factory(row)

    def _many(self, sql: str, params: Sequence[Any], factory: Callable[[Sequence[Any]], T]) -> list[T]:
        with self._guard():
            return [factory(row) for row in self._conn.execute(sql, params)]

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        with self._guard():
            self._conn.executescript(_SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed queries in one transaction, rolled back on error."""
        with self._lock:
            with self._guard():
                self._conn.execute("BEGIN")
            try:
                yield self
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            with self._guard():
                self._conn.execute("COMMIT")

    def create_user(self, id: uuid.UUID, created_at: datetime, updated_at: datetime, name: str) -> User:
        api_key = hashlib.sha256(secrets.token_hex(32).encode()).hexdigest()
        with self._guard():
            self._conn.execute(
                "INSERT INTO users (id, created_at, updated_at, name, api_key) VALUES (?, ?, ?, ?, ?)",
                (str(id), _encode_time(created_at), _encode_time(updated_at), name, api_key),
            )
            return self._one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(id),), _user)

    def get_user_by_api_key(self, api_key: str) -> User:
        with self._guard():
            return self._one(
                f"SELECT {_USER_COLUMNS} FROM users WHERE api_key = ?", (api_key,), _user
            )

    def create_feed(
        self,
        id: uuid.UUID,
        created_at: datetime,
        updated_at: datetime,
        name: str,
        url: str,
        user_id: uuid.UUID,
    ) -> Feed:
        with self._guard():
            self._conn.execute(
                "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (str(id), _encode_time(created_at), _encode_time(updated_at), name, url, str(user_id)),
            )
            return self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(id),), _feed)

    def get_feeds(self) -> list[Feed]:
        return self._many(f"SELECT {_FEED_COLUMNS} FROM feeds", (), _feed)

    def get_feeds_by_user(self, user_id: uuid.UUID) -> list[Feed]:
        return self._many(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE user_id = ?", (str(user_id),), _feed
        )

    def get_next_feeds_to_fetch(self, limit: int) -> list[Feed]:
        """Return up to ``limit`` feeds, never-fetched first, then oldest fetch first."""
        return self._many(
            f"SELECT {_FEED_COLUMNS} FROM feeds "
            "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT ?",
            (_check_limit(limit),),
            _feed,
        )

    def mark_feed_as_fetched(self, id: uuid.UUID) -> Feed:
        now = _encode_time(datetime.now(timezone.utc))
        with self._guard():
            cursor = self._conn.execute(
                "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
                (now, now, str(id)),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("no rows in result set")
            return self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(id),), _feed)

    def create_feed_follow(
        self,
        id: uuid.UUID,
        created_at: datetime,
        updated_at: datetime,
        user_id: uuid.UUID,
        feed_id: uuid.UUID,
    ) -> FeedFollow:
        with self._guard():
            self._conn.execute(
                "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
                "VALUES (?, ?, ?, ?, ?)",
                (str(id), _encode_time(created_at), _encode_time(updated_at), str(user_id), str(feed_id)),
            )
            return self._one(
                f"SELECT {_FOLLOW_COLUMNS} FROM feed_follows WHERE id = ?", (str(id),), _feed_follow
            )

    def delete_feed_follow(self, id: uuid.UUID, user_id: uuid.UUID) -> None:
        with self._guard():
            self._conn.execute(
                "DELETE FROM feed_follows WHERE id = ? AND user_id = ?", (str(id), str(user_id))
            )

    def get_feed_follow(self, id: uuid.UUID) -> FeedFollow:
        with self._guard():
            return self._one(
                f"SELECT {_FOLLOW_COLUMNS} FROM feed_follows WHERE id = ?", (str(id),), _feed_follow
            )

    def get_feed_follows_by_user(self, user_id: uuid.UUID) -> list[FeedFollow]:
        return self._many(
            f"SELECT {_FOLLOW_COLUMNS} FROM feed_follows WHERE user_id = ?",
            (str(user_id),),
            _feed_follow,
        )

    def create_post(
        self,
        id: uuid.UUID,
        created_at: datetime,
        updated_at: datetime,
        title: str,
        description: str | None,
        published_at: datetime,
        url: str,
        feed_id: uuid.UUID,
    ) -> Post:
        with self._guard():
            self._conn.execute(
                "INSERT INTO posts (id, created_at, updated_at, title, description, published_at, url, feed_id) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(id),
                    _encode_time(created_at),
                    _encode_time(updated_at),
                    title,
                    description,
                    _encode_time(published_at),
                    url,
                    str(feed_id),
                ),
            )
            return self._one(f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?", (str(id),), _post)

    def get_posts_by_user(self, user_id: uuid.UUID, limit: int) -> list[Post]:
        """Return the newest posts of feeds the user created, newest first."""
        return self._many(
            f"SELECT {_POST_COLUMNS} FROM posts "
            "WHERE feed_id IN (SELECT id FROM feeds WHERE user_id = ?) "
            "ORDER BY published_at DESC LIMIT ?",
            (str(user_id), _check_limit(limit)),
            _post,
        )


def open_database(path: str) -> Queries:
    """Open (or create) the database at ``path`` with its schema in place."""
    try:
        connection = sqlite3.connect(path, check_same_thread=False)
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc
    queries = Queries(connection)
    queries.create_schema()
    return queries