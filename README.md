# rssagg

rssagg is a small RSS aggregator. It serves a JSON HTTP API where users
register, add RSS feeds and follow them, and it runs a background scraper
that fetches feeds on a schedule and stores their posts in a SQLite
database.

## Running the server

The server needs a `.env` file, looked up from the working directory
upwards; it refuses to start if none is found or if the file sets no
variables. The settings themselves are read from the environment after that
file has been loaded:

```
PORT=8080
DB_URL=rssagg.db
```

- `PORT` is the port the HTTP server listens on (on all interfaces).
- `DB_URL` is the path of the SQLite database file. It is created, along
  with its tables, if it does not exist.

Both are required; the server exits with a message if either is missing,
or if the database cannot be opened.

Start the server with:

```
rssagg
```

The command takes no options besides `--help`. It serves the application
with Flask's built-in server.

The scraper starts along with the server, in a background thread. Every
minute it takes the ten feeds fetched least recently (feeds never fetched
come first), marks them as fetched and downloads them side by side, each
with a ten-second timeout. Items whose `pubDate` is not in RFC 1123 form
with a numeric zone (`Mon, 02 Jan 2006 15:04:05 -0700`) are skipped. Posts
whose URL is already stored are ignored.

## Authentication

`POST /v1/users` returns a new user together with a generated API key.
Endpoints marked as authenticated below expect that key in the
`Authorization` header:

```
Authorization: ApiKey placeholder
```

A missing or malformed header is answered with status 403. A key that
matches no user is answered with status 400.

## Endpoints

All paths start with `/v1`. Every response body is JSON. An error body has
the form `{"error": "<message>"}`; a request body that is not a JSON object
is answered with status 400.

| Method | Path | Auth | Body | Result |
|--------|------|------|------|--------|
| GET | `/v1/healthz` | no | | `200 {}` |
| GET | `/v1/err` | no | | `400 {"error": "Something went wrong"}` |
| POST | `/v1/users` | no | `{"name": ...}` | `201` the new user |
| GET | `/v1/users` | yes | | `200` the calling user |
| POST | `/v1/feeds` | yes | `{"name": ..., "url": ...}` | `201` the new feed |
| GET | `/v1/feeds` | yes | | `200` the caller's feeds |
| POST | `/v1/feed_follows` | yes | `{"feed_id": ...}` | `201` the new follow |
| GET | `/v1/feed_follows` | yes | | `200` the caller's follows |
| DELETE | `/v1/feed_follows/<feed_follow_id>` | yes | | `200 {"message": "Feed follow deleted"}` |
| GET | `/v1/posts` | yes | | `200` the ten newest posts from feeds the caller created |

Feed URLs are unique, as are follows of one feed by one user; a duplicate is
answered with status 400. Timestamps are RFC 3339 strings in UTC. A post's
`description` is `null` when the feed item had none.

Cross-origin requests are allowed from any `http` or `https` origin for the
methods GET, POST, PUT, DELETE and OPTIONS, with the request headers
`Accept`, `Authorization`, `Content-Type` and `X-CSRF-Token`; the `Link`
header is exposed, and preflight responses may be cached for five minutes.

## Using it as a library

The pieces can be put together by hand, for example for tests or for
running under another WSGI server:

```python
from rssagg.database import open_database
from rssagg.app import create_app

db = open_database("rssagg.db")
app = create_app(db)
```

- `rssagg.database.Queries` wraps a `sqlite3` connection and offers the
  queries the API uses (`create_user`, `get_user_by_api_key`, `create_feed`,
  `get_next_feeds_to_fetch`, `create_post`, `get_posts_by_user` and so on),
  plus `create_schema()` and a `transaction()` context manager. Failures
  raise `DatabaseError`, with `NotFoundError` and `DuplicateKeyError` as
  subclasses.
- `rssagg.rss.parse_feed` turns the bytes of an RSS document into an
  `RSSFeed`, and `rssagg.rss.url_to_feed` downloads and parses one.
- `rssagg.scraper.scrape_feed` processes a single feed;
  `rssagg.scraper.start_scraping(db, concurrency, interval, stop_event)`
  runs the scraping loop until the given `threading.Event` is set.
- `rssagg.auth.get_api_key` reads the key from a header mapping and raises
  `ApiKeyError` when it is missing or malformed.

## What it does not do

Storage is SQLite only; `DB_URL` is a file path, not a connection string
for a database server. The scraper's batch size and interval are fixed at
ten feeds and one minute when started by the `rssagg` command. There is no
endpoint listing every feed: `ApiConfig.get_all_feeds` exists but is not
routed.