"""The web application and the server entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from datetime import timedelta

from dotenv import find_dotenv, load_dotenv
from flask import Flask, Response, request

from . import database
from .handlers import ApiConfig, handler_error, handler_readiness

log = logging.getLogger(__name__)

_ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
_ALLOWED_HEADERS = {"accept", "authorization", "content-type", "x-csrf-token"}
_MAX_AGE = "300"


def _origin_allowed(origin: str) -> bool:
    return origin.startswith(("http://", "https://"))


def create_app(db: database.Queries) -> Flask:
    """Build the application with its v1 routes and CORS handling."""
    app = Flask(__name__)
    cfg = ApiConfig(db)
    auth = cfg.middleware_auth

    routes = [
        ("/healthz", "readiness", handler_readiness, ["GET"]),
        ("/err", "error", handler_error, ["GET"]),
        ("/users", "create_user", cfg.create_user, ["POST"]),
        ("/users", "get_user", auth(cfg.get_user), ["GET"]),
        ("/feeds", "create_feed", auth(cfg.create_feed), ["POST"]),
        ("/feeds", "get_feeds", auth(cfg.get_feeds), ["GET"]),
        ("/feed_follows", "create_feed_follow", auth(cfg.create_feed_follow), ["POST"]),
        ("/feed_follows", "get_feed_follows", auth(cfg.get_feed_follows_by_user), ["GET"]),
        ("/feed_follows/<feed_follow_id>", "delete_feed_follow",
         auth(cfg.delete_feed_follow), ["DELETE"]),
        ("/posts", "get_posts", auth(cfg.get_posts_for_user), ["GET"]),
    ]
    for rule, endpoint, view, methods in routes:
        app.add_url_rule("/v1" + rule, endpoint, view, methods=methods)

    @app.before_request
    def _preflight():
        if request.method != "OPTIONS" or "Access-Control-Request-Method" not in request.headers:
            return None
        resp = Response(status=200)
        origin = request.headers.get("Origin", "")
        method = request.headers["Access-Control-Request-Method"].upper()
        wanted = [
            h.strip().lower()
            for h in request.headers.get("Access-Control-Request-Headers", "").split(",")
            if h.strip()
        ]
        resp.headers.add("Vary", "Origin")
        if (
            _origin_allowed(origin)
            and method in _ALLOWED_METHODS.split(", ")
            and all(h in _ALLOWED_HEADERS for h in wanted)
        ):
            resp.headers["Access-Control-Allow-Origin"] = origin
            resp.headers["Access-Control-Allow-Methods"] = method
            if wanted:
                resp.headers["Access-Control-Allow-Headers"] = ", ".join(wanted)
            resp.headers["Access-Control-Max-Age"] = _MAX_AGE
        return resp

    @app.after_request
    def _cors(resp: Response) -> Response:
        if request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers:
            return resp
        origin = request.headers.get("Origin", "")
        resp.headers.add("Vary", "Origin")
        if _origin_allowed(origin):
            resp.headers["Access-Control-Allow-Origin"] = origin
            resp.headers["Access-Control-Expose-Headers"] = "Link"
        return resp

    return app


def main(argv: list[str] | None = None) -> None:
    """Start the scraper and serve the API on $PORT with the database at $DB_URL."""
    argparse.ArgumentParser(description="RSS aggregator server").parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    env_file = find_dotenv(usecwd=True)
    if not env_file or not load_dotenv(env_file):
        sys.exit("Error loading .env file")
    print("Rss Aggregator")

    port = os.environ.get("PORT", "")
    if not port:
        sys.exit("PORT is not set")
    db_url = os.environ.get("DB_URL", "")
    if not db_url:
        sys.exit("DB_URL is not set")

    try:
        queries = database.open_database(db_url)
    except database.DatabaseError as exc:
        sys.exit(f"Cannot connect to db: {exc}")

    from .scraper import start_scraping

    threading.Thread(
        target=start_scraping, args=(queries, 10, timedelta(minutes=1)), daemon=True
    ).start()

    app = create_app(queries)
    log.info("Server starting on port %s", port)
    app.run(host="0.0.0.0", port=int(port))


if __name__ == "__main__":
    main()