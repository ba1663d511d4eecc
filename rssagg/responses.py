"""JSON responses for the HTTP API."""

from __future__ import annotations

import json
import logging
from typing import Any

from flask import Response

log = logging.getLogger(__name__)


def respond_with_json(code: int, payload: Any) -> Response:
    """Serialise ``payload`` as compact JSON with status ``code``; 500 if it cannot be."""
    try:
        body = json.dumps(payload, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        log.error("Failed to marshal JSON response: %s", exc)
        return Response(status=500)
    return Response(body, status=code, content_type="application/json")


def respond_with_error(code: int, message: str) -> Response:
    """Respond with ``{"error": message}``, logging server errors."""
    if code > 499:
        log.error("Responding with 5XX error: %s", message)
    return respond_with_json(code, {"error": message})