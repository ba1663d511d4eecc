"""Extraction of API keys from request headers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_HEADER_NAME = "authorization"
_SCHEME = "ApiKey"


class ApiKeyError(ValueError):
    """Raised when a request carries no usable API key."""


def _first_header_value(headers: Mapping[str, Any], name: str) -> str:
    target = name.lower()
    for key, value in headers.items():
        if key.lower() != target:
            continue
        if isinstance(value, (list, tuple)):
            return str(value[0]) if value else ""
        return str(value)
    return ""


def get_api_key(headers: Mapping[str, Any]) -> str:
    """Return the key from an ``Authorization: ApiKey <key>`` header."""
    value = _first_header_value(headers, _HEADER_NAME)
    if not value:
        raise ApiKeyError("No Authentication header found")

    pieces = value.split(" ")
    if len(pieces) != 2 or pieces[0] != _SCHEME:
        raise ApiKeyError("Invalid Authentication header")
    return pieces[1]