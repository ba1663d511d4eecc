"""Fetching and parsing of RSS documents."""

from __future__ import annotations

import urllib.error
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

_CHANNEL_FIELDS = ("title", "link", "description", "language")
_ITEM_FIELDS = {"title": "title", "link": "link", "description": "description", "pubDate": "pub_date"}


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSChannel:
    title: str = ""
    link: str = ""
    description: str = ""
    language: str = ""
    items: list[RSSItem] = field(default_factory=list)


@dataclass
class RSSFeed:
    channel: RSSChannel = field(default_factory=RSSChannel)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _chardata(element: ET.Element) -> str:
    """Text directly inside an element, leaving out its child elements."""
    return "".join([element.text or ""] + [child.tail or "" for child in element])


def _parse_item(element: ET.Element) -> RSSItem:
    values = {
        _ITEM_FIELDS[_local_name(child.tag)]: _chardata(child)
        for child in element
        if _local_name(child.tag) in _ITEM_FIELDS
    }
    return RSSItem(**values)


def parse_feed(data: bytes | str) -> RSSFeed:
    """Parse an RSS document; missing elements are left empty."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ValueError(f"invalid XML: {exc}") from exc

    channel = RSSChannel()
    for channel_element in root:
        if _local_name(channel_element.tag) != "channel":
            continue
        for child in channel_element:
            name = _local_name(child.tag)
            if name == "item":
                channel.items.append(_parse_item(child))
            elif name in _CHANNEL_FIELDS:
                setattr(channel, name, _chardata(child))
    return RSSFeed(channel=channel)


def url_to_feed(url: str, timeout: float = 10.0) -> RSSFeed:
    """Download ``url`` and parse the body as RSS, whatever the status code."""
    scheme = urllib.parse.urlsplit(url).scheme
    if scheme not in ("http", "https"):
        raise ValueError(f"unsupported protocol scheme {scheme!r}")
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            data = response.read()
    except urllib.error.HTTPError as exc:
        try:
            data = exc.read()
        finally:
            exc.close()
    return parse_feed(data)