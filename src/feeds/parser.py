"""Tolerant RSS 2.0 / Atom parser.

Real-world feeds are frequently invalid XML (stray ampersands, mixed
namespaces, CDATA everywhere), so items are pulled out with regexes rather
than an XML parser. Anything missing degrades to an empty string.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from src.common.text import absolutize, decode_text, hostname, strip_tags

logger = logging.getLogger("lifedash.feeds.parser")

MAX_ITEMS = 20

_ITEM_RE = re.compile(r"<item\b[\s\S]*?</item>", re.IGNORECASE)
_ENTRY_RE = re.compile(r"<entry\b[\s\S]*?</entry>", re.IGNORECASE)
_LINK_HREF_RE = re.compile(r"<link\b([^>]*?)/?>", re.IGNORECASE)
_HREF_RE = re.compile(r"\bhref\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_REL_RE = re.compile(r"\brel\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_URL_ATTR_RE = re.compile(r"\burl\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_IMG_SRC_RE = re.compile(r"<img[^>]+src\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)

DATE_TAGS = ("pubDate", "published", "updated", "dc:date", "a10:updated")
BODY_TAGS = ("content:encoded", "description", "summary", "content")
IMAGE_TAGS = ("media:thumbnail", "media:content", "enclosure")


@dataclass
class FeedItem:
    title: str
    link: str
    description: str
    image: str
    source: str
    time: str
    published: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _tag(block: str, name: str) -> str:
    """Raw inner text of the first ``<name ...>...</name>`` in ``block``."""
    m = re.search(
        rf"<{re.escape(name)}\b[^>]*>([\s\S]*?)</{re.escape(name)}>", block, re.IGNORECASE
    )
    return m.group(1) if m else ""


def _first_tag(block: str, names: tuple[str, ...]) -> str:
    for name in names:
        value = _tag(block, name)
        if value.strip():
            return value
    return ""


def _link(block: str) -> str:
    text = decode_text(_tag(block, "link"))
    if text:
        return text
    # Atom: <link rel="alternate" href="..."/>; prefer alternate, else first href.
    fallback = ""
    for attrs in _LINK_HREF_RE.findall(block):
        href = _HREF_RE.search(attrs)
        if not href:
            continue
        rel = _REL_RE.search(attrs)
        if rel is None or rel.group(1).lower() == "alternate":
            return decode_text(href.group(1))
        fallback = fallback or decode_text(href.group(1))
    return fallback


def _image(block: str, body: str) -> str:
    for name in IMAGE_TAGS:
        m = re.search(rf"<{re.escape(name)}\b([^>]*)>", block, re.IGNORECASE)
        if m:
            url = _URL_ATTR_RE.search(m.group(1))
            if url:
                return absolutize(decode_text(url.group(1)))
    m = _IMG_SRC_RE.search(body)
    return absolutize(decode_text(m.group(1))) if m else ""


def parse_date(value: Any) -> datetime | None:
    """RFC 822 or ISO-8601 string (or datetime) -> aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            dt = parsedate_to_datetime(raw)
        except (TypeError, ValueError, IndexError):
            try:
                dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                return None
        if dt is None:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def relative_time(value: Any, now: datetime | None = None) -> str:
    """Human age of ``value``: ``45s ago``, ``1m ago``, ``1h ago``, ``3d ago``.

    Unparseable input gives ``""``. Future timestamps count as zero seconds.
    """
    dt = parse_date(value)
    if dt is None:
        return ""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    seconds = max(0, int((now - dt).total_seconds()))
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 48:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def parse_feed(xml: str, feed_url: str = "", max_items: int = MAX_ITEMS, now: datetime | None = None) -> list[FeedItem]:
    """Extract up to ``max_items`` items from an RSS or Atom document."""
    if not xml:
        return []
    blocks = _ITEM_RE.findall(xml) or _ENTRY_RE.findall(xml)

    items: list[FeedItem] = []
    for block in blocks:
        title = strip_tags(decode_text(_tag(block, "title")))
        link = _link(block)
        if not title or not link:
            continue

        body = decode_text(_first_tag(block, BODY_TAGS))
        dt = parse_date(decode_text(_first_tag(block, DATE_TAGS)))
        items.append(
            FeedItem(
                title=title,
                link=link,
                description=strip_tags(body),
                image=_image(block, body),
                source=hostname(link) or hostname(feed_url),
                time=relative_time(dt, now) if dt else "",
                published=dt.isoformat() if dt else "",
            )
        )
        if len(items) >= max_items:
            break

    logger.debug("Parsed %d items from %s", len(items), feed_url or "<inline>")
    return items
