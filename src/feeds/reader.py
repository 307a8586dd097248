"""Multi-URL feed reading with ordered fallback.

Feeds are tried in the order given; the first one that downloads and yields
at least one item wins. :func:`read_feeds` never raises: total failure comes
back as an empty item list plus the last error message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from src.common.http import DEFAULT_TIMEOUT, UpstreamError, fetch
from src.feeds.parser import MAX_ITEMS, FeedItem, parse_feed

logger = logging.getLogger("lifedash.feeds")

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, text/xml;q=0.8, */*;q=0.5"

Fetcher = Callable[..., str]


@dataclass
class FeedResult:
    items: list[FeedItem] = field(default_factory=list)
    error: str | None = None
    feed: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"items": [i.to_dict() for i in self.items]}
        if self.error is not None:
            out["error"] = self.error
        else:
            out["feed"] = self.feed
        return out


def http_feed_text(url: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    return fetch(url, headers={"Accept": FEED_ACCEPT}, timeout=timeout).text


def split_feed_urls(*values: str | None) -> list[str]:
    """Comma-separated URL parameters -> ordered, de-duplicated URL list."""
    urls: list[str] = []
    for value in values:
        for part in (value or "").split(","):
            url = part.strip()
            if url and url not in urls:
                urls.append(url)
    return urls


def read_feeds(
    urls: Iterable[str],
    *,
    fetcher: Fetcher | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_items: int = MAX_ITEMS,
) -> FeedResult:
    """Return items from the first feed in ``urls`` that produces any."""
    fetcher = fetcher or http_feed_text
    urls = [u for u in urls if u]
    if not urls:
        return FeedResult(error="no feed url")

    last_error = "no items"
    for url in urls:
        try:
            xml = fetcher(url, timeout=timeout)
        except UpstreamError as exc:
            logger.warning("Feed %s failed: %s", url, exc)
            last_error = str(exc)
            continue
        except Exception as exc:
            logger.exception("Unexpected error fetching feed %s", url)
            last_error = str(exc) or exc.__class__.__name__
            continue

        items = parse_feed(xml, url, max_items=max_items)
        if items:
            return FeedResult(items=items, feed=url)
        logger.info("Feed %s returned no usable items", url)
        last_error = f"no items in {url}"

    return FeedResult(error=last_error)
