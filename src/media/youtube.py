"""YouTube helpers: oEmbed metadata for video ids and a Data API search proxy."""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable, Iterable

from src.common.http import UpstreamError, fetch_json, gather_settled

logger = logging.getLogger("lifedash.media.youtube")

OEMBED_URL = "https://www.youtube.com/oembed"
SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
THUMB_URL = "https://i.ytimg.com/vi/{id}/hqdefault.jpg"
KEY_VARS = ("YT_API_KEY", "YT_API_KEY2")
MAX_IDS = 25
META_TIMEOUT = 6.0

_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,20}$")

JsonFetcher = Callable[..., Any]


def thumbnail_url(video_id: str) -> str:
    return THUMB_URL.format(id=video_id)


def parse_ids(raw: str | Iterable[str]) -> list[str]:
    """Comma-separated ids -> valid, de-duplicated ids, capped at 25."""
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    ids: list[str] = []
    for part in parts:
        vid = str(part).strip()
        if _ID_RE.match(vid) and vid not in ids:
            ids.append(vid)
    return ids[:MAX_IDS]


def video_meta(ids: Iterable[str], *, fetcher: JsonFetcher | None = None) -> list[dict[str, str]]:
    """``{id, title, thumb}`` per id, in order. A failing id keeps a fallback thumbnail."""
    fetcher = fetcher or fetch_json
    ids = list(ids)

    def _one(video_id: str) -> dict[str, str]:
        data = fetcher(
            OEMBED_URL,
            params={"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"},
            timeout=META_TIMEOUT,
        )
        return {
            "id": video_id,
            "title": str(data.get("title") or ""),
            "thumb": str(data.get("thumbnail_url") or thumbnail_url(video_id)),
        }

    items: list[dict[str, str]] = []
    for video_id, outcome in zip(ids, gather_settled(_one, ids)):
        if isinstance(outcome, BaseException):
            logger.info("oEmbed failed for %s: %s", video_id, outcome)
            items.append({"id": video_id, "title": "", "thumb": thumbnail_url(video_id)})
        else:
            items.append(outcome)
    return items


def api_key() -> str:
    return next((os.environ[k] for k in KEY_VARS if os.environ.get(k)), "")


def clamp_max(value: Any, default: int = 8) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        n = default
    return max(1, min(n, 25))


def search(query: str, max_results: Any = 8, *, fetcher: JsonFetcher | None = None) -> dict[str, Any]:
    """YouTube Data API v3 search -> ``{items: [{id, title, channel, thumb, publishedAt}]}``.

    Without an API key the result carries a ``note`` and no items. Upstream
    failures propagate as :class:`UpstreamError`.
    """
    key = api_key()
    if not key:
        return {"items": [], "note": "No YT_API_KEY set"}

    data = (fetcher or fetch_json)(
        SEARCH_URL,
        params={
            "part": "snippet",
            "type": "video",
            "maxResults": str(clamp_max(max_results)),
            "q": (query or "news")[:120],
            "key": key,
        },
        headers={"Accept": "application/json"},
    )
    if not isinstance(data, dict):
        raise UpstreamError("YouTube search returned a non-object body")

    items: list[dict[str, str]] = []
    for item in data.get("items") or []:
        video_id = (item.get("id") or {}).get("videoId")
        if not video_id:
            continue
        snippet = item.get("snippet") or {}
        thumbs = snippet.get("thumbnails") or {}
        items.append({
            "id": video_id,
            "title": snippet.get("title") or "",
            "channel": snippet.get("channelTitle") or "",
            "thumb": (thumbs.get("medium") or {}).get("url") or (thumbs.get("default") or {}).get("url") or "",
            "publishedAt": snippet.get("publishedAt") or "",
        })
    return {"items": items}
