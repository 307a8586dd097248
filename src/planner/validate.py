"""Stage 2 validation: turn untrusted model output into a well-formed tile.

Model output is never trusted. Anything that is not a JSON object with a
known ``type`` is rejected in favour of a fallback tile; known types get
their required fields backfilled from the original query, and a Spotify plan
without a real open.spotify.com URL is downgraded to a web tile.
"""

from __future__ import annotations

import logging
import re
from typing import Any, NamedTuple

from src.ai.json_salvage import salvage_json
from src.planner import travel
from src.planner.heuristics import extract_youtube_id, parse_symbols
from src.planner.tiles import (
    DEFAULT_SYMBOLS,
    TILE_TYPES,
    DiscoverTile,
    GalleryTile,
    MapsTile,
    NewsTile,
    RssTile,
    SpotifyTile,
    StocksTile,
    Tile,
    WebTile,
    YoutubeTile,
    default_title,
    gallery_image_urls,
    google_news_rss_url,
    google_search_url,
    safe_default,
    spotify_search_url,
)

logger = logging.getLogger("lifedash.planner.validate")

MAX_TILES = 3
MAX_TITLE_CHARS = 120

_HTTP_URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
_BARE_DOMAIN_RE = re.compile(r"^(?:www\.)?[a-z0-9-]+(?:\.[a-z0-9-]+)+(?:/\S*)?$", re.IGNORECASE)
_SPOTIFY_URL_RE = re.compile(r"^https://open\.spotify\.com/[^\s]+$", re.IGNORECASE)
_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,20}$")
_SYMBOL_RE = re.compile(r"^\^?[A-Z0-9][A-Z0-9.\-=/]{0,14}$")


class Validated(NamedTuple):
    tile: Tile
    note: str | None


# ── Field coercion ───────────────────────────────────────────────────────────

def _text(value: Any) -> str:
    return re.sub(r"\s+", " ", value).strip() if isinstance(value, str) else ""


def _texts(value: Any, limit: int) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    out = [_text(v) for v in value]
    return [v for v in out if v][:limit]


def _http_url(value: Any) -> str:
    url = _text(value)
    if _HTTP_URL_RE.match(url):
        return url
    if _BARE_DOMAIN_RE.match(url):
        return f"https://{url}"
    return ""


def _http_urls(value: Any, limit: int) -> list[str]:
    return [u for u in (_http_url(v) for v in _texts(value, limit * 2)) if u][:limit]


def _video_ids(value: Any) -> list[str]:
    ids: list[str] = []
    for item in _texts(value, 25):
        vid = extract_youtube_id(item) or (item if _VIDEO_ID_RE.match(item) else None)
        if vid and vid not in ids:
            ids.append(vid)
    return ids


def _symbols(value: Any) -> list[str]:
    raw = " ".join(_texts(value, 12))
    return [s for s in parse_symbols(raw) if _SYMBOL_RE.match(s)]


# ── Per-type construction ────────────────────────────────────────────────────

def _build(tile_type: str, data: dict[str, Any], query: str) -> Tile:
    title = _text(data.get("title"))[:MAX_TITLE_CHARS]

    if tile_type == "web":
        return WebTile(title=title, url=_http_url(data.get("url")) or google_search_url(query))

    if tile_type == "maps":
        q = _text(data.get("q")) or _text(data.get("query"))
        if travel.is_generic_maps_query(q):
            q = travel.normalize_maps_query(query)
        return MapsTile(title=title, q=q or query)

    if tile_type == "rss":
        feeds = _http_urls(data.get("feeds"), 5) or [google_news_rss_url(query)]
        return RssTile(title=title, feeds=feeds)

    if tile_type == "news":
        topic = _text(data.get("topic")) or query
        feeds = _http_urls(data.get("feeds"), 5) or [google_news_rss_url(topic)]
        return NewsTile(title=title, topic=topic, feeds=feeds)

    if tile_type == "youtube":
        playlist = _video_ids(data.get("playlist"))
        if not playlist:
            vid = extract_youtube_id(query)
            playlist = [vid] if vid else []
        return YoutubeTile(title=title, playlist=playlist, q="" if playlist else query)

    if tile_type == "stocks":
        return StocksTile(title=title, symbols=_symbols(data.get("symbols")) or list(DEFAULT_SYMBOLS))

    if tile_type == "gallery":
        return GalleryTile(title=title, images=_http_urls(data.get("images"), 12) or gallery_image_urls(query))

    if tile_type == "spotify":
        url = _text(data.get("spotifyUrl") or data.get("spotify_url") or data.get("url"))
        if _SPOTIFY_URL_RE.match(url):
            return SpotifyTile(title=title, spotify_url=url)
        logger.info("Spotify plan without a usable URL, downgrading to web search")
        return WebTile(title=title, url=spotify_search_url(query))

    if tile_type == "discover":
        return DiscoverTile(title=title, topic=_text(data.get("topic")) or query)

    raise ValueError(f"unknown tile type {tile_type!r}")


def _with_title(tile: Tile, query: str) -> Tile:
    if not tile.title:
        tile.title = default_title(tile.type, query)
    return tile


def _tile_type(data: dict[str, Any]) -> str:
    raw = data.get("type")
    return raw.strip().lower() if isinstance(raw, str) else ""


# ── Public API ───────────────────────────────────────────────────────────────

def sanitize_plan(data: Any, query: str, fallback: Tile | None = None) -> Validated:
    """Validate one decoded plan. Rejections return ``fallback`` (safe default if None)."""
    fallback = fallback or safe_default(query)

    if not isinstance(data, dict):
        return Validated(fallback, "ai_parse_fallback")

    tile_type = _tile_type(data)
    if tile_type not in TILE_TYPES:
        logger.info("Rejected plan with type %r for %r", data.get("type"), query)
        return Validated(fallback, "ai_type_fallback")

    return Validated(_with_title(_build(tile_type, data, query), query), None)


def parse_plan(raw: str, query: str, fallback: Tile | None = None) -> Validated:
    """Salvage-parse raw model text, then :func:`sanitize_plan` it."""
    data = salvage_json(raw)
    if isinstance(data, list):
        # Asked for one tile, got several: take the first.
        data = data[0] if data else None
    elif isinstance(data, dict) and "type" not in data and isinstance(data.get("tiles"), list):
        data = data["tiles"][0] if data["tiles"] else None
    return sanitize_plan(data, query, fallback)


def sanitize_plans(data: Any, query: str, limit: int = MAX_TILES) -> list[Tile]:
    """Validate a multi-tile answer. Invalid entries are dropped, not replaced."""
    if isinstance(data, dict):
        entries = data.get("tiles") if isinstance(data.get("tiles"), list) else [data]
    elif isinstance(data, list):
        entries = data
    else:
        return []

    tiles: list[Tile] = []
    seen: list[dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, dict) or _tile_type(entry) not in TILE_TYPES:
            continue
        tile = _with_title(_build(_tile_type(entry), entry, query), query)
        fingerprint = {k: v for k, v in tile.to_dict().items() if k != "title"}
        if fingerprint in seen:
            continue
        seen.append(fingerprint)
        tiles.append(tile)
        if len(tiles) >= limit:
            break
    return tiles
