"""Stage 1 of tile planning: fast, network-free intent rules.

Rules run in a fixed priority order and the first match wins, so the same
query always maps to the same tile. Rules marked decisive are trusted
outright; the others are a baseline the LLM planner may improve on.
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple
from urllib.parse import urlparse

from src.common.text import hostname
from src.planner import travel
from src.planner.tiles import (
    DEFAULT_SYMBOLS,
    UK_HEADLINE_FEEDS,
    GalleryTile,
    MapsTile,
    NewsTile,
    RssTile,
    SpotifyTile,
    StocksTile,
    Tile,
    WebTile,
    YoutubeTile,
    gallery_image_urls,
    google_news_rss_url,
    google_search_url,
    spotify_search_url,
)

logger = logging.getLogger("lifedash.planner.heuristics")

URL_RE = re.compile(r"^[a-z][a-z0-9+.-]*://\S+$", re.IGNORECASE)
YOUTUBE_ID_RE = re.compile(
    r"(?:youtube\.com/(?:watch\?(?:[^#\s]*?&)?v=|shorts/|embed/|live/)|youtu\.be/)([A-Za-z0-9_-]{6,})",
    re.IGNORECASE,
)
YOUTUBE_HOST_RE = re.compile(r"(^|\.)(youtube\.com|youtu\.be)$", re.IGNORECASE)
YOUTUBE_WORD_RE = re.compile(r"\byoutube\b", re.IGNORECASE)
SPOTIFY_URL_RE = re.compile(r"^https?://open\.spotify\.com/\S+$", re.IGNORECASE)
YOUTUBE_HANDLE_RE = re.compile(r"/@([\w.-]+)")
SPOTIFY_WORD_RE = re.compile(r"\bspotify\b", re.IGNORECASE)
TICKER_TOKEN_RE = re.compile(r"^\$?[A-Z]{1,5}(?:[.\-][A-Z]{1,4})?$")
DOLLAR_TICKER_RE = re.compile(r"(?<![\w$])\$([A-Za-z]{1,5}(?:[.\-][A-Za-z]{1,4})?)\b")
STOCKS_PREFIX_RE = re.compile(r"^stocks?\b[:\s]*", re.IGNORECASE)
NEWS_PREFIX_RE = re.compile(r"^news\b[:\s]*(.*)$", re.IGNORECASE | re.DOTALL)
SHOPPING_RE = re.compile(
    r"\b(buy|for sale|price|prices|cheapest|cheap|deals?|reviews?|compare|best)\b", re.IGNORECASE
)
HOWTO_RE = re.compile(r"\b(recipes?|how to|how do i|tutorials?|guide|diy)\b", re.IGNORECASE)
GALLERY_RE = re.compile(
    r"\b(wallpapers?|aesthetic|mood\s?boards?|inspiration|logo\s+ideas?|poster\s+ideas?|"
    r"reference\s+sheets?|concept\s+art|interior\s+design)\b",
    re.IGNORECASE,
)
_SPLIT_RE = re.compile(r"[,\s]+")


class Heuristic(NamedTuple):
    tile: Tile
    rule: str
    decisive: bool


def extract_youtube_id(text: str) -> str | None:
    """Video id from a ``watch?v=`` / ``youtu.be/`` / ``shorts/`` URL in ``text``."""
    m = YOUTUBE_ID_RE.search(text or "")
    return m.group(1) if m else None


def parse_symbols(text: str) -> list[str]:
    """Split on commas/whitespace, strip ``$`` and uppercase; order kept, dupes dropped."""
    out: list[str] = []
    for token in _SPLIT_RE.split(text or ""):
        sym = token.strip().lstrip("$").upper()
        if sym and sym not in out:
            out.append(sym)
    return out


def _is_ticker_list(query: str) -> bool:
    tokens = [t for t in _SPLIT_RE.split(query) if t]
    return bool(tokens) and all(TICKER_TOKEN_RE.match(t) for t in tokens)


def _url_rule(query: str) -> Heuristic | None:
    if not URL_RE.match(query):
        return None
    host = urlparse(query).hostname or ""
    if YOUTUBE_HOST_RE.search(host):
        return _youtube_url_rule(query)
    if SPOTIFY_URL_RE.match(query):
        return Heuristic(SpotifyTile(title="Spotify", spotify_url=query), "spotify_url", True)
    return Heuristic(WebTile(title=hostname(query) or query, url=query), "url", True)


def _travel_rule(query: str) -> Heuristic | None:
    if not travel.is_travel_query(query):
        return None
    q = travel.normalize_maps_query(query)
    return Heuristic(MapsTile(title=f"Search — {query}", q=q), "travel", True)


def _spotify_rule(query: str) -> Heuristic | None:
    if SPOTIFY_URL_RE.match(query):
        return Heuristic(SpotifyTile(title="Spotify", spotify_url=query), "spotify_url", True)
    if not SPOTIFY_WORD_RE.search(query):
        return None
    rest = re.sub(r"\s+", " ", SPOTIFY_WORD_RE.sub(" ", query)).strip() or query
    # No embeddable URL can be derived from words alone.
    tile = WebTile(title=f"Spotify — {rest}", url=spotify_search_url(rest))
    return Heuristic(tile, "spotify_search", False)


def _stocks_rule(query: str) -> Heuristic | None:
    if STOCKS_PREFIX_RE.match(query):
        symbols = parse_symbols(STOCKS_PREFIX_RE.sub("", query, count=1)) or list(DEFAULT_SYMBOLS)
        return Heuristic(StocksTile(title="Markets", symbols=symbols), "stocks_prefix", True)
    if _is_ticker_list(query):
        return Heuristic(StocksTile(title="Markets", symbols=parse_symbols(query)), "tickers", True)
    dollar = DOLLAR_TICKER_RE.findall(query)
    if dollar:
        return Heuristic(StocksTile(title="Markets", symbols=parse_symbols(" ".join(dollar))), "cashtags", True)
    return None


def _youtube_url_rule(url: str) -> Heuristic:
    """YouTube links: a video id plays; channel/playlist links become a search."""
    video_id = extract_youtube_id(url)
    if video_id:
        return Heuristic(YoutubeTile(title="YouTube", playlist=[video_id]), "youtube_url", True)
    handle = YOUTUBE_HANDLE_RE.search(url)
    if handle:
        name = handle.group(1)
        return Heuristic(YoutubeTile(title=f"YouTube — {name}", playlist=[], q=name), "youtube_channel", True)
    return Heuristic(YoutubeTile(title="YouTube", playlist=[], q=url), "youtube_link", True)


def _youtube_rule(query: str) -> Heuristic | None:
    video_id = extract_youtube_id(query)
    if video_id:
        return Heuristic(YoutubeTile(title="YouTube", playlist=[video_id]), "youtube_url", True)
    if not YOUTUBE_WORD_RE.search(query):
        return None
    rest = re.sub(r"\s+", " ", YOUTUBE_WORD_RE.sub(" ", query)).strip()
    title = f"YouTube — {rest}" if rest else "YouTube"
    return Heuristic(YoutubeTile(title=title, playlist=[], q=rest or query), "youtube_keyword", True)


def _news_rule(query: str) -> Heuristic | None:
    m = NEWS_PREFIX_RE.match(query)
    if not m:
        return None
    topic = m.group(1).strip()
    if topic:
        tile = NewsTile(title=f"News — {topic}", topic=topic, feeds=[google_news_rss_url(topic)])
    else:
        tile = NewsTile(title="Daily Brief", topic="", feeds=list(UK_HEADLINE_FEEDS))
    return Heuristic(tile, "news_prefix", True)


def _intent_rule(query: str) -> Heuristic | None:
    if SHOPPING_RE.search(query):
        return Heuristic(WebTile(title=f"Search — {query}", url=google_search_url(query)), "shopping", False)
    if HOWTO_RE.search(query):
        return Heuristic(WebTile(title=f"Search — {query}", url=google_search_url(query)), "how_to", False)
    if GALLERY_RE.search(query):
        return Heuristic(GalleryTile(title=f"Gallery — {query}", images=gallery_image_urls(query, 8)), "gallery", False)
    return None


def default_tile(query: str) -> RssTile:
    """Terminal state for unclassified queries: a Google News search feed."""
    return RssTile(title=f"Daily Brief — {query}", feeds=[google_news_rss_url(query)])


_RULES = (_url_rule, _travel_rule, _spotify_rule, _stocks_rule, _youtube_rule, _news_rule, _intent_rule)


def classify(query: str) -> Heuristic:
    """Map ``query`` to a tile without any network call. Never fails."""
    q = re.sub(r"\s+", " ", (query or "").strip())
    for rule in _RULES:
        hit = rule(q)
        if hit is not None:
            logger.debug("Heuristic %s matched %r", hit.rule, q)
            return hit
    return Heuristic(default_tile(q), "default", False)
