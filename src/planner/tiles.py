"""Tile descriptors: one dataclass per tile type.

A descriptor carries exactly one ``type`` and only the fields that type
renders from. ``to_dict()`` produces the wire shape the dashboard consumes
(``{"type": ..., "title": ..., <type fields>}``).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar

from src.common.text import encode_component

TILE_TYPES: tuple[str, ...] = (
    "web", "maps", "rss", "youtube", "stocks", "gallery", "spotify", "news", "discover",
)

TYPE_LABELS: dict[str, str] = {
    "web": "Web",
    "maps": "Map",
    "rss": "Daily Brief",
    "youtube": "YouTube",
    "stocks": "Markets",
    "gallery": "Gallery",
    "spotify": "Spotify",
    "news": "News",
    "discover": "Discover",
}

DEFAULT_SYMBOLS: tuple[str, ...] = ("AAPL", "MSFT")
UK_HEADLINE_FEEDS: tuple[str, ...] = (
    "https://feeds.bbci.co.uk/news/rss.xml",
    "https://www.theguardian.com/uk-news/rss",
)

# Python attribute -> wire field name, where they differ.
_WIRE_NAMES = {"spotify_url": "spotifyUrl"}


# ── URL builders ─────────────────────────────────────────────────────────────

def google_search_url(query: str) -> str:
    return f"https://www.google.com/search?q={encode_component(query)}"


def google_news_rss_url(query: str) -> str:
    return (
        f"https://news.google.com/rss/search?q={encode_component(query)}"
        "&hl=en-GB&gl=GB&ceid=GB:en"
    )


def spotify_search_url(query: str) -> str:
    return f"https://open.spotify.com/search/{encode_component(query)}"


def gallery_image_urls(query: str, count: int = 4) -> list[str]:
    """Deterministic Unsplash search-image URLs for ``query``."""
    return [
        f"https://source.unsplash.com/600x600/?{encode_component(query)}&sig={n}"
        for n in range(1, count + 1)
    ]


def default_title(tile_type: str, query: str) -> str:
    return f"{TYPE_LABELS.get(tile_type, 'Web')} — {query}"


# ── Descriptors ──────────────────────────────────────────────────────────────

@dataclass
class Tile:
    title: str = ""

    type: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "title": self.title}
        for f in fields(self):
            if f.name == "title":
                continue
            value = getattr(self, f.name)
            out[_WIRE_NAMES.get(f.name, f.name)] = list(value) if isinstance(value, list) else value
        return out

    def is_renderable(self) -> bool:
        """True when every field this type renders from is present."""
        raise NotImplementedError


@dataclass
class WebTile(Tile):
    url: str = ""
    type: ClassVar[str] = "web"

    def is_renderable(self) -> bool:
        return bool(self.title and self.url)


@dataclass
class MapsTile(Tile):
    q: str = ""
    type: ClassVar[str] = "maps"

    def is_renderable(self) -> bool:
        return bool(self.title and self.q)


@dataclass
class RssTile(Tile):
    feeds: list[str] = field(default_factory=list)
    type: ClassVar[str] = "rss"

    def is_renderable(self) -> bool:
        return bool(self.title and self.feeds)


@dataclass
class NewsTile(Tile):
    topic: str = ""
    feeds: list[str] = field(default_factory=list)
    type: ClassVar[str] = "news"

    def is_renderable(self) -> bool:
        return bool(self.title and self.feeds)


@dataclass
class YoutubeTile(Tile):
    """``playlist`` may be empty; ``q`` then tells the client what to search."""

    playlist: list[str] = field(default_factory=list)
    q: str = ""
    type: ClassVar[str] = "youtube"

    def is_renderable(self) -> bool:
        return bool(self.title and (self.playlist or self.q))


@dataclass
class StocksTile(Tile):
    symbols: list[str] = field(default_factory=list)
    type: ClassVar[str] = "stocks"

    def is_renderable(self) -> bool:
        return bool(self.title and self.symbols)


@dataclass
class GalleryTile(Tile):
    images: list[str] = field(default_factory=list)
    type: ClassVar[str] = "gallery"

    def is_renderable(self) -> bool:
        return bool(self.title and self.images)


@dataclass
class SpotifyTile(Tile):
    spotify_url: str = ""
    type: ClassVar[str] = "spotify"

    def is_renderable(self) -> bool:
        return bool(self.title and self.spotify_url)


@dataclass
class DiscoverTile(Tile):
    topic: str = ""
    type: ClassVar[str] = "discover"

    def is_renderable(self) -> bool:
        return bool(self.title and self.topic)


def safe_default(query: str) -> WebTile:
    """The tile every planning path can fall back to: a web search."""
    q = (query or "").strip() or "search"
    return WebTile(title=f"Search — {q}", url=google_search_url(q))
