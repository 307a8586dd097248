from __future__ import annotations

import json

import pytest

from src.planner.prompts import MULTI_PLAN_SYSTEM_PROMPT, PLAN_SYSTEM_PROMPT
from src.planner.tiles import (
    TILE_TYPES,
    MapsTile,
    gallery_image_urls,
    google_news_rss_url,
    google_search_url,
    spotify_search_url,
)
from src.planner.validate import parse_plan, sanitize_plan, sanitize_plans


class TestRejection:
    def test_unknown_type_falls_back_to_web_search(self) -> None:
        v = sanitize_plan({"type": "launch_missiles"}, "x")
        assert v.note == "ai_type_fallback"
        assert v.tile.to_dict() == {"type": "web", "title": "Search — x", "url": google_search_url("x")}

    def test_non_object_is_parse_fallback(self) -> None:
        v = sanitize_plan(["web"], "x")
        assert v.note == "ai_parse_fallback"
        assert v.tile.type == "web"

    def test_supplied_fallback_is_used(self) -> None:
        fallback = MapsTile(title="Search — Bath", q="Bath holiday ideas")
        v = sanitize_plan({"type": "nope"}, "Bath", fallback=fallback)
        assert v.tile is fallback

    def test_type_is_case_insensitive(self) -> None:
        v = sanitize_plan({"type": " WEB ", "url": "https://example.com"}, "x")
        assert v.note is None
        assert v.tile.url == "https://example.com"


class TestBackfill:
    def test_web_without_url_gets_search(self) -> None:
        v = sanitize_plan({"type": "web"}, "kettles")
        assert v.tile.to_dict() == {"type": "web", "title": "Web — kettles", "url": google_search_url("kettles")}

    def test_web_bare_domain_gets_scheme(self) -> None:
        v = sanitize_plan({"type": "web", "url": "bbcgoodfood.com/recipes"}, "x")
        assert v.tile.url == "https://bbcgoodfood.com/recipes"

    def test_web_rejects_non_http_url(self) -> None:
        v = sanitize_plan({"type": "web", "url": "javascript:alert(1)"}, "x")
        assert v.tile.url == google_search_url("x")

    def test_maps_generic_q_uses_normalized_query(self) -> None:
        v = sanitize_plan({"type": "maps", "q": "ideas"}, "Thai beach holiday")
        assert v.tile.q == "Thai beach holiday Thailand"
        assert v.tile.title == "Map — Thai beach holiday"

    def test_maps_specific_q_kept(self) -> None:
        v = sanitize_plan({"type": "maps", "q": "spa hotels Bath", "title": "Bath spas"}, "x")
        assert v.tile.to_dict() == {"type": "maps", "title": "Bath spas", "q": "spa hotels Bath"}

    def test_rss_without_feeds(self) -> None:
        v = sanitize_plan({"type": "rss", "feeds": "not a url"}, "climate")
        assert v.tile.feeds == [google_news_rss_url("climate")]

    def test_news_topic_backfilled(self) -> None:
        v = sanitize_plan({"type": "news"}, "climate")
        assert v.tile.topic == "climate"
        assert v.tile.feeds == [google_news_rss_url("climate")]

    def test_youtube_playlist_urls_become_ids(self) -> None:
        v = sanitize_plan(
            {"type": "youtube", "playlist": ["https://youtu.be/dQw4w9WgXcQ", "dQw4w9WgXcQ", "??"]}, "x"
        )
        assert v.tile.playlist == ["dQw4w9WgXcQ"]
        assert v.tile.q == ""

    def test_youtube_empty_playlist_keeps_query(self) -> None:
        v = sanitize_plan({"type": "youtube", "playlist": []}, "lofi beats")
        assert v.tile.playlist == []
        assert v.tile.q == "lofi beats"
        assert v.tile.is_renderable()

    def test_stocks_default_symbols(self) -> None:
        v = sanitize_plan({"type": "stocks", "symbols": []}, "markets")
        assert v.tile.symbols == ["AAPL", "MSFT"]

    def test_stocks_symbols_normalized(self) -> None:
        v = sanitize_plan({"type": "stocks", "symbols": ["nvda", "$amd", "nvda"]}, "x")
        assert v.tile.symbols == ["NVDA", "AMD"]

    def test_gallery_default_images(self) -> None:
        v = sanitize_plan({"type": "gallery"}, "cabins")
        assert v.tile.images == gallery_image_urls("cabins")
        assert len(v.tile.images) == 4

    def test_discover_topic(self) -> None:
        v = sanitize_plan({"type": "discover"}, "jazz")
        assert v.tile.to_dict() == {"type": "discover", "title": "Discover — jazz", "topic": "jazz"}

    def test_long_title_truncated(self) -> None:
        v = sanitize_plan({"type": "web", "title": "t" * 500}, "x")
        assert len(v.tile.title) == 120


class TestSpotifyDowngrade:
    def test_missing_url_downgrades_to_web(self) -> None:
        v = sanitize_plan({"type": "spotify", "title": "Chill"}, "chill jazz")
        assert v.tile.type == "web"
        assert v.tile.url == spotify_search_url("chill jazz")

    def test_foreign_url_downgrades_to_web(self) -> None:
        v = sanitize_plan({"type": "spotify", "spotifyUrl": "https://evil.example/spotify"}, "jazz")
        assert v.tile.type == "web"

    def test_valid_url_kept(self) -> None:
        url = "https://open.spotify.com/album/4aawyAB9vmqN3uQ7FjRGTy"
        v = sanitize_plan({"type": "spotify", "spotifyUrl": url}, "jazz")
        assert v.tile.to_dict() == {"type": "spotify", "title": "Spotify — jazz", "spotifyUrl": url}


class TestParsePlan:
    def test_fenced_json_with_prose(self) -> None:
        raw = 'Sure! Here you go:\n```json\n{"type": "maps", "q": "yoga retreats Bali"}\n```'
        v = parse_plan(raw, "yoga retreat bali")
        assert v.note is None
        assert v.tile.q == "yoga retreats Bali"

    def test_garbage_is_parse_fallback(self) -> None:
        v = parse_plan("I cannot help with that.", "x")
        assert v.note == "ai_parse_fallback"
        assert v.tile.type == "web"

    def test_array_takes_first(self) -> None:
        raw = json.dumps([{"type": "stocks", "symbols": ["TSLA"]}, {"type": "web"}])
        assert parse_plan(raw, "x").tile.symbols == ["TSLA"]

    def test_tiles_wrapper_takes_first(self) -> None:
        raw = json.dumps({"tiles": [{"type": "discover", "topic": "jazz"}]})
        assert parse_plan(raw, "x").tile.type == "discover"


class TestSanitizePlans:
    def test_drops_invalid_and_duplicates_and_caps(self) -> None:
        data = {"tiles": [
            {"type": "web", "url": "https://a.example"},
            {"type": "bogus"},
            {"type": "web", "url": "https://a.example", "title": "dupe"},
            "junk",
            {"type": "stocks", "symbols": ["AAPL"]},
            {"type": "discover", "topic": "x"},
            {"type": "gallery"},
        ]}
        tiles = sanitize_plans(data, "q")
        assert [t.type for t in tiles] == ["web", "stocks", "discover"]

    def test_non_container_is_empty(self) -> None:
        assert sanitize_plans("nope", "q") == []
        assert sanitize_plans(None, "q") == []


class TestTypeCoverage:
    @pytest.mark.parametrize("tile_type", [t for t in TILE_TYPES if t != "spotify"])
    def test_every_type_builds_a_renderable_tile(self, tile_type: str) -> None:
        v = sanitize_plan({"type": tile_type}, "quantum computing")
        assert v.note is None
        assert v.tile.type == tile_type
        assert v.tile.is_renderable()

    @pytest.mark.parametrize("tile_type", TILE_TYPES)
    def test_planner_prompts_document_every_type(self, tile_type: str) -> None:
        assert f'"{tile_type}":' in PLAN_SYSTEM_PROMPT
        assert f'"{tile_type}":' in MULTI_PLAN_SYSTEM_PROMPT
