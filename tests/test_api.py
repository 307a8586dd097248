"""HTTP-level tests for the /api router. No test touches the network."""

from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest

from src.common.http import UpstreamStatusError, UpstreamTimeout
from src.quotes.cache import QuoteCache
from src.quotes.resolver import QuoteResolver
from tests.conftest import FakeFetcher, make_llm_response

RSS = (
    "<rss><channel><item><title>Headline</title><link>https://www.bbc.co.uk/news/1</link>"
    "<description>Body</description></item></channel></rss>"
)
PAGE = '<title>Page</title><meta property="og:image" content="/cover.jpg">'


@pytest.mark.asyncio
class TestPlanRoutes:
    async def test_plan_heuristic(self, client: httpx.AsyncClient, mock_llm) -> None:
        r = await client.get("/api/plan", params={"q": "AAPL MSFT"})
        assert r.status_code == 200
        assert r.json() == {"tile": {"type": "stocks", "title": "Markets", "symbols": ["AAPL", "MSFT"]}, "note": "heuristic"}
        mock_llm.assert_not_called()

    async def test_plan_llm(self, client: httpx.AsyncClient, mock_llm) -> None:
        mock_llm.return_value = make_llm_response('{"type": "spotify", "title": "Jazz"}')
        r = await client.get("/api/plan", params={"q": "smooth jazz for studying"})
        data = r.json()
        assert r.status_code == 200
        assert data["tile"]["type"] == "web"
        assert data["tile"]["url"].startswith("https://open.spotify.com/search/")
        assert "note" not in data

    async def test_plan_rejects_unknown_type(self, client: httpx.AsyncClient, mock_llm) -> None:
        mock_llm.return_value = make_llm_response('{"type": "launch_missiles"}')
        r = await client.get("/api/plan", params={"q": "quantum computing"})
        assert r.status_code == 200
        assert r.json()["note"] == "ai_type_fallback"
        assert r.json()["tile"]["type"] == "rss"

    async def test_plan_empty_query(self, client: httpx.AsyncClient) -> None:
        r = await client.get("/api/plan", params={"q": "  "})
        assert r.status_code == 400

    async def test_plan_crash_is_still_a_tile(self, client: httpx.AsyncClient) -> None:
        with patch("src.dashboard.routes.plan", side_effect=RuntimeError("boom")):
            r = await client.get("/api/plan", params={"q": "anything"})
        assert r.status_code == 200
        assert r.json()["note"] == "server_error"
        assert r.json()["tile"]["type"] == "web"

    async def test_tiles(self, client: httpx.AsyncClient, mock_llm) -> None:
        mock_llm.return_value = make_llm_response(json.dumps({"tiles": [
            {"type": "discover", "topic": "quantum"},
            {"type": "rss"},
            {"type": "web"},
            {"type": "gallery"},
        ]}))
        r = await client.get("/api/tiles", params={"q": "quantum computing"})
        assert r.status_code == 200
        assert [t["type"] for t in r.json()["tiles"]] == ["discover", "rss", "web"]

    async def test_tiles_empty_query(self, client: httpx.AsyncClient) -> None:
        assert (await client.get("/api/tiles")).status_code == 400


@pytest.mark.asyncio
class TestQuoteRoutes:
    async def test_quotes_batch(self, client: httpx.AsyncClient) -> None:
        fetcher = FakeFetcher({
            "s=aapl&": "Symbol,Date,Time,Open,High,Low,Close,Volume\nAAPL,2026-10-16,22:00:00,100,102,99,101,10\n",
            "stooq.com": "Symbol,Date,Time,Open,High,Low,Close,Volume\nX,N/D,N/D,N/D,N/D,N/D,N/D,N/D\n",
            "coingecko": UpstreamTimeout("slow"),
        })
        resolver = QuoteResolver(cache=QuoteCache(), fetcher=fetcher)
        with patch("src.dashboard.routes.get_resolver", return_value=resolver):
            r = await client.get("/api/quotes", params={"symbols": "AAPL, NOSUCH1"})
        quotes = r.json()["quotes"]
        assert r.status_code == 200
        assert quotes[0]["symbol"] == "AAPL"
        assert quotes[0]["price"] == 101.0
        assert quotes[0]["changePercent"] == 1.0
        assert set(quotes[1]) == {"symbol", "error"}

    async def test_quotes_empty(self, client: httpx.AsyncClient) -> None:
        r = await client.get("/api/quotes", params={"symbols": " , "})
        assert r.status_code == 200
        assert r.json()["quotes"] == []
        assert r.json()["note"]


@pytest.mark.asyncio
class TestFeedRoutes:
    async def test_feed_fallback(self, client: httpx.AsyncClient) -> None:
        fake = FakeFetcher({"bad.example": UpstreamStatusError("https://bad.example/rss", 500), "bbc": RSS})
        with patch("src.feeds.reader.http_feed_text", fake):
            r = await client.get("/api/feed", params={"feeds": "https://bad.example/rss,https://feeds.bbc.co.uk/rss"})
        assert r.status_code == 200
        data = r.json()
        assert data["feed"] == "https://feeds.bbc.co.uk/rss"
        assert data["items"][0]["source"] == "bbc.co.uk"

    async def test_feed_all_failing(self, client: httpx.AsyncClient) -> None:
        fake = FakeFetcher({"bad.example": UpstreamTimeout("slow")})
        with patch("src.feeds.reader.http_feed_text", fake):
            r = await client.get("/api/feed", params={"url": "https://bad.example/rss"})
        assert r.status_code == 502
        assert r.json()["items"] == []
        assert r.json()["error"]

    async def test_feed_requires_url(self, client: httpx.AsyncClient) -> None:
        assert (await client.get("/api/feed")).status_code == 400


@pytest.mark.asyncio
class TestMediaRoutes:
    async def test_video_meta(self, client: httpx.AsyncClient) -> None:
        fake = FakeFetcher({"dQw4w9WgXcQ": {"title": "Song"}})
        with patch("src.media.youtube.fetch_json", fake):
            r = await client.get("/api/video-meta", params={"ids": "dQw4w9WgXcQ,abcdefGHIJK"})
        items = r.json()["items"]
        assert [i["id"] for i in items] == ["dQw4w9WgXcQ", "abcdefGHIJK"]
        assert items[0]["title"] == "Song"
        assert items[1]["thumb"] == "https://i.ytimg.com/vi/abcdefGHIJK/hqdefault.jpg"

    async def test_youtube_search_without_key(self, client: httpx.AsyncClient, monkeypatch) -> None:
        monkeypatch.delenv("YT_API_KEY", raising=False)
        monkeypatch.delenv("YT_API_KEY2", raising=False)
        r = await client.get("/api/youtube/search", params={"q": "cats"})
        assert r.json() == {"items": [], "note": "No YT_API_KEY set"}

    async def test_youtube_search_upstream_error(self, client: httpx.AsyncClient, monkeypatch) -> None:
        monkeypatch.setenv("YT_API_KEY", "k")
        fake = FakeFetcher({"googleapis": UpstreamStatusError("https://www.googleapis.com", 403)})
        with patch("src.media.youtube.fetch_json", fake):
            r = await client.get("/api/youtube/search", params={"q": "cats"})
        assert r.status_code == 502
        assert r.json() == {"items": [], "error": "YT API 403"}

    async def test_football(self, client: httpx.AsyncClient) -> None:
        with patch("src.sports.football.fetch_json", FakeFetcher({"espn.com": {"events": []}})):
            r = await client.get("/api/football")
        assert r.status_code == 200
        assert r.json()["matches"] == []
        assert r.json()["ts"]


@pytest.mark.asyncio
class TestAIRoutes:
    async def test_summarize_text(self, client: httpx.AsyncClient, mock_llm) -> None:
        mock_llm.return_value = make_llm_response("TL;DR: fine.")
        r = await client.get("/api/summarize", params={"text": "Some long article text.", "title": "T"})
        assert r.json() == {"summary": "TL;DR: fine.", "mode": "ai"}

    async def test_summarize_fetch_failure(self, client: httpx.AsyncClient) -> None:
        with patch("src.ai.summarizer.fetch", side_effect=UpstreamStatusError("https://x.example", 403)):
            r = await client.get("/api/summarize", params={"url": "https://x.example"})
        assert r.status_code == 502
        assert r.json() == {"error": "fetch_failed", "status": 403}

    async def test_summarize_missing_input(self, client: httpx.AsyncClient) -> None:
        assert (await client.get("/api/summarize")).status_code == 400

    async def test_summarize_items(self, client: httpx.AsyncClient) -> None:
        r = await client.post("/api/summarize/items", json={"items": [{"title": "A", "description": "B"}]})
        assert r.json()["items"][0]["summary"] == "B"
        r = await client.post("/api/summarize/items", json={"items": "nope"})
        assert r.json() == {"items": []}

    async def test_extract_url(self, client: httpx.AsyncClient) -> None:
        with patch("src.web.extractor.fetch_html", return_value=PAGE):
            r = await client.get("/api/extract", params={"url": "https://example.com/a"})
        assert r.json() == {"ok": True, "title": "Page", "description": "", "image": "https://example.com/cover.jpg"}

    async def test_extract_query(self, client: httpx.AsyncClient, mock_llm) -> None:
        mock_llm.return_value = make_llm_response('{"items": [{"title": "A", "url": "https://a.example"}]}')
        r = await client.get("/api/extract", params={"q": "css grid"})
        assert r.json() == {"items": [{"title": "A", "url": "https://a.example", "desc": ""}]}

    async def test_extract_requires_input(self, client: httpx.AsyncClient) -> None:
        assert (await client.get("/api/extract")).status_code == 400

    async def test_preview(self, client: httpx.AsyncClient) -> None:
        with patch("src.web.extractor.fetch_html", side_effect=UpstreamTimeout("slow")):
            r = await client.get("/api/preview", params={"url": "https://example.com"})
        assert r.status_code == 200
        assert r.json()["image"] is None
        assert r.json()["favicon"] == "https://www.google.com/s2/favicons?sz=64&domain=example.com"

    async def test_preview_requires_url(self, client: httpx.AsyncClient) -> None:
        assert (await client.get("/api/preview")).status_code == 400

    async def test_chat(self, client: httpx.AsyncClient, mock_llm) -> None:
        mock_llm.return_value = make_llm_response("Hello!")
        r = await client.get("/api/chat", params={"q": "hi"})
        assert r.json() == {"message": "Hello!"}


@pytest.mark.asyncio
class TestAppShell:
    async def test_health(self, client: httpx.AsyncClient) -> None:
        r = await client.get("/api/health")
        assert r.json() == {"ok": True, "llm": True}

    async def test_unhandled_error_is_well_shaped(self, client: httpx.AsyncClient) -> None:
        with patch("src.sports.football.scoreboard", side_effect=RuntimeError("boom")):
            r = await client.get("/api/football")
        assert r.status_code == 500
        assert r.json() == {"error": "server_error"}
