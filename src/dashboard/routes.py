"""FastAPI router for the LifeDash API -- planning, quotes, feeds, media, AI helpers.

Handlers are thin: they validate query parameters, run the blocking
component call in a worker thread and shape the JSON response. Components
own their fallbacks, so most routes answer 200 even when upstreams fail.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.ai import chat, llm_provider, summarizer
from src.common.config import get_config
from src.common.http import UpstreamError, UpstreamStatusError
from src.feeds.reader import read_feeds, split_feed_urls
from src.media import youtube
from src.planner.planner import plan, plan_many
from src.planner.tiles import safe_default
from src.quotes.resolver import get_resolver
from src.sports import football
from src.web import extractor

logger = logging.getLogger("lifedash.routes")

router = APIRouter(prefix="/api", tags=["lifedash"])


def _cfg() -> dict[str, Any]:
    return get_config()


def _csv(value: str | None) -> list[str]:
    return [p.strip() for p in (value or "").split(",") if p.strip()]


# ------------------------------------------------------------------
# Tile planning
# ------------------------------------------------------------------

@router.get("/plan")
async def plan_tile(q: str = "") -> JSONResponse:
    query = q.strip()
    if not query:
        return JSONResponse({"error": "q is required"}, status_code=400)
    try:
        result = await asyncio.to_thread(plan, query)
    except Exception:
        logger.exception("Planner crashed for %r", query)
        return JSONResponse({"tile": safe_default(query).to_dict(), "note": "server_error"})
    return JSONResponse(result.to_dict())


@router.get("/tiles")
async def plan_tiles(q: str = "") -> JSONResponse:
    query = q.strip()
    if not query:
        return JSONResponse({"error": "q is required"}, status_code=400)
    try:
        tiles = await asyncio.to_thread(plan_many, query)
    except Exception:
        logger.exception("Multi-planner crashed for %r", query)
        tiles = [safe_default(query)]
    return JSONResponse({"tiles": [t.to_dict() for t in tiles]})


# ------------------------------------------------------------------
# Markets
# ------------------------------------------------------------------

@router.get("/quotes")
async def quotes(symbols: str = "") -> JSONResponse:
    wanted = _csv(symbols)
    if not wanted:
        return JSONResponse({"quotes": [], "note": "No symbols provided"})
    results = await asyncio.to_thread(get_resolver().resolve, wanted)
    return JSONResponse({"quotes": [r.to_dict() for r in results]})


# ------------------------------------------------------------------
# Feeds
# ------------------------------------------------------------------

@router.get("/feed")
async def feed(url: str = "", feed: str = "", feeds: str = "") -> JSONResponse:
    urls = split_feed_urls(url, feed, feeds)
    if not urls:
        return JSONResponse({"items": [], "error": "missing feed url"}, status_code=400)

    cfg = _cfg().get("feeds", {})
    result = await asyncio.to_thread(
        read_feeds,
        urls,
        timeout=float(cfg.get("timeout", 10.0)),
        max_items=int(cfg.get("max_items", 20)),
    )
    return JSONResponse(result.to_dict(), status_code=200 if result.ok else 502)


# ------------------------------------------------------------------
# Media & sport
# ------------------------------------------------------------------

@router.get("/video-meta")
async def video_meta(ids: str = "") -> JSONResponse:
    video_ids = youtube.parse_ids(ids)
    if not video_ids:
        return JSONResponse({"items": []})
    items = await asyncio.to_thread(youtube.video_meta, video_ids)
    return JSONResponse({"items": items})


@router.get("/youtube/search")
async def youtube_search(q: str = "news", max: str = "8") -> JSONResponse:
    try:
        data = await asyncio.to_thread(youtube.search, q, max)
    except UpstreamStatusError as exc:
        logger.warning("YouTube search failed: %s", exc)
        return JSONResponse({"items": [], "error": f"YT API {exc.status}"}, status_code=502)
    except UpstreamError as exc:
        logger.warning("YouTube search failed: %s", exc)
        return JSONResponse({"items": [], "error": str(exc)}, status_code=502)
    return JSONResponse(data)


@router.get("/football")
async def football_scores() -> JSONResponse:
    return JSONResponse(await asyncio.to_thread(football.scoreboard))


# ------------------------------------------------------------------
# AI helpers
# ------------------------------------------------------------------

@router.get("/summarize")
async def summarize(url: str = "", text: str = "", title: str = "") -> JSONResponse:
    if not url.strip() and not text.strip():
        return JSONResponse({"error": "missing url or text"}, status_code=400)
    try:
        result = await asyncio.to_thread(
            summarizer.summarize_text, text or None, url=url.strip() or None, title=title
        )
    except UpstreamStatusError as exc:
        return JSONResponse({"error": "fetch_failed", "status": exc.status}, status_code=502)
    except UpstreamError as exc:
        return JSONResponse({"error": "fetch_failed", "detail": str(exc)}, status_code=502)
    return JSONResponse(result.to_dict())


@router.post("/summarize/items")
async def summarize_items(request: Request) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "invalid JSON body"}, status_code=400)
    items = body.get("items") if isinstance(body, dict) else None
    if not isinstance(items, list):
        return JSONResponse({"items": []})
    return JSONResponse({"items": summarizer.summarize_items(items)})


@router.get("/extract")
async def extract(q: str = "", url: str = "") -> JSONResponse:
    if url.strip():
        return JSONResponse(await asyncio.to_thread(extractor.page_metadata, url.strip()))
    if q.strip():
        items = await asyncio.to_thread(extractor.suggest_links, q.strip())
        return JSONResponse({"items": items})
    return JSONResponse({"items": [], "error": "q or url is required"}, status_code=400)


@router.get("/preview")
async def preview(url: str = "") -> JSONResponse:
    if not url.strip():
        return JSONResponse({"error": "Missing url"}, status_code=400)
    return JSONResponse(await asyncio.to_thread(extractor.preview, url.strip()))


@router.get("/chat")
async def chat_reply(q: str = "") -> JSONResponse:
    message = await asyncio.to_thread(chat.reply, q)
    return JSONResponse({"message": message})


@router.get("/health")
async def health() -> JSONResponse:
    return JSONResponse({"ok": True, "llm": llm_provider.is_configured()})
