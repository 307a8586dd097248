"""Link suggestions, page metadata and preview images for web tiles.

Page scraping is regex-based on the raw HTML head: we only ever want a
handful of ``<meta>`` values, and malformed markup is the norm.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable
from urllib.parse import urljoin, urlparse

from src.ai import llm_provider
from src.ai.json_salvage import salvage_list
from src.common.http import BROWSER_USER_AGENT, UpstreamError, fetch
from src.common.text import decode_text, hostname, strip_tags

logger = logging.getLogger("lifedash.web.extractor")

PREVIEW_TIMEOUT = 6.5
FAVICON_URL = "https://www.google.com/s2/favicons?sz=64&domain={host}"
MAX_LINKS = 8

LINKS_SYSTEM_PROMPT = """\
You are a fast web librarian. Given a user query, output 5-8 useful links
as JSON: [{"title":"...", "url":"https://...", "desc":"..."}].
Prefer authoritative, practical sources (docs, recipe sites, retailers for shopping intent, etc.).
Do not include news unless the query explicitly asks for news.
Return JSON ONLY."""

_META_TAG_RE = re.compile(r"<meta\b[^>]*>", re.IGNORECASE)
_ATTR_RE = re.compile(r"([a-zA-Z:_-]+)\s*=\s*(\"[^\"]*\"|'[^']*')")
_TITLE_RE = re.compile(r"<title[^>]*>([\s\S]*?)</title>", re.IGNORECASE)

PageFetcher = Callable[..., str]


def fetch_html(url: str, *, timeout: float = PREVIEW_TIMEOUT) -> str:
    resp = fetch(
        url,
        headers={"User-Agent": BROWSER_USER_AGENT, "Accept": "text/html,application/xhtml+xml"},
        timeout=timeout,
    )
    return resp.text


def meta_tags(html: str) -> dict[str, str]:
    """``property``/``name`` -> ``content`` for every ``<meta>`` tag; first one wins."""
    out: dict[str, str] = {}
    for tag in _META_TAG_RE.findall(html or ""):
        attrs = {k.lower(): v[1:-1] for k, v in _ATTR_RE.findall(tag)}
        key = (attrs.get("property") or attrs.get("name") or "").lower()
        content = attrs.get("content")
        if key and content and key not in out:
            out[key] = decode_text(content)
    return out


def favicon_for(url: str) -> str | None:
    host = urlparse(url).hostname if url else None
    return FAVICON_URL.format(host=host) if host else None


def _image(meta: dict[str, str], base_url: str) -> str | None:
    image = meta.get("og:image") or meta.get("og:image:url") or meta.get("twitter:image")
    return urljoin(base_url, image) if image else None


def page_metadata(url: str, *, fetcher: PageFetcher | None = None) -> dict[str, Any]:
    """``{ok, title, description, image}`` for ``url``; ``ok`` is False on fetch failure."""
    try:
        html = (fetcher or fetch_html)(url)
    except UpstreamError as exc:
        logger.warning("Metadata fetch failed for %s: %s", url, exc)
        return {"ok": False, "title": "", "description": "", "image": None}

    meta = meta_tags(html)
    m = _TITLE_RE.search(html)
    title = meta.get("og:title") or (strip_tags(decode_text(m.group(1))) if m else "") or hostname(url)
    description = meta.get("og:description") or meta.get("description") or meta.get("twitter:description") or ""
    return {"ok": True, "title": title, "description": description, "image": _image(meta, url)}


def preview(url: str, *, fetcher: PageFetcher | None = None) -> dict[str, Any]:
    """``{image, favicon}`` for a link card. Never raises."""
    favicon = favicon_for(url)
    try:
        html = (fetcher or fetch_html)(url)
    except UpstreamError as exc:
        logger.info("Preview fetch failed for %s: %s", url, exc)
        return {"image": None, "favicon": favicon}
    return {"image": _image(meta_tags(html), url), "favicon": favicon}


# ── Link suggestions ─────────────────────────────────────────────────────────

def _sanitize_links(entries: list[Any] | None) -> list[dict[str, str]]:
    items: list[dict[str, str]] = []
    seen: set[str] = set()
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        title = str(entry.get("title") or "").strip()
        url = str(entry.get("url") or entry.get("href") or "").strip()
        if not title or not url.lower().startswith(("http://", "https://")) or url in seen:
            continue
        seen.add(url)
        desc = str(entry.get("desc") or entry.get("body") or entry.get("snippet") or "").strip()
        items.append({"title": title[:140], "url": url, "desc": desc[:220]})
        if len(items) >= MAX_LINKS:
            break
    return items


def _links_from_llm(query: str) -> list[dict[str, str]]:
    raw = llm_provider.complete(
        [
            {"role": "system", "content": LINKS_SYSTEM_PROMPT},
            {"role": "user", "content": f'Query: "{query}"\nReturn 5-8 items JSON ONLY.'},
        ],
        temperature=0.2,
        label="extract",
    )
    return _sanitize_links(salvage_list(raw, key="items"))


def _links_from_ddg(query: str) -> list[dict[str, str]]:
    from duckduckgo_search import DDGS

    try:
        with DDGS() as ddgs:
            results = ddgs.text(query, max_results=MAX_LINKS)
    except Exception as exc:
        logger.warning("DuckDuckGo text search failed for '%s': %s", query[:60], exc)
        return []
    return _sanitize_links(list(results or []))


def suggest_links(query: str) -> list[dict[str, str]]:
    """5-8 ``{title, url, desc}`` links for ``query``.

    LLM first; DuckDuckGo when no provider is configured or the model gives
    nothing usable.
    """
    items: list[dict[str, str]] = []
    if llm_provider.is_configured():
        try:
            items = _links_from_llm(query)
        except Exception as exc:
            logger.warning("LLM link suggestions failed for '%s': %s", query[:60], exc)
    if not items:
        items = _links_from_ddg(query)
    logger.info("Link suggestions for '%s': %d items", query[:60], len(items))
    return items
