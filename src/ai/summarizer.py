"""Page/text summaries and one-line feed item summaries.

:func:`summarize_text` asks the configured LLM for bullets, a TL;DR and next
actions. Without a provider, or when the call fails, it falls back to a
deterministic extract of the lead sentences so callers always get something
to show; ``mode`` says which one they got.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from src.ai import llm_provider
from src.common.http import BROWSER_USER_AGENT, fetch
from src.common.text import clamp_text, strip_html, strip_tags, truncate
from src.feeds.parser import relative_time

logger = logging.getLogger("lifedash.ai.summarizer")

MAX_SOURCE_CHARS = 16_000
MAX_ITEMS = 12
EXTRACT_BULLETS = 5

SUMMARY_SYSTEM_PROMPT = """\
You are a crisp, objective summarizer.
Return a concise, skimmable summary with:
- 5-8 bullet key points
- A one-line TL;DR
- 2-4 suggested next actions (links if relevant)
Keep it neutral, avoid fluff, keep each bullet to one line.
If content seems thin or paywalled, say so briefly."""

_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9\"'(])")

PageFetcher = Callable[..., str]


@dataclass
class Summary:
    summary: str
    mode: str  # "ai" | "extractive"

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "mode": self.mode}


def fetch_page_text(url: str, *, timeout: float | None = None) -> str:
    resp = fetch(
        url,
        headers={
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        },
        timeout=timeout,
    )
    return strip_html(resp.text)


def _sentences(text: str) -> list[str]:
    flat = re.sub(r"\s+", " ", text).strip()
    return [s.strip() for s in _SENTENCE_RE.split(flat) if len(s.strip()) > 20]


def extractive_summary(text: str, title: str = "") -> str:
    """Lead sentences as bullets, first sentence as TL;DR."""
    sentences = _sentences(text)
    if not sentences:
        body = truncate(re.sub(r"\s+", " ", text).strip(), 280)
        return f"TL;DR: {body or title or 'Nothing to summarize.'}"

    lines = [f"• {truncate(s, 220)}" for s in sentences[:EXTRACT_BULLETS]]
    tldr = truncate(sentences[0], 200)
    header = f"{title}\n\n" if title else ""
    return f"{header}" + "\n".join(lines) + f"\n\nTL;DR: {tldr}"


def summarize_text(
    text: str | None = None,
    *,
    url: str | None = None,
    title: str = "",
    page_fetcher: PageFetcher | None = None,
) -> Summary:
    """Summarize ``text``, or the page at ``url`` when no text is given.

    Raises ``ValueError`` when neither is supplied; page download failures
    propagate as :class:`~src.common.http.UpstreamError`.
    """
    if text and text.strip():
        source = text
    elif url:
        source = (page_fetcher or fetch_page_text)(url)
    else:
        raise ValueError("missing url or text")

    source = clamp_text(source.strip(), MAX_SOURCE_CHARS)

    if not llm_provider.is_configured():
        return Summary(extractive_summary(source, title), "extractive")

    user = f"TITLE: {title or url or 'Untitled'}\n"
    if url:
        user += f"URL: {url}\n"
    user += f"\nCONTENT:\n{source}"

    try:
        summary = llm_provider.complete(
            [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {"role": "user", "content": user},
            ],
            temperature=0.2,
            label="summarize",
        )
    except Exception as exc:
        logger.warning("LLM summary failed, using extract: %s", exc)
        return Summary(extractive_summary(source, title), "extractive")

    if not summary:
        return Summary(extractive_summary(source, title), "extractive")
    return Summary(summary, "ai")


def _one_line(item: dict[str, Any]) -> str:
    desc = strip_tags(str(item.get("description") or item.get("content") or ""))
    if desc:
        return truncate(desc, 160)
    return truncate(strip_tags(str(item.get("title") or "")), 140)


def summarize_items(items: Iterable[Any]) -> list[dict[str, Any]]:
    """Up to twelve feed items -> ``{title, summary, image, source, time, link}``."""
    out: list[dict[str, Any]] = []
    for item in list(items)[:MAX_ITEMS]:
        if not isinstance(item, dict):
            continue
        published = item.get("published") or item.get("pubDate") or item.get("date")
        out.append({
            "title": truncate(strip_tags(str(item.get("title") or "")), 160) or "Untitled",
            "summary": _one_line(item),
            "image": item.get("image") or item.get("thumb") or None,
            "source": str(item.get("source") or "").strip(),
            "time": relative_time(published) if published else str(item.get("time") or ""),
            "link": item.get("link") or "#",
        })
    return out
