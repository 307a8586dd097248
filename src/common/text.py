"""Text helpers: HTML stripping, entity/CDATA decoding, clamping, hostnames."""

from __future__ import annotations

import html
import re
from urllib.parse import quote, urlparse

_CDATA_RE = re.compile(r"<!\[CDATA\[([\s\S]*?)\]\]>")
_SCRIPT_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_BLOCK_END_RE = re.compile(r"</(p|div|h\d|li|section|article)>|<br\s*/?>", re.IGNORECASE)
_LI_RE = re.compile(r"<li[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")


def encode_component(value: str) -> str:
    """Percent-encode a query component the way browsers' encodeURIComponent does."""
    return quote(value, safe="-_.!~*'()")


def decode_cdata(text: str) -> str:
    """Unwrap every ``<![CDATA[...]]>`` section, keeping its raw content."""
    if not text:
        return ""
    return _CDATA_RE.sub(lambda m: m.group(1), text)


def decode_text(text: str) -> str:
    """Decode CDATA wrapping and HTML entities in an XML text field."""
    return html.unescape(decode_cdata(text or "")).strip()


def strip_tags(text: str) -> str:
    """Drop all tags and collapse whitespace to single spaces."""
    if not text:
        return ""
    text = _TAG_RE.sub(" ", text)
    return re.sub(r"\s+", " ", html.unescape(text)).strip()


def strip_html(markup: str) -> str:
    """Convert an HTML page to readable plain text.

    Scripts and styles are dropped, block-level closers become newlines and
    list items become bullets.
    """
    if not markup:
        return ""
    text = _SCRIPT_RE.sub(" ", markup)
    text = _STYLE_RE.sub(" ", text)
    text = _BLOCK_END_RE.sub("\n", text)
    text = _LI_RE.sub("• ", text)
    text = _TAG_RE.sub(" ", text)
    text = html.unescape(text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"[ \t]*\n[ \t]*", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def clamp_text(text: str, max_length: int = 15_000) -> str:
    """Truncate huge text for token safety."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "\n…"


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters, ending in an ellipsis if cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "…"


def hostname(url: str) -> str:
    """Hostname of ``url`` without a leading ``www.``; empty if unparseable."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    return re.sub(r"^www\.", "", host)


def absolutize(url: str) -> str:
    """Normalize protocol-relative URLs (``//host/x``) to ``https://host/x``."""
    url = (url or "").strip()
    if url.startswith("//"):
        return "https:" + url
    return url
