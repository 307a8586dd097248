"""Best-effort structured parse of untrusted model output."""

from __future__ import annotations

import json
import re
from typing import Any

_JSON_FENCE_RE = re.compile(r"```[^\n]*\r?\n([\s\S]*?)\r?\n?```", re.IGNORECASE)
_OBJECT_SPAN_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_SPAN_RE = re.compile(r"\[[\s\S]*\]")


def _loads(candidate: str) -> Any | None:
    candidate = candidate.strip()
    if not candidate:
        return None
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return None


def salvage_json(text: str) -> Any | None:
    """Return the JSON value carried by ``text``, or ``None``.

    Models are asked for bare JSON but sometimes wrap it in prose or a fenced
    code block. Tried in order: the whole text, each fenced block, the
    outermost ``{...}`` span, the outermost ``[...]`` span.
    """
    if not text or not text.strip():
        return None

    parsed = _loads(text)
    if parsed is not None:
        return parsed

    for m in _JSON_FENCE_RE.finditer(text):
        parsed = _loads(m.group(1))
        if parsed is not None:
            return parsed

    for span_re in (_OBJECT_SPAN_RE, _ARRAY_SPAN_RE):
        m = span_re.search(text)
        if m:
            parsed = _loads(m.group(0))
            if parsed is not None:
                return parsed

    return None


def salvage_object(text: str) -> dict[str, Any] | None:
    """Like :func:`salvage_json` but only accepts a JSON object."""
    parsed = salvage_json(text)
    return parsed if isinstance(parsed, dict) else None


def salvage_list(text: str, key: str | None = None) -> list[Any] | None:
    """Return a JSON array from ``text``, or the array under ``key`` of an object."""
    parsed = salvage_json(text)
    if isinstance(parsed, list):
        return parsed
    if key and isinstance(parsed, dict) and isinstance(parsed.get(key), list):
        return parsed[key]
    return None
