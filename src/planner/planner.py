"""Tile planner: free-text query -> exactly one renderable tile.

Two stages:
  1. Heuristics    -- zero-latency intent rules, always computed first
  2. LLM planning  -- strict-JSON plan, validated and backfilled

Stage 2 only runs when Stage 1 had no decisive match and a provider is
configured. Whatever goes wrong in Stage 2, the caller gets the Stage 1 tile.

Usage (CLI test)::

    python -m src.planner.planner "weekend retreat in Bath"
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any, NamedTuple

from src.ai import llm_provider
from src.ai.json_salvage import salvage_json
from src.planner.heuristics import Heuristic, classify
from src.planner.prompts import MULTI_PLAN_SYSTEM_PROMPT, PLAN_SYSTEM_PROMPT, plan_user_prompt
from src.planner.tiles import Tile, safe_default
from src.planner.validate import MAX_TILES, parse_plan, sanitize_plans

logger = logging.getLogger("lifedash.planner")


class PlanResult(NamedTuple):
    tile: Tile
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"tile": self.tile.to_dict()}
        if self.note:
            out["note"] = self.note
        return out


def _normalize(query: str) -> str:
    return re.sub(r"\s+", " ", (query or "").strip())


def _stage_one(query: str) -> Heuristic | None:
    try:
        return classify(query)
    except Exception:
        logger.exception("Heuristic classification crashed for %r", query)
        return None


def _ask_llm(system_prompt: str, query: str, multi: bool = False) -> str:
    return llm_provider.complete(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": plan_user_prompt(query, multi=multi)},
        ],
        temperature=llm_provider.planning_temperature(),
        json_mode=True,
        label="plan-multi" if multi else "plan",
    )


def _guard(result: PlanResult, query: str) -> PlanResult:
    if result.tile.is_renderable():
        return result
    logger.warning("Planner produced an unrenderable %s tile for %r", result.tile.type, query)
    return PlanResult(safe_default(query), "server_error")


def plan(query: str, *, use_llm: bool = True) -> PlanResult:
    """Plan one tile for ``query``. Total: never raises, always renderable.

    ``note`` records how the tile was produced when it did not come straight
    from a validated model answer (``heuristic``, ``ai_error``, ...).
    """
    q = _normalize(query)
    if not q:
        return PlanResult(safe_default(q), "empty_query")

    heuristic = _stage_one(q)
    if heuristic is None:
        return PlanResult(safe_default(q), "server_error")

    if heuristic.decisive or not use_llm or not llm_provider.is_configured():
        return _guard(PlanResult(heuristic.tile, "heuristic"), q)

    try:
        raw = _ask_llm(PLAN_SYSTEM_PROMPT, q)
    except Exception as exc:
        logger.warning("LLM planning failed for %r, keeping heuristic %s: %s", q, heuristic.rule, exc)
        return _guard(PlanResult(heuristic.tile, "ai_error"), q)

    try:
        validated = parse_plan(raw, q, fallback=heuristic.tile)
    except Exception:
        logger.exception("Plan validation crashed for %r", q)
        return _guard(PlanResult(heuristic.tile, "ai_error"), q)

    if validated.note:
        logger.info("Plan for %r fell back to heuristic (%s)", q, validated.note)
    return _guard(PlanResult(validated.tile, validated.note), q)


def _fingerprint(tile: Tile) -> dict[str, Any]:
    return {k: v for k, v in tile.to_dict().items() if k != "title"}


def plan_many(query: str, *, use_llm: bool = True) -> list[Tile]:
    """Plan up to three tiles for ``query``, most relevant first.

    A decisive heuristic match always leads; without a usable model answer
    the heuristic tile is returned alone.
    """
    q = _normalize(query)
    if not q:
        return []

    heuristic = _stage_one(q)
    primary = heuristic.tile if heuristic else safe_default(q)
    if not primary.is_renderable():
        primary = safe_default(q)

    if not use_llm or not llm_provider.is_configured():
        return [primary]

    try:
        raw = _ask_llm(MULTI_PLAN_SYSTEM_PROMPT, q, multi=True)
        tiles = [t for t in sanitize_plans(salvage_json(raw), q) if t.is_renderable()]
    except Exception as exc:
        logger.warning("LLM multi-planning failed for %r: %s", q, exc)
        return [primary]

    if not tiles:
        return [primary]
    if heuristic is not None and heuristic.decisive:
        rest = [t for t in tiles if _fingerprint(t) != _fingerprint(primary)]
        tiles = [primary] + rest
    return tiles[:MAX_TILES]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    result = plan(" ".join(sys.argv[1:]) or "news")
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
