"""Today's football fixtures from ESPN's public scoreboards (no key needed)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from src.common.http import fetch_json, gather_settled
from src.common.text import encode_component

logger = logging.getLogger("lifedash.sports.football")

ESPN_SCOREBOARD_URL = "https://site.api.espn.com/apis/v2/sports/soccer/{league}/scoreboard"
LEAGUES = ("eng.1", "esp.1", "ita.1", "ger.1", "fra.1", "uefa.champions")
MAX_MATCHES = 40

_LIVE_NAMES = ("IN_PROGRESS", "HALFTIME", "FIRST_HALF", "SECOND_HALF", "EXTRA_TIME", "SHOOTOUT")
_FINISHED_NAMES = ("FINAL", "FULL_TIME", "POSTPONED", "CANCELED", "ABANDONED")

JsonFetcher = Callable[..., Any]


def _score(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _side(competitors: list[dict[str, Any]], home_away: str) -> dict[str, Any]:
    comp = next((c for c in competitors if c.get("homeAway") == home_away), {})
    team = comp.get("team") or {}
    return {"name": team.get("shortDisplayName") or team.get("name") or "", "score": _score(comp.get("score"))}


def map_event(event: dict[str, Any], league: str = "") -> dict[str, Any]:
    comp = (event.get("competitions") or [{}])[0]
    status_type = (comp.get("status") or {}).get("type") or {}
    competitors = comp.get("competitors") or []
    return {
        "id": str(event.get("id") or ""),
        "league": (event.get("league") or {}).get("name") or league,
        "kickoff": event.get("date") or "",
        "status": status_type.get("name") or "STATUS_SCHEDULED",
        "statusText": status_type.get("shortDetail") or "",
        "state": status_type.get("state") or "",
        "home": _side(competitors, "home"),
        "away": _side(competitors, "away"),
    }


def match_phase(match: dict[str, Any]) -> str:
    """``live``, ``upcoming`` or ``finished``."""
    state = match.get("state")
    if state == "in":
        return "live"
    if state == "post":
        return "finished"
    if state == "pre":
        return "upcoming"
    name = str(match.get("status") or "").upper()
    if any(n in name for n in _LIVE_NAMES):
        return "live"
    if any(n in name for n in _FINISHED_NAMES):
        return "finished"
    return "upcoming"


def _fetch_league(league: str, fetcher: JsonFetcher) -> list[dict[str, Any]]:
    data = fetcher(
        ESPN_SCOREBOARD_URL.format(league=encode_component(league)),
        headers={"Cache-Control": "no-cache"},
    )
    return [map_event(e, league) for e in (data.get("events") or []) if isinstance(e, dict)]


def order_matches(matches: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Live first, then upcoming by kickoff, then finished; capped at 40."""
    live = [m for m in matches if match_phase(m) == "live"]
    upcoming = sorted((m for m in matches if match_phase(m) == "upcoming"), key=lambda m: m["kickoff"] or "~")
    finished = [m for m in matches if match_phase(m) == "finished"]
    return (live + upcoming + finished)[:MAX_MATCHES]


def scoreboard(*, fetcher: JsonFetcher | None = None) -> dict[str, Any]:
    """``{matches, ts}`` across all leagues. A failing league contributes nothing."""
    fetcher = fetcher or fetch_json
    matches: list[dict[str, Any]] = []
    for league, outcome in zip(LEAGUES, gather_settled(lambda lg: _fetch_league(lg, fetcher), LEAGUES)):
        if isinstance(outcome, BaseException):
            logger.warning("ESPN scoreboard for %s failed: %s", league, outcome)
            continue
        matches.extend(outcome)

    ordered = order_matches(matches)
    for m in ordered:
        m.pop("state", None)
    return {"matches": ordered, "ts": datetime.now(timezone.utc).isoformat()}
