"""System prompts for LLM tile planning."""

from __future__ import annotations

_TILE_SCHEMAS = """\
Allowed tile types and fields:
- "web":     { "type", "title", "url" }               // a full https URL
- "maps":    { "type", "title", "q" }                 // a concise Maps search string
- "rss":     { "type", "title", "feeds": [url, ...] } // RSS/Atom feed URLs
- "youtube": { "type", "title", "playlist": [id, ...] } // YouTube video IDs, not URLs
- "stocks":  { "type", "title", "symbols": ["AAPL", "MSFT"] }
- "gallery": { "type", "title", "images": [url, ...] }
- "spotify": { "type", "title", "spotifyUrl" }        // a full open.spotify.com URL
- "news":    { "type", "title", "topic", "feeds": [url, ...] } // a topic briefing; feeds optional
- "discover": { "type", "title", "topic" }            // open-ended exploration of a topic

Guidance:
- Shopping/product intent ("buy", "for sale", named gadgets): "web" with a Google query or a trusted retailer page.
- Travel/hotels/retreats/near me/in <city>: "maps" with a concise search string naming the place.
  Respect demonyms: French -> France, Indian -> India, South African -> South Africa.
- Recipes/tutorials/how-to: "web" with a trusted page (bbcgoodfood.com, seriouseats.com, docs, MDN). Avoid "rss".
- Broad news topics ("news", "news <topic>"): "rss" with Google News RSS or BBC/Reuters feeds.
- A named news topic to follow ("latest on the election"): "news" with the topic.
- Open-ended curiosity with no clear source ("things to learn about black holes"): "discover".
- Music with Spotify words/URLs: "spotify" only when you know a real open.spotify.com URL.
- Video topics with YouTube URLs/words: "youtube" with video IDs (strip URLs to IDs).
- Tickers/markets ("nvidia vs amd stock"): "stocks" with ticker symbols.
- Visual inspiration ("modern cabin interior"): "gallery" with a few image URLs.
- Keep titles short.

If unsure, choose "web".
"""

PLAN_SYSTEM_PROMPT = f"""\
You are a planner that maps a user's query to EXACTLY ONE dashboard tile.
Never return an array of tiles. Choose the single best tile for the query.

{_TILE_SCHEMAS}
Return STRICT JSON ONLY, no prose:
{{ "type": "...", "title": "...", ... }}
"""

MULTI_PLAN_SYSTEM_PROMPT = f"""\
You are a planner that maps a user's query to at most THREE dashboard tiles,
most relevant first. Different tiles should add different value (e.g. a map
and a news feed), never the same tile twice.

{_TILE_SCHEMAS}
Return STRICT JSON ONLY, no prose:
{{ "tiles": [ {{ "type": "...", "title": "...", ... }} ] }}
"""


def plan_user_prompt(query: str, multi: bool = False) -> str:
    if multi:
        return f'Query: "{query}"\nReturn up to 3 tile plans as JSON per the schema.'
    return f'Query: "{query}"\nReturn ONE tile plan JSON per the schema.'
