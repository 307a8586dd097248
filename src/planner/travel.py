"""Travel intent detection and Maps search-string normalization.

Normalization order for a travel query:

1. demonym -> country ("Thai beach holiday" -> "... Thailand");
2. a named UK nation gets "United Kingdom" unless a UK marker is present;
3. only when no demonym matched: no place named + generic trip words ->
   "United Kingdom" as the default locale;
4. a bare place with no trip keyword gets "holiday ideas".
"""

from __future__ import annotations

import re

DEMONYMS: dict[str, str] = {
    "british": "United Kingdom", "english": "England", "scottish": "Scotland",
    "welsh": "Wales", "irish": "Ireland", "french": "France", "spanish": "Spain",
    "italian": "Italy", "german": "Germany", "portuguese": "Portugal",
    "thai": "Thailand", "greek": "Greece", "turkish": "Turkey", "dutch": "Netherlands",
    "swiss": "Switzerland", "austrian": "Austria", "norwegian": "Norway",
    "swedish": "Sweden", "danish": "Denmark", "finnish": "Finland",
    "icelandic": "Iceland", "moroccan": "Morocco", "egyptian": "Egypt",
    "japanese": "Japan", "korean": "Korea", "vietnamese": "Vietnam",
    "indonesian": "Indonesia", "malaysian": "Malaysia", "australian": "Australia",
    "new zealand": "New Zealand", "polish": "Poland", "czech": "Czechia",
    "hungarian": "Hungary", "croatian": "Croatia", "canadian": "Canada",
    "american": "United States", "chilean": "Chile", "argentinian": "Argentina",
    "brazilian": "Brazil", "south african": "South Africa", "indian": "India",
    "mexican": "Mexico", "sri lankan": "Sri Lanka",
}

# Longest first so "south african" wins over "african"-style prefixes.
_DEMONYM_KEYS = sorted(DEMONYMS, key=len, reverse=True)

UK_NATIONS = ("England", "Scotland", "Wales", "Northern Ireland")

TRAVEL_RE = re.compile(
    r"\b(retreats?|spas?|resorts?|hotels?|hostels?|air\s*bnb|airbnb|villas?|yoga|"
    r"staycations?|holidays?|getaways?|city\s*breaks?|weekend\s+away|"
    r"things\s+to\s+do|places\s+to\s+visit|safaris?|near\s+me)\b",
    re.IGNORECASE,
)
# "... in Bath", "... in San Sebastian, Spain": trailing capitalised place.
TRAILING_PLACE_RE = re.compile(r"\bin\s+[A-Z][\w'.-]*(?:[\s,]+[A-Za-z][\w'.-]*)*\s*$")

GENERIC_TRIP_RE = re.compile(
    r"\b(holidays?|trips?|getaways?|weekends?|breaks?|staycations?|spas?|retreats?)\b",
    re.IGNORECASE,
)
TRIP_INTENT_RE = re.compile(
    r"\b(holiday ideas|holidays?|trips?|getaways?|weekends?|things to do|attractions|"
    r"resorts?|hotels?|villas?|beach(?:es)?|city breaks?|safaris?|wildlife|"
    r"national parks?|trek(?:king)?|hiking|retreats?|spas?|yoga|staycations?|hostels?)\b",
    re.IGNORECASE,
)
PLACE_HINT_RE = re.compile(r"\b(?:in|near|at|around)\s+[A-Za-z]|\bnear me\b", re.IGNORECASE)
UK_MARKER_RE = re.compile(r"\b(united kingdom|uk|u\.k\.|great britain)\b", re.IGNORECASE)
_PLAIN_WORDS_RE = re.compile(r"^[a-z0-9\s'.,-]+$", re.IGNORECASE)


def is_travel_query(query: str) -> bool:
    return bool(TRAVEL_RE.search(query) or TRAILING_PLACE_RE.search(query.strip()))


def demonym_to_country(text: str) -> str | None:
    """Country named by the first (longest) demonym found in ``text``."""
    lower = text.lower()
    for key in _DEMONYM_KEYS:
        if re.search(rf"\b{re.escape(key)}\b", lower):
            return DEMONYMS[key]
    return None


def _mentions(text: str, name: str) -> bool:
    return re.search(rf"\b{re.escape(name)}\b", text, re.IGNORECASE) is not None


def _names_place(text: str) -> bool:
    if PLACE_HINT_RE.search(text) or UK_MARKER_RE.search(text):
        return True
    countries = set(DEMONYMS.values()) | set(UK_NATIONS)
    return any(_mentions(text, c) for c in countries)


def _looks_like_only_place(text: str) -> bool:
    return bool(_PLAIN_WORDS_RE.match(text)) and len(text.split()) <= 3


def normalize_maps_query(query: str) -> str:
    """Turn a travel query into a specific Maps search string."""
    base = re.sub(r"\s+", " ", (query or "").strip())
    if not base:
        return base

    country = demonym_to_country(base)
    if country and not _mentions(base, country):
        base = f"{base} {country}"

    if any(_mentions(base, n) for n in UK_NATIONS) and not UK_MARKER_RE.search(base):
        base = f"{base} United Kingdom"
    elif country is None and not _names_place(base) and GENERIC_TRIP_RE.search(base):
        base = f"{base} United Kingdom"

    if _looks_like_only_place(base) and not TRIP_INTENT_RE.search(base):
        base = f"{base} holiday ideas"

    return base


def is_generic_maps_query(text: str) -> bool:
    """True for Maps strings too vague to search on ("ideas", "trip")."""
    s = (text or "").lower().strip()
    if len(s) < 6:
        return True
    return s in {"holiday ideas", "ideas", "holidays", "trip", "trips", "getaway", "getaways", "weekend"}
