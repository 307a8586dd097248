"""Quote resolver: symbols -> normalized price quotes.

Two providers, both keyless:
  - CoinGecko for crypto (coin-id search, then simple/price with 24h change)
  - Stooq CSV for equities and indices, probing exchange suffixes until one
    answers with a finite close

Lookups are memoized in an injected :class:`QuoteCache`. A batch always
returns one result per input symbol, in input order; one bad symbol never
fails the batch.

Usage (CLI test)::

    python -m src.quotes.resolver AAPL BTC-USD VOD.L ^GSPC
"""

from __future__ import annotations

import csv
import io
import json
import logging
import math
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from src.common.http import DEFAULT_TIMEOUT, UpstreamError, fetch, gather_settled
from src.common.text import encode_component
from src.quotes.cache import CoinRef, QuoteCache

logger = logging.getLogger("lifedash.quotes")

COINGECKO_API = "https://api.coingecko.com/api/v3"
STOOQ_QUOTE_URL = "https://stooq.com/q/l/?s={symbol}&f=sd2t2ohlcv&h&e=csv"

# Yahoo-style index tickers -> Stooq index symbols.
INDEX_OVERRIDES: dict[str, tuple[str, str]] = {
    "^GSPC": ("^spx", "USD"),
    "^SPX": ("^spx", "USD"),
    "^DJI": ("^dji", "USD"),
    "^IXIC": ("^ndq", "USD"),
    "^NDX": ("^ndx", "USD"),
    "^FTSE": ("^ukx", "GBP"),
    "^N225": ("^nkx", "JPY"),
    "^GDAXI": ("^dax", "EUR"),
    "^HSI": ("^hsi", "HKD"),
}

# Yahoo exchange suffix -> Stooq suffix.
SUFFIX_TRANSLATIONS = {
    ".L": ".uk",
    ".UK": ".uk",
    ".US": ".us",
    ".DE": ".de",
    ".F": ".de",
    ".T": ".jp",
    ".JP": ".jp",
    ".HK": ".hk",
    ".WA": ".pl",
    ".PL": ".pl",
}

PROBE_SUFFIXES = ("", ".us", ".uk", ".de", ".jp", ".hk", ".pl")
SUFFIX_CURRENCY = {
    "": "USD",
    ".us": "USD",
    ".uk": "GBP",
    ".de": "EUR",
    ".jp": "JPY",
    ".hk": "HKD",
    ".pl": "PLN",
}

KNOWN_COINS = frozenset({
    "BTC", "ETH", "SOL", "DOGE", "ADA", "XRP", "DOT", "LTC", "BNB", "AVAX",
    "MATIC", "LINK", "TRX", "XLM", "SHIB", "USDT", "USDC",
})
CRYPTO_QUOTES = frozenset({"USD", "USDT", "USDC", "EUR", "GBP", "JPY", "BTC", "ETH"})
_STABLE_AS_USD = {"USDT": "usd", "USDC": "usd"}

_PAIR_RE = re.compile(r"^([A-Z0-9]{2,10})[-/]([A-Z]{3,5})$")
_BARE_TOKEN_RE = re.compile(r"^[A-Z0-9]{2,10}$")
_YAHOO_SUFFIX_RE = re.compile(r"^(.+?)(\.[A-Z]{1,2})$")
_NO_DATA = "N/D"

Fetcher = Callable[..., str]


class QuoteLookupError(Exception):
    """A symbol could not be resolved by any provider path."""


@dataclass
class Quote:
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    currency: str
    source: str
    as_of: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "currency": self.currency,
            "source": self.source,
            "asOf": self.as_of,
        }


@dataclass
class QuoteError:
    symbol: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"symbol": self.symbol, "error": self.error}


def http_text(url: str, *, params: dict[str, Any] | None = None, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Default fetcher: bounded GET returning the body text."""
    return fetch(url, params=params, timeout=timeout).text


def normalize_symbol(raw: str) -> str:
    """Trim, uppercase and turn internal whitespace/underscore runs into ``-``."""
    return re.sub(r"[\s_]+", "-", (raw or "").strip().upper())


def _finite(value: Any) -> float | None:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _session_change(open_: float | None, close: float) -> tuple[float, float]:
    if open_ is None or open_ == 0:
        return 0.0, 0.0
    pct = (close / open_ - 1) * 100
    if not math.isfinite(pct):
        return 0.0, 0.0
    return round(close - open_, 4), round(pct, 4)


class QuoteResolver:
    """Resolve symbols against CoinGecko and Stooq with memoized lookups.

    ``fetcher(url, params=None, timeout=...)`` returns the response body as
    text and raises :class:`UpstreamError` on failure. Tests inject a fake
    one to count provider calls.
    """

    def __init__(
        self,
        cache: QuoteCache | None = None,
        fetcher: Fetcher | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 8,
    ) -> None:
        self.cache = cache if cache is not None else QuoteCache()
        self.fetcher = fetcher or http_text
        self.timeout = timeout
        self.max_workers = max_workers

    # ── Batch ────────────────────────────────────────────────────────────

    def resolve(self, symbols: Iterable[str]) -> list[Quote | QuoteError]:
        """One result per input symbol, in input order. Never raises."""
        raw = list(symbols)
        outcomes = gather_settled(self.resolve_one, raw, max_workers=self.max_workers)
        results: list[Quote | QuoteError] = []
        for sym, outcome in zip(raw, outcomes):
            if isinstance(outcome, (Quote, QuoteError)):
                results.append(outcome)
            elif isinstance(outcome, (QuoteLookupError, UpstreamError)):
                results.append(QuoteError(normalize_symbol(sym) or sym, str(outcome)))
            else:
                logger.error("Unexpected failure resolving %r: %r", sym, outcome)
                results.append(QuoteError(normalize_symbol(sym) or sym, "lookup failed"))
        return results

    def resolve_one(self, raw_symbol: str) -> Quote:
        """Resolve a single symbol. Raises :class:`QuoteLookupError` when nothing matches."""
        symbol = normalize_symbol(raw_symbol)
        if not symbol:
            raise QuoteLookupError("empty symbol")

        pair = self._crypto_pair(symbol)
        if pair is not None:
            return self._crypto_quote(symbol, pair[0], pair[1], exact_only=False)

        if _BARE_TOKEN_RE.match(symbol):
            if symbol in KNOWN_COINS:
                return self._first_of(symbol, [
                    lambda: self._crypto_quote(symbol, symbol, "USD", exact_only=True),
                    lambda: self._equity_quote(symbol),
                ])
            return self._first_of(symbol, [
                lambda: self._equity_quote(symbol),
                lambda: self._crypto_quote(symbol, symbol, "USD", exact_only=True),
            ])

        return self._equity_quote(symbol)

    def _first_of(self, symbol: str, attempts: list[Callable[[], Quote]]) -> Quote:
        errors: list[str] = []
        for attempt in attempts:
            try:
                return attempt()
            except (QuoteLookupError, UpstreamError) as exc:
                errors.append(str(exc))
        raise QuoteLookupError("; ".join(errors) or f"no quote for {symbol}")

    @staticmethod
    def _crypto_pair(symbol: str) -> tuple[str, str] | None:
        m = _PAIR_RE.match(symbol)
        if m and m.group(2) in CRYPTO_QUOTES:
            return m.group(1), m.group(2)
        return None

    # ── Crypto (CoinGecko) ───────────────────────────────────────────────

    def _coin_for(self, base: str, exact_only: bool) -> CoinRef:
        cached = self.cache.coin(base)
        if cached is not None and (not exact_only or cached.symbol.upper() == base):
            return cached

        body = self.fetcher(
            f"{COINGECKO_API}/search", params={"query": base.lower()}, timeout=self.timeout
        )
        coins = _json(body).get("coins") or []
        match = next(
            (c for c in coins if isinstance(c, dict) and str(c.get("symbol", "")).upper() == base),
            None,
        )
        if match is None and not exact_only and coins and isinstance(coins[0], dict):
            match = coins[0]
        if match is None or not match.get("id"):
            raise QuoteLookupError(f"no coin matches {base}")

        ref = CoinRef(id=str(match["id"]), name=str(match.get("name") or base), symbol=str(match.get("symbol") or ""))
        self.cache.remember_coin(base, ref)
        logger.debug("CoinGecko id for %s is %s", base, ref.id)
        return ref

    def _crypto_quote(self, symbol: str, base: str, vs: str, exact_only: bool) -> Quote:
        coin = self._coin_for(base, exact_only)
        vs_key = _STABLE_AS_USD.get(vs, vs.lower())
        body = self.fetcher(
            f"{COINGECKO_API}/simple/price",
            params={
                "ids": coin.id,
                "vs_currencies": vs_key,
                "include_24hr_change": "true",
                "include_last_updated_at": "true",
            },
            timeout=self.timeout,
        )
        row = _json(body).get(coin.id) or {}
        price = _finite(row.get(vs_key))
        if price is None:
            raise QuoteLookupError(f"no {vs_key} price for {coin.id}")

        pct = _finite(row.get(f"{vs_key}_24h_change")) or 0.0
        updated = _finite(row.get("last_updated_at"))
        as_of = (
            datetime.fromtimestamp(updated, timezone.utc).isoformat() if updated else _now_iso()
        )
        return Quote(
            symbol=symbol,
            name=coin.name,
            price=price,
            change=round(price * pct / 100, 4),
            change_percent=round(pct, 4),
            currency=vs_key.upper(),
            source="coingecko",
            as_of=as_of,
        )

    # ── Equities (Stooq) ─────────────────────────────────────────────────

    def _equity_candidates(self, symbol: str) -> list[tuple[str, str]]:
        """Provider symbols to try, in order, each with its quote currency."""
        if symbol in INDEX_OVERRIDES:
            return [INDEX_OVERRIDES[symbol]]

        m = _YAHOO_SUFFIX_RE.match(symbol)
        if m and m.group(2) in SUFFIX_TRANSLATIONS:
            suffix = SUFFIX_TRANSLATIONS[m.group(2)]
            return [(m.group(1).lower() + suffix, SUFFIX_CURRENCY[suffix])]

        base = symbol.lower().replace(".", "-")
        return [(base + suffix, SUFFIX_CURRENCY[suffix]) for suffix in PROBE_SUFFIXES]

    def _stooq_row(self, provider_symbol: str) -> dict[str, str] | None:
        """The quote row, or None when Stooq answers ``N/D`` for the symbol.

        Bodies that are not a quote CSV (rate-limit notices, error pages)
        raise :class:`UpstreamError`; they say nothing about the symbol.
        """
        body = self.fetcher(
            STOOQ_QUOTE_URL.format(symbol=encode_component(provider_symbol)), timeout=self.timeout
        )
        rows = list(csv.DictReader(io.StringIO((body or "").strip())))
        if not rows:
            raise UpstreamError(f"Stooq returned no CSV rows for {provider_symbol}")
        row = {str(k).strip().lower(): (v or "").strip() for k, v in rows[0].items() if k}
        if "close" not in row:
            raise UpstreamError(f"Stooq body for {provider_symbol} is not a quote CSV")
        if row["close"] == _NO_DATA:
            return None
        if _finite(row["close"]) is None:
            raise UpstreamError(f"Unparseable Stooq close {row['close']!r} for {provider_symbol}")
        return row

    def _equity_quote(self, symbol: str) -> Quote:
        candidates = self._equity_candidates(symbol)
        cached = self.cache.provider_symbol(symbol)
        if cached is not None:
            currency = next((c for s, c in candidates if s == cached), None)
            candidates = [(cached, currency or _currency_of(cached))]
        elif self.cache.is_known_bad(symbol):
            raise QuoteLookupError(f"no market data for {symbol}")

        transport_failed = False
        for provider_symbol, currency in candidates:
            try:
                row = self._stooq_row(provider_symbol)
            except UpstreamError as exc:
                logger.warning("Stooq probe %s failed: %s", provider_symbol, exc)
                transport_failed = True
                continue
            if row is None:
                continue

            self.cache.remember_provider_symbol(symbol, provider_symbol)
            close = float(row["close"])
            change, pct = _session_change(_finite(row.get("open")), close)
            return Quote(
                symbol=symbol,
                name=symbol,
                price=close,
                change=change,
                change_percent=pct,
                currency=currency,
                source="stooq",
                as_of=_stooq_timestamp(row.get("date", ""), row.get("time", "")),
            )

        if not transport_failed:
            self.cache.mark_bad(symbol)
            logger.info("No Stooq data for %s under any suffix, remembering", symbol)
        raise QuoteLookupError(f"no market data for {symbol}")


def _currency_of(provider_symbol: str) -> str:
    for suffix, currency in SUFFIX_CURRENCY.items():
        if suffix and provider_symbol.endswith(suffix):
            return currency
    return "USD"


def _stooq_timestamp(date: str, time: str) -> str:
    if not date or date == _NO_DATA:
        return _now_iso()
    stamp = f"{date}T{time}" if time and time != _NO_DATA else date
    try:
        return datetime.fromisoformat(stamp).isoformat()
    except ValueError:
        return _now_iso()


def _json(body: str) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise UpstreamError(f"Malformed JSON from CoinGecko: {exc}") from exc
    return data if isinstance(data, dict) else {}


_default_resolver: QuoteResolver | None = None


def get_resolver() -> QuoteResolver:
    """Process-wide resolver sharing one cache across requests."""
    global _default_resolver
    if _default_resolver is None:
        from src.common.config import get_config

        cfg = get_config().get("quotes", {})
        _default_resolver = QuoteResolver(timeout=float(cfg.get("timeout", DEFAULT_TIMEOUT)))
    return _default_resolver


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    for result in QuoteResolver().resolve(sys.argv[1:] or ["AAPL", "BTC-USD"]):
        print(json.dumps(result.to_dict(), ensure_ascii=False))
