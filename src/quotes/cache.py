"""Process-lifetime lookup caches for the quote resolver.

All three maps only ever grow. They are advisory: losing them costs extra
provider calls, never a wrong quote. Concurrent writers may race, which at
worst repeats a lookup, so no locking is used.
"""

from __future__ import annotations

from typing import NamedTuple


class CoinRef(NamedTuple):
    id: str
    name: str
    symbol: str = ""


class QuoteCache:
    """Coin ids (crypto), working provider symbols and known-bad symbols (equities)."""

    def __init__(self) -> None:
        self._coins: dict[str, CoinRef] = {}
        self._provider_symbols: dict[str, str] = {}
        self._known_bad: set[str] = set()

    # crypto
    def coin(self, base: str) -> CoinRef | None:
        return self._coins.get(base)

    def remember_coin(self, base: str, ref: CoinRef) -> None:
        self._coins[base] = ref

    # equities
    def provider_symbol(self, symbol: str) -> str | None:
        return self._provider_symbols.get(symbol)

    def remember_provider_symbol(self, symbol: str, provider_symbol: str) -> None:
        self._provider_symbols[symbol] = provider_symbol
        self._known_bad.discard(symbol)

    def is_known_bad(self, symbol: str) -> bool:
        return symbol in self._known_bad

    def mark_bad(self, symbol: str) -> None:
        self._known_bad.add(symbol)

    def clear(self) -> None:
        self._coins.clear()
        self._provider_symbols.clear()
        self._known_bad.clear()

    def stats(self) -> dict[str, int]:
        return {
            "coins": len(self._coins),
            "provider_symbols": len(self._provider_symbols),
            "known_bad": len(self._known_bad),
        }
