"""Bounded outbound calls and concurrent fan-out for request handlers.

Every upstream request in LifeDash goes through :func:`fetch` (HTTP) or
:func:`bounded_call` (anything else, e.g. the LLM client), so timeout and
failure semantics are the same everywhere: a hung or failing upstream raises
an :class:`UpstreamError` subclass which callers turn into a fallback.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from functools import lru_cache
from typing import Any, Callable, Iterable, TypeVar

import requests

logger = logging.getLogger("lifedash.http")

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; LifeDash/1.0)"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

T = TypeVar("T")
R = TypeVar("R")


class UpstreamError(Exception):
    """An upstream provider call failed (network, status or body)."""


class UpstreamTimeout(UpstreamError):
    """An upstream call did not finish before its deadline."""


class UpstreamStatusError(UpstreamError):
    """An upstream call answered with a non-2xx status."""

    def __init__(self, url: str, status: int, body: str = "") -> None:
        super().__init__(f"HTTP {status} from {url}")
        self.url = url
        self.status = status
        self.body = body


@lru_cache(maxsize=1)
def _http_settings() -> tuple[float, str]:
    from src.common.config import get_config

    cfg = get_config().get("http", {})
    return float(cfg.get("timeout") or DEFAULT_TIMEOUT), str(cfg.get("user_agent") or DEFAULT_USER_AGENT)


def fetch(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float | None = None,
) -> requests.Response:
    """GET ``url`` with a hard timeout. Returns the response only on 2xx.

    ``timeout`` defaults to ``http.timeout`` from the config.
    Raises :class:`UpstreamTimeout` on deadline, :class:`UpstreamStatusError`
    on non-2xx and :class:`UpstreamError` on any other transport failure.
    """
    default_timeout, user_agent = _http_settings()
    if timeout is None:
        timeout = default_timeout
    merged = {"User-Agent": user_agent}
    if headers:
        merged.update(headers)
    try:
        resp = requests.get(url, params=params, headers=merged, timeout=timeout)
    except requests.Timeout as exc:
        raise UpstreamTimeout(f"Timed out after {timeout}s: {url}") from exc
    except requests.RequestException as exc:
        raise UpstreamError(f"Request to {url} failed: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        raise UpstreamStatusError(url, resp.status_code, resp.text[:300])
    return resp


def fetch_json(url: str, **kwargs: Any) -> Any:
    """:func:`fetch` and decode the body as JSON."""
    resp = fetch(url, **kwargs)
    try:
        return resp.json()
    except ValueError as exc:
        raise UpstreamError(f"Malformed JSON from {url}: {exc}") from exc


# One small shared pool: deadline-bound calls never queue behind a full pool
# for long because every task has its own timeout.
_bounded_pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="bounded")


def bounded_call(fn: Callable[..., R], *args: Any, deadline: float, label: str = "", **kwargs: Any) -> R:
    """Run ``fn(*args, **kwargs)`` and give up after ``deadline`` seconds.

    The worker thread is abandoned on timeout; its eventual result is dropped.
    Exceptions raised by ``fn`` propagate unchanged.
    """
    fut = _bounded_pool.submit(fn, *args, **kwargs)
    try:
        return fut.result(timeout=deadline)
    except FutureTimeout as exc:
        fut.cancel()
        raise UpstreamTimeout(f"{label or getattr(fn, '__name__', 'call')} exceeded {deadline}s") from exc


def gather_settled(
    fn: Callable[[T], R],
    items: Iterable[T],
    *,
    max_workers: int = 8,
    timeout: float | None = None,
) -> list[R | BaseException]:
    """Apply ``fn`` to every item concurrently; wait for all of them.

    Returns one outcome per input, in input order: the return value, or the
    exception that item raised. One failing item never hides the others.
    """
    items = list(items)
    if not items:
        return []

    outcomes: list[R | BaseException] = []
    with ThreadPoolExecutor(max_workers=max(1, min(len(items), max_workers))) as pool:
        futures = [pool.submit(fn, item) for item in items]
        for item, fut in zip(items, futures):
            try:
                outcomes.append(fut.result(timeout=timeout))
            except FutureTimeout:
                logger.warning("Fan-out task for %r timed out", item)
                outcomes.append(UpstreamTimeout(f"Timed out: {item!r}"))
            except Exception as exc:
                logger.debug("Fan-out task for %r failed: %s", item, exc)
                outcomes.append(exc)
    return outcomes
