"""Shared fixtures: mocked LiteLLM, fake upstream fetchers and the API client."""

from __future__ import annotations

import os
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest
import pytest_asyncio

from src.common.http import UpstreamError

os.environ.setdefault("OPENAI_API_KEY", "sk-test-fake-key")


def make_llm_response(content: str = "Test response"):
    """Build a mock LiteLLM ModelResponse."""
    msg = MagicMock()
    msg.content = content
    msg.tool_calls = None
    msg.model_dump.return_value = {"role": "assistant", "content": content}

    choice = MagicMock()
    choice.message = msg

    resp = MagicMock()
    resp.choices = [choice]
    return resp


class FakeFetcher:
    """Stand-in for an upstream fetcher keyed on URL substrings.

    ``routes`` maps a substring of the requested URL (including encoded query
    params) to a response body, or to an exception instance to raise. The
    first matching route wins; unmatched URLs raise ``UpstreamError``.
    Every call is recorded in ``calls`` as the full URL.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[str] = []

    def __call__(self, url: str, *, params: dict[str, Any] | None = None, **_: Any) -> Any:
        full = url
        if params:
            full += "?" + "&".join(f"{k}={v}" for k, v in params.items())
        self.calls.append(full)
        for key, body in self.routes.items():
            if key in full:
                if isinstance(body, BaseException):
                    raise body
                return body
        raise UpstreamError(f"no fake route for {full}")

    def count(self, fragment: str) -> int:
        return sum(1 for c in self.calls if fragment in c)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer env overrides out of the tests."""
    for key in list(os.environ):
        if key.startswith("LIFEDASH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", os.environ.get("OPENAI_API_KEY") or "sk-test-fake-key")
    yield


@pytest.fixture()
def no_llm(monkeypatch):
    """Run with no LLM credentials configured."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    yield


@pytest.fixture()
def mock_llm():
    """Patch litellm.completion; set ``.return_value`` / ``.side_effect`` per test."""
    with patch("litellm.completion", return_value=make_llm_response("{}")) as m:
        yield m


@pytest_asyncio.fixture()
async def client(mock_llm):
    """Async httpx client bound to the FastAPI app with a mocked LLM."""
    from src.dashboard.app import app

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
