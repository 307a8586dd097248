from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.ai.summarizer import extractive_summary, summarize_items, summarize_text
from src.common.http import UpstreamStatusError
from tests.conftest import make_llm_response

ARTICLE = (
    "The council approved the new cycle lane on Tuesday evening. "
    "Construction is expected to start in early spring next year. "
    "Residents raised concerns about parking during the consultation. "
    "The scheme is funded by a national active travel grant."
)


class TestSummarizeText:
    def test_extractive_without_model(self, no_llm, mock_llm) -> None:
        result = summarize_text(ARTICLE, title="Cycle lane")
        assert result.mode == "extractive"
        assert result.summary.startswith("Cycle lane\n\n• The council approved")
        assert result.summary.endswith("TL;DR: The council approved the new cycle lane on Tuesday evening.")
        mock_llm.assert_not_called()

    def test_llm_summary(self, mock_llm) -> None:
        mock_llm.return_value = make_llm_response("• Lane approved\n\nTL;DR: Cycle lane coming.")
        result = summarize_text(ARTICLE, title="Cycle lane")
        assert result.to_dict() == {"summary": "• Lane approved\n\nTL;DR: Cycle lane coming.", "mode": "ai"}
        user_msg = mock_llm.call_args.kwargs["messages"][1]["content"]
        assert user_msg.startswith("TITLE: Cycle lane")
        assert "Residents raised concerns" in user_msg

    def test_llm_failure_falls_back(self, mock_llm) -> None:
        mock_llm.side_effect = RuntimeError("quota")
        assert summarize_text(ARTICLE).mode == "extractive"

    def test_url_is_fetched_and_stripped(self, no_llm) -> None:
        seen: list[str] = []

        def page(url: str) -> str:
            seen.append(url)
            return ARTICLE

        result = summarize_text(url="https://example.com/a", page_fetcher=page)
        assert seen == ["https://example.com/a"]
        assert "cycle lane" in result.summary

    def test_url_failure_propagates(self) -> None:
        def page(url: str) -> str:
            raise UpstreamStatusError(url, 403)

        with pytest.raises(UpstreamStatusError):
            summarize_text(url="https://example.com/paywalled", page_fetcher=page)

    def test_missing_input(self) -> None:
        with pytest.raises(ValueError):
            summarize_text("   ")

    def test_source_clamped(self, mock_llm) -> None:
        mock_llm.return_value = make_llm_response("ok")
        summarize_text("word " * 10_000)
        content = mock_llm.call_args.kwargs["messages"][1]["content"]
        assert content.endswith("\n…")


class TestExtractive:
    def test_short_text_without_sentences(self) -> None:
        assert extractive_summary("tiny") == "TL;DR: tiny"

    def test_empty(self) -> None:
        assert extractive_summary("", title="T") == "TL;DR: T"


class TestSummarizeItems:
    def test_shapes_and_cap(self) -> None:
        published = (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat()
        items = [{
            "title": "<b>Headline</b>",
            "description": "<p>" + "x" * 300 + "</p>",
            "link": "https://e.example/1",
            "source": " e.example ",
            "published": published,
            "thumb": "https://img.example/1.jpg",
        }] + [{"title": f"T{i}"} for i in range(20)]
        out = summarize_items(items)
        assert len(out) == 12
        first = out[0]
        assert first["title"] == "Headline"
        assert len(first["summary"]) == 158
        assert first["summary"].endswith("…")
        assert first["image"] == "https://img.example/1.jpg"
        assert first["source"] == "e.example"
        assert first["time"] == "5m ago"
        assert out[1] == {"title": "T0", "summary": "T0", "image": None, "source": "", "time": "", "link": "#"}

    def test_non_dicts_skipped(self) -> None:
        assert summarize_items(["nope", None]) == []
