"""Single-turn assistant replies for the dashboard chat box."""

from __future__ import annotations

import logging
import re
from datetime import datetime

from src.ai import llm_provider

logger = logging.getLogger("lifedash.ai.chat")

CHAT_SYSTEM_PROMPT = "You are a concise, helpful assistant."
CHAT_TEMPERATURE = 0.3

EMPTY_PROMPT_MESSAGE = "Ask me anything."
DEMO_MESSAGE = (
    "Chat is running in demo mode (no LLM API key on the server). "
    "Add OPENAI_API_KEY (or your provider's key) to .env.local and restart."
)
PROVIDER_ERROR_MESSAGE = "I had trouble contacting the AI service. Please try again."
NO_REPLY_MESSAGE = "I don't have a response right now."

_TIME_QUESTION_RE = re.compile(r"^what('?s| is) the time")


def reply(question: str) -> str:
    """Answer ``question``. Never raises; failures become a friendly message."""
    q = (question or "").strip()
    if not q:
        return EMPTY_PROMPT_MESSAGE

    if not llm_provider.is_configured():
        if _TIME_QUESTION_RE.match(q.lower()):
            return f"It's {datetime.now().strftime('%Y-%m-%d %H:%M')}."
        return DEMO_MESSAGE

    try:
        answer = llm_provider.complete(
            [
                {"role": "system", "content": CHAT_SYSTEM_PROMPT},
                {"role": "user", "content": q},
            ],
            temperature=CHAT_TEMPERATURE,
            label="chat",
        )
    except Exception as exc:
        logger.warning("Chat completion failed: %s", exc)
        return PROVIDER_ERROR_MESSAGE
    return answer or NO_REPLY_MESSAGE
