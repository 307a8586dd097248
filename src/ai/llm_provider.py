"""LLM provider abstraction using LiteLLM.

Supports OpenAI, Anthropic, Google Gemini, Azure and Ollama (local).
Provider and model are configured in config.yaml under the ``llm:`` section.
API keys come from environment variables following LiteLLM conventions.

Every completion is deadline-bounded: callers in request handlers get either
text or an exception, never a hung request.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from src.common.config import get_config
from src.common.http import bounded_call

logger = logging.getLogger("lifedash.ai.llm")

_PROVIDER_MODEL_DEFAULTS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
    "google": "gemini/gemini-2.0-flash",
    "azure": "azure/gpt-4o-mini",
    "ollama": "ollama/llama3.1",
}

_PROVIDER_KEY_VARS: dict[str, tuple[str, ...]] = {
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "google": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "azure": ("AZURE_API_KEY",),
}

# Planner output must follow a schema; keep sampling close to greedy.
MAX_PLANNING_TEMPERATURE = 0.4


class LLMUnavailable(RuntimeError):
    """No credentials are configured for the selected provider."""


def _load_llm_config() -> dict[str, Any]:
    cfg = get_config()
    return dict(cfg.get("llm", {}))


def _resolve_model(cfg: dict[str, Any]) -> str:
    """Build the LiteLLM model string from provider + model config."""
    provider = cfg.get("provider", "openai")
    model = cfg.get("model", "")

    if not model:
        model = _PROVIDER_MODEL_DEFAULTS.get(provider, "gpt-4o-mini")

    if provider == "ollama" and not model.startswith("ollama/"):
        model = f"ollama/{model}"
    elif provider == "azure" and not model.startswith("azure/"):
        model = f"azure/{model}"
    elif provider == "google" and not model.startswith("gemini/"):
        model = f"gemini/{model}"

    return model


def is_configured(cfg: dict[str, Any] | None = None) -> bool:
    """True when the configured provider has the credentials it needs."""
    cfg = cfg if cfg is not None else _load_llm_config()
    provider = cfg.get("provider", "openai")
    if provider == "ollama":
        return True
    key_vars = _PROVIDER_KEY_VARS.get(provider, ("OPENAI_API_KEY",))
    return any(os.environ.get(k) for k in key_vars)


def complete(
    messages: list[dict[str, str]],
    *,
    temperature: float | None = None,
    json_mode: bool = False,
    timeout: float | None = None,
    label: str = "llm",
) -> str:
    """Send messages to the configured LLM provider. Returns response text.

    Parameters
    ----------
    messages:
        OpenAI-format message list (role + content dicts).
    temperature:
        Override the configured sampling temperature for this call.
    json_mode:
        Ask providers that support it for a JSON object response.
    timeout:
        Hard deadline in seconds; defaults to ``llm.timeout``.

    Raises :class:`LLMUnavailable` when no credentials are configured and
    ``UpstreamError`` subclasses or provider exceptions on failure.
    """
    import litellm

    cfg = _load_llm_config()
    if not is_configured(cfg):
        raise LLMUnavailable(f"No API key configured for provider {cfg.get('provider', 'openai')!r}")

    model = _resolve_model(cfg)
    deadline = float(timeout if timeout is not None else cfg.get("timeout", 20.0))

    kwargs: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": cfg.get("temperature", 0.2) if temperature is None else temperature,
        "timeout": deadline,
    }
    if cfg.get("api_base"):
        kwargs["api_base"] = cfg["api_base"]
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    logger.info("LLM call: model=%s, label=%s, msgs=%d", model, label, len(messages))

    litellm.drop_params = True
    response = bounded_call(litellm.completion, deadline=deadline, label=label, **kwargs)
    content = response.choices[0].message.content or ""

    logger.info("LLM response: %d chars", len(content))
    return content.strip()


def planning_temperature() -> float:
    """Configured temperature, capped for schema-following planner calls."""
    cfg = _load_llm_config()
    try:
        configured = float(cfg.get("temperature", 0.2))
    except (TypeError, ValueError):
        configured = 0.2
    return min(configured, MAX_PLANNING_TEMPERATURE)
