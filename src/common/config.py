"""Load LifeDash configuration from config.yaml, with env-var overrides."""

from __future__ import annotations

import copy
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("lifedash")

REPO_DIR = Path(__file__).resolve().parent.parent.parent
_DEFAULT_CONFIG_PATH = REPO_DIR / "config" / "config.yaml"
ENV_LOCAL = REPO_DIR / ".env.local"

DEFAULTS: dict[str, Any] = {
    "log_level": "INFO",
    "log_dir": None,
    "cors_origins": ["http://localhost:3000", "http://127.0.0.1:3000"],
    "llm": {
        "provider": "openai",
        "model": "gpt-4o-mini",
        "temperature": 0.2,
        "timeout": 20.0,
        "api_base": None,
    },
    "http": {
        "timeout": 10.0,
        "user_agent": "Mozilla/5.0 (compatible; LifeDash/1.0)",
    },
    "quotes": {
        "timeout": 10.0,
    },
    "feeds": {
        "timeout": 10.0,
        "max_items": 20,
    },
}


def load_env_local(env_file: Path | None = None) -> None:
    """Load .env.local into os.environ so provider API keys can be found."""
    env_file = env_file or ENV_LOCAL
    if env_file.is_file():
        for line in env_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip())


def load_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file over built-in defaults, with env-var overrides.

    A missing file is not an error: every handler must be able to answer
    with the defaults alone.

    Environment variable overrides (if set):
        LIFEDASH_LOG_LEVEL     -> log_level
        LIFEDASH_LOG_DIR       -> log_dir
        LIFEDASH_LLM_PROVIDER  -> llm.provider
        LIFEDASH_LLM_MODEL     -> llm.model
        LIFEDASH_HTTP_TIMEOUT  -> http.timeout
    """
    path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
    cfg = copy.deepcopy(DEFAULTS)

    if path.is_file():
        try:
            with open(path, encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except (yaml.YAMLError, OSError) as exc:
            logger.warning("Unreadable config %s, using defaults: %s", path, exc)
            raw = {}
        if isinstance(raw, dict):
            _deep_merge(cfg, raw)
    else:
        logger.debug("Config file not found at %s, using defaults", path)

    _env_override(cfg, "LIFEDASH_LOG_LEVEL", "log_level")
    _env_override(cfg, "LIFEDASH_LOG_DIR", "log_dir")
    _env_override(cfg, "LIFEDASH_LLM_PROVIDER", "llm", "provider")
    _env_override(cfg, "LIFEDASH_LLM_MODEL", "llm", "model")
    _env_override(cfg, "LIFEDASH_HTTP_TIMEOUT", "http", "timeout", cast=float)

    return cfg


@lru_cache(maxsize=1)
def get_config() -> dict[str, Any]:
    """The default config, loaded once per process. Treat it as read-only."""
    return load_config()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        elif value is not None:
            base[key] = value


def _env_override(cfg: dict, env_key: str, *keys: str, cast: Any = str) -> None:
    """Override a nested config value from an environment variable."""
    val = os.environ.get(env_key)
    if val is None:
        return
    try:
        converted = cast(val)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a valid %s", env_key, val, cast.__name__)
        return
    target = cfg
    for k in keys[:-1]:
        target = target.setdefault(k, {})
    target[keys[-1]] = converted


def setup_logging(cfg: dict[str, Any]) -> None:
    """Configure the ``lifedash`` logger: stderr + optional rotating file."""
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    root = logging.getLogger("lifedash")
    root.setLevel(getattr(logging, str(cfg.get("log_level", "INFO")).upper(), logging.INFO))
    if root.handlers:
        return

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(sh)

    log_dir = cfg.get("log_dir")
    if log_dir:
        from logging.handlers import RotatingFileHandler

        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_path / "lifedash.log", maxBytes=5_000_000, backupCount=3)
        fh.setFormatter(fmt)
        root.addHandler(fh)
