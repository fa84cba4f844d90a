"""
Configuration helpers and defaults.

Centralize tunables to avoid magic numbers in code/tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MODEL_ID = "us.meta.llama3-2-1b-instruct-v1:0"


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v is not None else default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    aws_region: str = "us-east-2"
    ai_enabled: bool = True
    llm_model: str = DEFAULT_MODEL_ID
    llm_temperature: float = 0.7
    suggest_max_tokens: int = 200
    parse_max_tokens: int = 100
    llm_max_retries: int = 3
    llm_base_delay_ms: int = 500
    llm_max_delay_ms: int = 4000
    llm_timeout_seconds: float = 30.0
    llm_max_concurrency: int = 0
    cache_ttl_seconds: int = 3600
    cache_max_entries: int = 1024

    def backoff_seconds(self, attempt: int) -> float:
        """min(base * 2**attempt, max), in seconds."""
        ms = min(self.llm_base_delay_ms * (2**attempt), self.llm_max_delay_ms)
        return ms / 1000.0


def load_settings() -> Settings:
    """Load settings from environment with safe defaults for local tests."""

    temperature = float(_env("LLM_TEMPERATURE", "0.7") or 0.7)

    return Settings(
        aws_region=_env("AWS_REGION", "us-east-2") or "us-east-2",
        ai_enabled=_env_bool("AI_ENABLED", True),
        llm_model=_env("LLM_MODEL", DEFAULT_MODEL_ID) or DEFAULT_MODEL_ID,
        llm_temperature=min(max(temperature, 0.0), 1.0),
        suggest_max_tokens=int(_env("LLM_SUGGEST_MAX_TOKENS", "200") or 200),
        parse_max_tokens=int(_env("LLM_PARSE_MAX_TOKENS", "100") or 100),
        llm_max_retries=max(0, int(_env("LLM_MAX_RETRIES", "3") or 3)),
        llm_base_delay_ms=int(_env("LLM_BASE_DELAY_MS", "500") or 500),
        llm_max_delay_ms=int(_env("LLM_MAX_DELAY_MS", "4000") or 4000),
        llm_timeout_seconds=float(_env("LLM_TIMEOUT_SECONDS", "30") or 30),
        llm_max_concurrency=int(_env("LLM_MAX_CONCURRENCY", "0") or 0),
        cache_ttl_seconds=int(_env("SUGGESTION_CACHE_TTL_SECONDS", "3600") or 0),
        cache_max_entries=int(_env("SUGGESTION_CACHE_MAX_ENTRIES", "1024") or 1024),
    )
