"""Configuration primitives for the profile analyzer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import os


def _env_flag(name: str, *, default: bool) -> bool:
    """Interpret common truthy/falsey environment values."""

    value = os.environ.get(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_secret(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Runtime configuration defaults; thresholds of the heuristics are not here."""

    anthropic_api_key: Optional[str] = _env_secret("ANTHROPIC_API_KEY")
    ai_enabled: bool = not _env_flag("PROFILE_ANALYZER_DISABLE_AI", default=False)
    ai_model: str = os.environ.get("PROFILE_ANALYZER_AI_MODEL", "claude-sonnet-4-20250514")
    ai_max_tokens: int = _env_int("PROFILE_ANALYZER_AI_MAX_TOKENS", 2048)
    ai_timeout_seconds: int = _env_int("PROFILE_ANALYZER_AI_TIMEOUT", 60)
    max_in_array_length: int = _env_int("PROFILE_ANALYZER_MAX_IN_ARRAY", 10)
    parallel_analysis: bool = _env_flag("PROFILE_ANALYZER_PARALLEL", default=False)
    max_upload_bytes: int = _env_int("PROFILE_ANALYZER_MAX_UPLOAD_MB", 64) * 1024 * 1024
    pattern_limit: int = 20
    example_limit: int = 3


settings = Settings()
