from __future__ import annotations

import os
from dataclasses import dataclass


def _env(name: str, default: str | None = None) -> str | None:
    val = os.environ.get(name)
    if val is None or val.strip() == "":
        return default
    return val


def _env_float(name: str, default: float) -> float:
    val = _env(name)
    return float(val) if val is not None else default


def _env_int(name: str, default: int) -> int:
    val = _env(name)
    return int(val) if val is not None else default


def _env_bool(name: str, default: bool) -> bool:
    val = _env(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ServerSettings:
    provider: str = "openai"
    openai_model: str = "gpt-4o-mini"
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    openai_json_mode: bool = True
    gemini_model: str = "gemini-1.5-flash-002"
    google_api_key: str | None = None
    google_cloud_project: str | None = None
    google_cloud_location: str = "us-central1"
    gemini_json_mode: bool = True
    llm_timeout_seconds: float = 30.0
    session_ttl_seconds: int = 60 * 60
    session_max: int = 10_000
    port: int = 3000
    log_level: str = "info"

    @classmethod
    def from_env(cls) -> "ServerSettings":
        return cls(
            provider=(_env("LLM_PROVIDER", "openai") or "openai").strip().lower(),
            openai_model=_env("LLM_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_base_url=_env("OPENAI_BASE_URL"),
            openai_json_mode=_env_bool("OPENAI_JSON_MODE", True),
            # Vertex AI model availability can vary by project/region; override with GEMINI_MODEL.
            gemini_model=_env("GEMINI_MODEL", "gemini-1.5-flash-002") or "gemini-1.5-flash-002",
            google_api_key=_env("GOOGLE_API_KEY"),
            google_cloud_project=_env("GOOGLE_CLOUD_PROJECT"),
            google_cloud_location=_env("GOOGLE_CLOUD_LOCATION", "us-central1") or "us-central1",
            gemini_json_mode=_env_bool("GEMINI_JSON_MODE", True),
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 30.0),
            session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", 60 * 60),
            session_max=_env_int("SESSION_MAX", 10_000),
            port=_env_int("PORT", 3000),
            log_level=(_env("LOG_LEVEL", "info") or "info").lower(),
        )


@dataclass(frozen=True)
class ClientSettings:
    """Tunables for the editor-side pipeline. Times are in seconds."""

    base_url: str = "http://localhost:3000"
    pause_seconds: float = 1.8  # silence before triggering analysis
    cooldown_seconds: float = 8.0  # between consecutive API calls
    min_chars: int = 8  # minimum document length before calling API
    window_chars: int = 1200  # max characters sent to backend
    source_ttl_seconds: float = 5.0  # before re-reading the document source
    http_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "ClientSettings":
        return cls(
            base_url=_env("RETHINK_BASE_URL", "http://localhost:3000") or "http://localhost:3000",
            pause_seconds=_env_float("RETHINK_PAUSE_SECONDS", 1.8),
            cooldown_seconds=_env_float("RETHINK_COOLDOWN_SECONDS", 8.0),
            min_chars=_env_int("RETHINK_MIN_CHARS", 8),
            window_chars=_env_int("RETHINK_WINDOW_CHARS", 1200),
            source_ttl_seconds=_env_float("RETHINK_SOURCE_TTL_SECONDS", 5.0),
            http_timeout_seconds=_env_float("RETHINK_HTTP_TIMEOUT_SECONDS", 30.0),
        )
