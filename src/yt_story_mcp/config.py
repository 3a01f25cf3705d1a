from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://api.assemblyai.com/v2"
DEFAULT_ACCEPT_LANGUAGE = "pt-BR,pt;q=0.9,en-US;q=0.8"


@dataclass(slots=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    mcp_path: str = "/mcp"
    health_path: str = "/healthz"
    story_path: str = "/api/story-from-youtube"
    selftest_path: str = "/api/aai-selftest"
    assemblyai_api_key: str = ""
    assemblyai_base_url: str = DEFAULT_BASE_URL
    ytdlp_path: str = "yt-dlp"
    audio_strategies: tuple[str, ...] = ("library", "process")
    language_code: str = "pt"
    poll_interval_seconds: float = 4.0
    poll_max_attempts: int = 30
    http_timeout_seconds: float = 600.0
    max_duration_seconds: float = 600.0
    user_agent: str = "Mozilla/5.0"
    accept_language: str | None = DEFAULT_ACCEPT_LANGUAGE
    youtube_cookie: str | None = None
    product_name: str = "Lipidz"
    cors_allow_origin: str = "*"
    log_level: str = "INFO"


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _as_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    return float(raw)


def _as_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


def _normalized_path(path: str) -> str:
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int("PORT", 3000),
        mcp_path=_normalized_path(os.getenv("MCP_PATH", "/mcp")),
        health_path=_normalized_path(os.getenv("HEALTH_PATH", "/healthz")),
        story_path=_normalized_path(os.getenv("STORY_PATH", "/api/story-from-youtube")),
        selftest_path=_normalized_path(os.getenv("SELFTEST_PATH", "/api/aai-selftest")),
        assemblyai_api_key=os.getenv("ASSEMBLYAI_API_KEY", "").strip(),
        assemblyai_base_url=os.getenv("ASSEMBLYAI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        ytdlp_path=os.getenv("YTDLP_PATH", "yt-dlp").strip(),
        audio_strategies=_as_list("AUDIO_STRATEGIES", ("library", "process")),
        language_code=os.getenv("LANGUAGE_CODE", "pt"),
        poll_interval_seconds=_as_float("POLL_INTERVAL_SECONDS", 4.0),
        poll_max_attempts=_as_int("POLL_MAX_ATTEMPTS", 30),
        http_timeout_seconds=_as_float("HTTP_TIMEOUT_SECONDS", 600.0),
        max_duration_seconds=_as_float("MAX_DURATION_SECONDS", 600.0),
        user_agent=os.getenv("YTDLP_USER_AGENT", "Mozilla/5.0"),
        accept_language=os.getenv("ACCEPT_LANGUAGE", DEFAULT_ACCEPT_LANGUAGE) or None,
        youtube_cookie=os.getenv("YOUTUBE_COOKIE") or None,
        product_name=os.getenv("PRODUCT_NAME", "Lipidz"),
        cors_allow_origin=os.getenv("CORS_ALLOW_ORIGIN", "*"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
