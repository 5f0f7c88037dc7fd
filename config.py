"""
Central settings for the QuestAI quiz service (FastAPI).

ASSUMPTIONS / CHECK:
- Values come from the environment (a `.env` is loaded for local dev).
- STORAGE_BACKEND=prisma needs DATABASE_URL and a generated Prisma client;
  the default `memory` backend keeps everything in-process.
- JWT_SECRET must match the auth provider's signing key in production.
"""
from __future__ import annotations
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _env(name: str, default: str) -> str:
    return os.getenv(name, default)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseModel):
    service_name: str = "questai-quiz-service"
    version: str = "1.0.0"
    environment: str = Field(default_factory=lambda: _env("APP_ENV", "development"))
    log_level: str = Field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))

    # Storage: "memory" | "prisma" (Prisma uses DATABASE_URL; see db/client.py)
    storage_backend: str = Field(default_factory=lambda: _env("STORAGE_BACKEND", "memory"))
    prisma_log_queries: bool = False

    # Used to build shareable live-quiz links
    public_app_url: str = Field(default_factory=lambda: _env("PUBLIC_APP_URL", "http://localhost:3000"))

    # Auth (bearer tokens issued by the auth provider)
    jwt_secret: str = Field(default_factory=lambda: _env("JWT_SECRET", "change-me"))
    jwt_algorithms: List[str] = Field(default_factory=lambda: _env_list("JWT_ALGORITHMS") or ["HS256"])
    jwt_audience: str = Field(default_factory=lambda: _env("JWT_AUDIENCE", ""))
    require_verified_email: bool = Field(default_factory=lambda: _env_bool("REQUIRE_VERIFIED_EMAIL", True))
    admin_uids: List[str] = Field(default_factory=lambda: _env_list("ADMIN_UIDS"))

    # AI text generation (Gemini)
    gemini_api_key: str = Field(default_factory=lambda: _env("GEMINI_API_KEY", ""))
    gemini_api_url: str = Field(
        default_factory=lambda: _env("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta/models")
    )
    gemini_model: str = Field(default_factory=lambda: _env("GEMINI_MODEL", "gemini-1.5-flash"))
    ai_timeout_seconds: float = 60.0
    ai_temperature: float = 0.4
    ai_max_tokens: int = 4000

    # Live quiz scheduling
    schedule_checker_enabled: bool = Field(default_factory=lambda: _env_bool("SCHEDULE_CHECKER_ENABLED", True))
    schedule_poll_seconds: float = 30.0
    live_quiz_max_retries: int = 5

    # Leaderboards
    leaderboard_size: int = 20
    global_leaderboard_size: int = 20

    # AI endpoint rate limiting: 25 requests per hour per user
    rate_limit_enabled: bool = Field(default_factory=lambda: _env_bool("RATE_LIMIT_ENABLED", False))
    rate_limit_max: int = 25
    rate_limit_window_seconds: int = 60 * 60


settings = Settings()
