# app/config.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env lives in the project root, next to app/
ENV_FILE = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_FILE, override=False)  # pre-load into the process environment


class Settings(BaseSettings):
    # ---- App / Infra ----
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    # Optional: without a database the internal source simply contributes nothing.
    DATABASE_URL: Optional[str] = None
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 4
    DB_CONNECT_TIMEOUT_S: float = 10.0
    DB_QUERY_TIMEOUT_S: float = 10.0
    DB_STATEMENT_TIMEOUT_MS: int = 30_000

    # ---- External content feed ----
    EXTERNAL_FEED_BASE_URL: str = "https://bangla.hindustantimes.com/api/app/sectionfeedperp/v1"
    EXTERNAL_DEFAULT_SECTION: str = "latest-news"
    EXTERNAL_BATCH_LIMIT: int = 50
    EXTERNAL_FETCH_TIMEOUT_S: float = 15.0

    # ---- Pagination ----
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # ---- Web Push (VAPID) ----
    # Not required at class level so the API can boot without a push channel;
    # the dispatcher reports "not configured" instead.
    VAPID_PRIVATE_KEY: Optional[str] = None
    VAPID_PUBLIC_KEY: Optional[str] = None
    VAPID_EMAIL: str = "noreply@example.com"

    # ---- Subscriber token hygiene ----
    TOKEN_MAX_IDLE_DAYS: int = 7
    TOKEN_CLEANUP_INTERVAL_S: int = 6 * 60 * 60

    DEFAULT_ARTICLE_NOTIFICATION_BODY: str = "নতুন খবর প্রকাশিত হয়েছে"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()


def push_channel_configured() -> bool:
    """
    True when both VAPID keys are present.
    """
    return bool(settings.VAPID_PRIVATE_KEY and settings.VAPID_PUBLIC_KEY)
