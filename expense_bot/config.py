from datetime import timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings, sourced from environment variables or .env."""

    app_name: str = Field(default="ExpenseBot")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    database_url: str = Field(alias="DATABASE_URL")
    database_schema: Optional[str] = Field(
        default=None,
        alias="DATABASE_SCHEMA",
        description="Schema that unqualified tables are mapped onto.",
    )
    database_connect_timeout_seconds: float = Field(
        default=5.0,
        alias="DATABASE_CONNECT_TIMEOUT_SECONDS",
        description="Upper bound for a single connection attempt, so cold starts never hang.",
        gt=0,
    )
    direct_database_url: Optional[str] = Field(
        default=None,
        alias="DIRECT_DATABASE_URL",
        description="Optional direct Postgres connection string used for running migrations.",
    )
    auto_run_migrations: bool = Field(default=False, alias="AUTO_RUN_MIGRATIONS")
    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    telegram_webhook_secret: Optional[str] = Field(
        default=None,
        alias="TELEGRAM_WEBHOOK_SECRET",
        description="Expected value of the X-Telegram-Bot-Api-Secret-Token header.",
    )
    telegram_register_webhook_on_start: bool = Field(
        default=False, alias="TELEGRAM_REGISTER_WEBHOOK_ON_START"
    )
    backend_base_url: Optional[AnyHttpUrl] = Field(
        default=None,
        alias="BACKEND_BASE_URL",
        description="The public URL where FastAPI is reachable (used by Telegram webhooks).",
    )
    webhook_require_database: bool = Field(
        default=False,
        alias="WEBHOOK_REQUIRE_DATABASE",
        description="Answer 500 instead of acknowledging when the database cannot be reached.",
    )
    user_timezone: str = Field(
        default="Asia/Jakarta",
        alias="USER_TIMEZONE",
        description="Time zone that defines the user's calendar day.",
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def tzinfo(self) -> tzinfo:
        try:
            return ZoneInfo(self.user_timezone)
        except ZoneInfoNotFoundError:
            return timezone(timedelta(hours=7))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor so imports share a single settings instance."""
    return Settings()  # type: ignore[call-arg]
