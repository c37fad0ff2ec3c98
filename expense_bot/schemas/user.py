from __future__ import annotations

from pydantic import BaseModel, Field


class TelegramIdentity(BaseModel):
    """Sender metadata taken from an inbound Telegram message."""

    telegram_id: int = Field(ge=0)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=255)
