"""Telegram expense tracker served behind a FastAPI webhook."""
