from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Optional

from telegram import Update
from telegram.constants import ParseMode

from ..db import ConnectionManager
from ..errors import ExpenseValidationError, StoreError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Maaf, terjadi kesalahan. Silakan coba lagi nanti."
FALLBACK_ROUTE = "fallback"


@dataclass(frozen=True)
class CommandContext:
    """Collaborators handed to every command handler."""

    db: ConnectionManager
    timezone: tzinfo


Handler = Callable[[Update, CommandContext, Any], Awaitable[None]]
Parser = Callable[[re.Match[str]], Any]


@dataclass(frozen=True)
class Route:
    """One row of the routing table: a pattern, an optional parser and a handler."""

    name: str
    pattern: re.Pattern[str]
    handler: Handler
    parse: Optional[Parser] = None
    usage: Optional[str] = None


def command_pattern(command: str, *, with_args: bool = False) -> re.Pattern[str]:
    """Case-sensitive ``/command`` pattern, optionally followed by ``@BotName``."""
    args = r"(?:\s+(?P<args>.*))?" if with_args else ""
    return re.compile(rf"/{re.escape(command)}(?:@(?P<bot>\w+))?{args}", re.DOTALL)


def label_pattern(label: str) -> re.Pattern[str]:
    return re.compile(re.escape(label))


class CommandRouter:
    """Dispatches message text to the first route whose pattern matches in full."""

    def __init__(self, routes: Sequence[Route], fallback: Handler) -> None:
        self.routes = tuple(routes)
        self.fallback = fallback

    def match(self, text: str) -> tuple[Route | None, re.Match[str] | None]:
        for route in self.routes:
            match = route.pattern.fullmatch(text)
            if match:
                return route, match
        return None, None

    @staticmethod
    def addressed_elsewhere(match: re.Match[str], bot_username: Optional[str]) -> bool:
        """True for ``/command@OtherBot``; Telegram usernames are case-insensitive."""
        target = match.groupdict().get("bot")
        return bool(target and bot_username and target.lower() != bot_username.lower())

    async def dispatch(
        self,
        update: Update,
        context: CommandContext,
        bot_username: Optional[str] = None,
    ) -> str | None:
        """Handle one update and return the name of the route that served it.

        Commands addressed to a different bot are ignored without a reply.
        """
        message = update.message
        text = (message.text or "").strip() if message else ""
        if not text:
            return None

        route, match = self.match(text)
        if route is not None and self.addressed_elsewhere(match, bot_username):
            logger.debug("Ignoring %s addressed to another bot.", route.name)
            return None
        if route is None:
            await self.fallback(update, context, None)
            return FALLBACK_ROUTE

        try:
            args = route.parse(match) if route.parse else None
            await route.handler(update, context, args)
        except ExpenseValidationError as exc:
            logger.info("Rejected %s arguments: %s", route.name, exc)
            await message.reply_text(route.usage or str(exc), parse_mode=ParseMode.MARKDOWN)
        except StoreError:
            logger.exception("Store failure while handling %s", route.name)
            await message.reply_text(GENERIC_ERROR_MESSAGE)
        return route.name
