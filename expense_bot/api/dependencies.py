from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Request
from telegram import Bot

from ..db import ConnectionManager
from ..telegram.router import CommandContext


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.db


def get_command_context(request: Request) -> CommandContext:
    return request.app.state.command_context


def get_bot(request: Request) -> Optional[Bot]:
    return getattr(request.app.state, "bot", None)


ConnectionManagerDep = Annotated[ConnectionManager, Depends(get_connection_manager)]
CommandContextDep = Annotated[CommandContext, Depends(get_command_context)]
BotDep = Annotated[Optional[Bot], Depends(get_bot)]
