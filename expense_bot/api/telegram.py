import logging
import secrets
from typing import Annotated, Optional

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

from ..config import get_settings
from ..errors import DatabaseConnectionError
from ..telegram.bot import process_update
from .dependencies import BotDep, CommandContextDep, ConnectionManagerDep

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_secret(secret: Optional[str]) -> None:
    settings = get_settings()
    expected = settings.telegram_webhook_secret
    if expected and not secrets.compare_digest(secret or "", expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)


@router.post("/webhook", response_class=PlainTextResponse)
async def telegram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: ConnectionManagerDep,
    context: CommandContextDep,
    bot: BotDep,
    x_telegram_bot_api_secret_token: Annotated[Optional[str], Header()] = None,
) -> str:
    """Acknowledge the delivery at once; command handling runs after the response."""
    verify_secret(x_telegram_bot_api_secret_token)

    if get_settings().webhook_require_database:
        try:
            await db.acquire()
        except DatabaseConnectionError as exc:
            logger.error("Rejecting Telegram update: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Database unavailable",
            ) from exc

    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Dropping Telegram update with a malformed JSON body.")
        return "OK"
    if not isinstance(payload, dict):
        logger.warning("Dropping Telegram update that is not a JSON object.")
        return "OK"

    background_tasks.add_task(process_update, bot, context, payload)
    return "OK"
