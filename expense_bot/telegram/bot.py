from __future__ import annotations

import contextlib
import logging
import textwrap
from typing import Any, Optional

from telegram import Bot, BotCommand, ReplyKeyboardMarkup, Update
from telegram.constants import ParseMode

from ..config import Settings, get_settings
from ..errors import DispatchError
from ..schemas.expense import ExpenseDraft
from ..services.expenses import (
    RECENT_DEFAULT_LIMIT,
    list_recent,
    list_today,
    local_today,
    record_expense,
    total_amount,
)
from ..services.users import resolve_user
from .helpers import (
    escape_markdown,
    format_date_label,
    format_rupiah,
    identity_from_user,
    parse_add_arguments,
)
from .router import CommandContext, CommandRouter, Route, command_pattern, label_pattern

logger = logging.getLogger(__name__)

MENU_ADD = "➕ Catat Pengeluaran"
MENU_TODAY = "🗓️ Pengeluaran Hari Ini"
MENU_HISTORY = "📜 Riwayat Pengeluaran"
MENU_HELP = "ℹ️ Bantuan"

MAIN_MENU_KEYBOARD = ReplyKeyboardMarkup(
    [
        [MENU_ADD],
        [MENU_TODAY, MENU_HISTORY],
        [MENU_HELP],
    ],
    resize_keyboard=True,
    one_time_keyboard=False,
)

ALLOWED_UPDATES = ["message"]

ADD_USAGE = textwrap.dedent(
    """
    Format salah. Gunakan:
    `/add <jumlah> <deskripsi> [#kategori]`

    Contoh:
    `/add 50000 Makan siang mie ayam`
    `/add 25.000 Bensin motor #transport`
    """
).strip()

HELP_TEXT = textwrap.dedent(
    """
    Cara memakai bot ini:

    - /add <jumlah> <deskripsi> [#kategori] - catat pengeluaran baru.
    - /today - lihat pengeluaran hari ini beserta totalnya.
    - /history - lihat 5 pengeluaran terakhir.
    - /start - tampilkan menu utama.

    Jumlah boleh memakai pemisah ribuan, misalnya 50.000 atau 50,000.
    Tanpa #kategori, pengeluaran masuk ke kategori Lain-lain.
    """
).strip()

FALLBACK_TEXT = "Perintah tidak dikenali. Ketik /start untuk melihat menu."
TODAY_EMPTY_TEXT = "Belum ada pengeluaran yang dicatat hari ini."
HISTORY_EMPTY_TEXT = "Belum ada riwayat pengeluaran."


async def _resolve_sender(update: Update, context: CommandContext):
    return await resolve_user(context.db, identity_from_user(update.effective_user))


async def start(update: Update, context: CommandContext, _args: Any = None) -> None:
    await _resolve_sender(update, context)
    first_name = escape_markdown(update.effective_user.first_name or "")
    greeting = f"Halo {first_name}! 👋" if first_name else "Halo! 👋"
    await update.message.reply_text(
        f"{greeting}\nSaya akan membantu mencatat pengeluaranmu. Pilih menu di bawah "
        "atau ketik /help untuk melihat semua perintah.",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=MAIN_MENU_KEYBOARD,
    )


async def add(update: Update, context: CommandContext, draft: ExpenseDraft) -> None:
    user_id = await _resolve_sender(update, context)
    await record_expense(
        context.db,
        user_id,
        draft.amount,
        draft.description,
        draft.category,
        local_today(context.timezone),
    )
    await update.message.reply_text(
        f"✅ Pengeluaran dicatat: *{escape_markdown(draft.description)}* "
        f"sebesar {format_rupiah(draft.amount)} "
        f"(kategori: {escape_markdown(draft.category)}).",
        parse_mode=ParseMode.MARKDOWN,
    )


async def add_usage(update: Update, context: CommandContext, _args: Any = None) -> None:
    await update.message.reply_text(ADD_USAGE, parse_mode=ParseMode.MARKDOWN)


async def today(update: Update, context: CommandContext, _args: Any = None) -> None:
    user_id = await _resolve_sender(update, context)
    current_day = local_today(context.timezone)
    expenses = await list_today(context.db, user_id, current_day)
    if not expenses:
        await update.message.reply_text(TODAY_EMPTY_TEXT)
        return

    lines = [f"*Pengeluaran hari ini ({format_date_label(current_day)})*"]
    for idx, expense in enumerate(expenses, start=1):
        lines.append(
            f"{idx}. {escape_markdown(expense.description)} - {format_rupiah(expense.amount)} "
            f"_({escape_markdown(expense.category)})_"
        )
    lines.append("")
    lines.append(f"*Total: {format_rupiah(total_amount(expenses))}*")
    await update.message.reply_text("\n".join(lines), parse_mode=ParseMode.MARKDOWN)


async def history(update: Update, context: CommandContext, _args: Any = None) -> None:
    user_id = await _resolve_sender(update, context)
    expenses = await list_recent(context.db, user_id, RECENT_DEFAULT_LIMIT)
    if not expenses:
        await update.message.reply_text(HISTORY_EMPTY_TEXT)
        return

    lines = [f"*{len(expenses)} pengeluaran terakhir*"]
    for expense in expenses:
        lines.append(
            f"{format_date_label(expense.transaction_date)} - "
            f"{escape_markdown(expense.description)} - {format_rupiah(expense.amount)} "
            f"_({escape_markdown(expense.category)})_"
        )
    await update.message.reply_text("\n".join(lines), parse_mode=ParseMode.MARKDOWN)


async def help_command(update: Update, context: CommandContext, _args: Any = None) -> None:
    await update.message.reply_text(HELP_TEXT)


async def fallback(update: Update, context: CommandContext, _args: Any = None) -> None:
    await update.message.reply_text(FALLBACK_TEXT)


ROUTES = (
    Route("start", command_pattern("start", with_args=True), start),
    Route(
        "add",
        command_pattern("add", with_args=True),
        add,
        parse=lambda match: parse_add_arguments(match.group("args")),
        usage=ADD_USAGE,
    ),
    Route("today", command_pattern("today"), today),
    Route("history", command_pattern("history"), history),
    Route("help", command_pattern("help"), help_command),
    Route("menu_add", label_pattern(MENU_ADD), add_usage),
    Route("menu_today", label_pattern(MENU_TODAY), today),
    Route("menu_history", label_pattern(MENU_HISTORY), history),
    Route("menu_help", label_pattern(MENU_HELP), help_command),
)

router = CommandRouter(ROUTES, fallback)

BOT_COMMANDS = [
    BotCommand("start", "Tampilkan menu utama"),
    BotCommand("add", "Catat pengeluaran"),
    BotCommand("today", "Pengeluaran hari ini"),
    BotCommand("history", "Riwayat pengeluaran"),
    BotCommand("help", "Bantuan"),
]


async def handle_update(bot: Bot, context: CommandContext, payload: dict[str, Any]) -> str | None:
    """Route one Telegram update; any failure surfaces as :class:`DispatchError`."""
    try:
        update = Update.de_json(payload, bot)
        bot_username = bot.username if bot is not None else None
        return await router.dispatch(update, context, bot_username=bot_username)
    except Exception as exc:
        raise DispatchError(f"Failed to handle update {payload.get('update_id')}") from exc


async def process_update(
    bot: Optional[Bot],
    context: CommandContext,
    payload: dict[str, Any],
) -> None:
    """Background entry point run after the webhook has been acknowledged."""
    if bot is None:
        logger.error("Telegram bot is not initialised; dropping update %s.", payload.get("update_id"))
        return
    try:
        await handle_update(bot, context, payload)
    except DispatchError:
        logger.exception("Dispatch failed after acknowledgment")


async def init_bot(settings: Settings | None = None) -> Optional[Bot]:
    """Initialise the Telegram bot client and optionally register the webhook."""
    settings = settings or get_settings()
    if not settings.telegram_bot_token:
        logger.info("Telegram bot token not configured; skipping bot initialisation.")
        return None

    bot = Bot(settings.telegram_bot_token)
    try:
        await bot.initialize()
        try:
            await bot.set_my_commands(BOT_COMMANDS)
        except Exception:
            logger.exception("Failed to set Telegram command list.")
        if settings.telegram_register_webhook_on_start:
            if settings.backend_base_url:
                webhook_url = str(settings.backend_base_url).rstrip("/") + "/api/telegram/webhook"
                await bot.set_webhook(
                    url=webhook_url,
                    secret_token=settings.telegram_webhook_secret,
                    allowed_updates=ALLOWED_UPDATES,
                    drop_pending_updates=False,
                )
                logger.info("Telegram webhook configured at %s", webhook_url)
            else:
                logger.warning("BACKEND_BASE_URL is missing; skipping Telegram webhook setup.")
    except Exception:
        logger.exception("Failed to initialise Telegram bot; bot disabled for this run.")
        with contextlib.suppress(Exception):
            await bot.shutdown()
        return None
    return bot


async def shutdown_bot(bot: Optional[Bot]) -> None:
    """Release the Telegram bot's HTTP resources."""
    if bot is None:
        return
    await bot.shutdown()
