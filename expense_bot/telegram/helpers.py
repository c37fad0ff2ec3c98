from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from ..errors import ExpenseValidationError
from ..schemas.expense import ExpenseDraft
from ..schemas.user import TelegramIdentity

# "1,250" and "1,250.50": comma thousands with an optional dot decimal part.
COMMA_AMOUNT_PATTERN = re.compile(r"^(?:[1-9]\d{0,2}(?:,\d{3})+|\d+)(?:\.\d+)?$")
# "1.250.000" and "1.234,50": how most Indonesian users write amounts.
DOTTED_AMOUNT_PATTERN = re.compile(r"^(?:[1-9]\d{0,2}(?:\.\d{3})+|\d+)(?:,\d{1,2})?$")
CATEGORY_PREFIX = "#"


def parse_amount_token(raw: str) -> Decimal:
    token = raw.strip()
    if DOTTED_AMOUNT_PATTERN.match(token) and ("." in token or "," in token):
        token = token.replace(".", "").replace(",", ".")
    elif COMMA_AMOUNT_PATTERN.match(token):
        token = token.replace(",", "")
    else:
        raise ExpenseValidationError(f"Invalid amount '{raw}'.")
    try:
        return Decimal(token)
    except (InvalidOperation, ValueError) as exc:
        raise ExpenseValidationError(f"Invalid amount '{raw}'.") from exc


def parse_add_arguments(args: str | None) -> ExpenseDraft:
    """Parse ``<amount> <description> [#category]`` into a validated draft."""
    tokens = (args or "").split()
    if len(tokens) < 2:
        raise ExpenseValidationError("Provide an amount and a description.")
    amount = parse_amount_token(tokens[0])
    rest = tokens[1:]
    category: str | None = None
    if len(rest) > 1 and rest[-1].startswith(CATEGORY_PREFIX):
        category = rest.pop()[len(CATEGORY_PREFIX):]
    try:
        return ExpenseDraft(amount=amount, description=" ".join(rest), category=category)
    except SchemaValidationError as exc:
        raise ExpenseValidationError(exc.errors()[0]["msg"]) from exc


def identity_from_user(user: Any) -> TelegramIdentity:
    return TelegramIdentity(
        telegram_id=user.id,
        first_name=getattr(user, "first_name", None),
        last_name=getattr(user, "last_name", None),
        username=getattr(user, "username", None),
    )


def escape_markdown(text: str) -> str:
    return (
        text.replace("_", "\\_")
        .replace("*", "\\*")
        .replace("`", "\\`")
        .replace("[", "\\[")
    )


def format_rupiah(amount: str | Decimal) -> str:
    """Render an amount as ``Rp 1.250.000`` (cents only when present)."""
    try:
        value = Decimal(str(amount)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return f"Rp {amount}"

    sign = "-" if value < 0 else ""
    value = abs(value)
    whole = int(value)
    cents = int((value - whole) * 100)
    text = f"{whole:,}".replace(",", ".")
    if cents:
        text = f"{text},{cents:02d}"
    return f"{sign}Rp {text}"


def format_date_label(value: date) -> str:
    return value.strftime("%d/%m/%Y")
