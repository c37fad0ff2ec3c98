from .expenses import list_recent, list_today, local_today, record_expense, total_amount
from .users import get_user_by_telegram_id, resolve_user

__all__ = [
    "record_expense",
    "list_today",
    "list_recent",
    "local_today",
    "total_amount",
    "resolve_user",
    "get_user_by_telegram_id",
]
