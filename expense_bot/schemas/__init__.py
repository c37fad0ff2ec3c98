from .expense import ExpenseCreate, ExpenseDraft, ExpenseRead
from .user import TelegramIdentity

__all__ = [
    "ExpenseCreate",
    "ExpenseDraft",
    "ExpenseRead",
    "TelegramIdentity",
]
