from .base import Base
from .expense import DEFAULT_CATEGORY, Expense
from .user import User

__all__ = [
    "Base",
    "DEFAULT_CATEGORY",
    "Expense",
    "User",
]
