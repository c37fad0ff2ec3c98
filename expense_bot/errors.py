"""Error taxonomy shared by the store layer and the command router."""


class ExpenseBotError(Exception):
    """Base class for application errors."""


class StoreError(ExpenseBotError):
    """Raised when the store rejects a well-formed operation."""


class DatabaseConnectionError(StoreError):
    """Raised when the store is unreachable or the connection was lost."""


class ExpenseValidationError(ExpenseBotError, ValueError):
    """Raised for malformed command arguments; never reaches the store."""


class DispatchError(ExpenseBotError):
    """Raised for failures while handling an already acknowledged update."""
