from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.expense import DEFAULT_CATEGORY


class ExpenseDraft(BaseModel):
    """Validated arguments of an expense before it is tied to a user."""

    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    description: str = Field(min_length=1, max_length=512)
    category: str = Field(default=DEFAULT_CATEGORY, min_length=1, max_length=64)

    @field_validator("description", mode="before")
    @classmethod
    def _strip_description(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: object) -> object:
        """Blank or missing categories fall back to the default bucket."""
        if value is None:
            return DEFAULT_CATEGORY
        if isinstance(value, str):
            return value.strip() or DEFAULT_CATEGORY
        return value


class ExpenseCreate(ExpenseDraft):
    """Internal payload for persisting a new expense."""

    user_id: UUID
    transaction_date: date


class ExpenseRead(BaseModel):
    """Detached snapshot of a stored expense."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    amount: Decimal
    description: str
    category: str
    transaction_date: date
    recorded_at: datetime
