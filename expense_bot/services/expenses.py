from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import select

from ..config import get_settings
from ..db import ConnectionManager
from ..errors import ExpenseValidationError
from ..models.expense import Expense
from ..schemas.expense import ExpenseCreate, ExpenseRead

RECENT_DEFAULT_LIMIT = 5


def local_today(tz: tzinfo | None = None) -> date:
    """Calendar date in the configured user time zone."""
    return datetime.now(tz or get_settings().tzinfo).date()


def build_expense(
    user_id: UUID,
    amount: Decimal,
    description: str,
    category: Optional[str] = None,
    transaction_date: Optional[date] = None,
) -> ExpenseCreate:
    try:
        return ExpenseCreate(
            user_id=user_id,
            amount=amount,
            description=description,
            category=category,
            transaction_date=transaction_date or local_today(),
        )
    except SchemaValidationError as exc:
        raise ExpenseValidationError(exc.errors()[0]["msg"]) from exc


async def record_expense(
    db: ConnectionManager,
    user_id: UUID,
    amount: Decimal,
    description: str,
    category: Optional[str] = None,
    transaction_date: Optional[date] = None,
) -> UUID:
    """Persist a new expense and return its id.

    Validation happens before the store is touched, so an invalid amount or
    description never costs a connection.
    """
    payload = build_expense(user_id, amount, description, category, transaction_date)
    async with db.session() as session:
        expense = Expense(**payload.model_dump())
        session.add(expense)
        await session.commit()
        return expense.id


async def list_today(
    db: ConnectionManager,
    user_id: UUID,
    today: Optional[date] = None,
) -> list[ExpenseRead]:
    """Expenses dated within ``[today, today + 1 day)``, newest first."""
    start = today or local_today()
    end = start + timedelta(days=1)
    stmt = (
        select(Expense)
        .where(
            Expense.user_id == user_id,
            Expense.transaction_date >= start,
            Expense.transaction_date < end,
        )
        .order_by(Expense.recorded_at.desc())
    )
    async with db.session() as session:
        result = await session.execute(stmt)
        return [ExpenseRead.model_validate(row) for row in result.scalars().all()]


async def list_recent(
    db: ConnectionManager,
    user_id: UUID,
    limit: int = RECENT_DEFAULT_LIMIT,
) -> list[ExpenseRead]:
    """Most recent expenses across all dates, capped at ``limit`` rows."""
    stmt = (
        select(Expense)
        .where(Expense.user_id == user_id)
        .order_by(Expense.transaction_date.desc(), Expense.recorded_at.desc())
        .limit(max(limit, 0))
    )
    async with db.session() as session:
        result = await session.execute(stmt)
        return [ExpenseRead.model_validate(row) for row in result.scalars().all()]


def total_amount(expenses: Iterable[ExpenseRead]) -> Decimal:
    return sum((expense.amount for expense in expenses), Decimal("0"))
