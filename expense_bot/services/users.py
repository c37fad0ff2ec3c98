from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ..db import ConnectionManager
from ..errors import StoreError
from ..models.base import utcnow
from ..models.user import User
from ..schemas.user import TelegramIdentity

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


async def resolve_user(db: ConnectionManager, identity: TelegramIdentity) -> UUID:
    """Create or refresh the user behind a Telegram account and return its id.

    The upsert is keyed on ``telegram_id``: name fields are overwritten on
    every call while ``joined_at`` is only written when the row is created.
    """
    async with db.session() as session:
        insert = _UPSERT_DIALECTS.get(session.bind.dialect.name)
        if insert is None:
            raise StoreError(f"Upsert is not supported on {session.bind.dialect.name!r}.")

        now = utcnow()
        stmt = insert(User).values(
            id=uuid4(),
            telegram_id=identity.telegram_id,
            first_name=identity.first_name,
            last_name=identity.last_name,
            username=identity.username,
            joined_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[User.telegram_id],
            set_={
                "first_name": stmt.excluded.first_name,
                "last_name": stmt.excluded.last_name,
                "username": stmt.excluded.username,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)
        user_id = await session.scalar(
            select(User.id).where(User.telegram_id == identity.telegram_id)
        )
        await session.commit()
    return user_id


async def get_user_by_telegram_id(db: ConnectionManager, telegram_id: int) -> Optional[User]:
    async with db.session() as session:
        result = await session.execute(select(User).where(User.telegram_id == telegram_id))
        return result.scalars().first()
