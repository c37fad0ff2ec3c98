from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from logging.config import fileConfig
from pathlib import Path
from typing import Any

import anyio
from alembic import command
from alembic.config import Config
from sqlalchemy import event, text
from sqlalchemy.engine import ExceptionContext
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from .config import Settings, get_settings
from .errors import DatabaseConnectionError, StoreError

logger = logging.getLogger(__name__)

EngineFactory = Callable[..., AsyncEngine]


class ConnectionManager:
    """Owns the single database handle shared by every request in the process.

    The engine is created lazily by :meth:`acquire`. Concurrent callers that
    arrive while a connection attempt is running all await that same attempt,
    so at most one physical attempt is in flight at any time. A disconnect
    reported by the driver clears the ``ready`` flag and the next
    :meth:`acquire` reconnects instead of reusing a dead handle.
    """

    def __init__(
        self,
        database_url: str,
        *,
        connect_timeout: float = 5.0,
        schema: str | None = None,
        engine_factory: EngineFactory = create_async_engine,
        **engine_options: Any,
    ) -> None:
        self._database_url = database_url
        self._connect_timeout = connect_timeout
        self._engine_factory = engine_factory
        self._engine_options = engine_options
        if schema:
            self._engine_options.setdefault(
                "execution_options", {"schema_translate_map": {None: schema}}
            )
        self._engine: AsyncEngine | None = None
        self._ready = False
        self._pending: asyncio.Task[AsyncEngine] | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ConnectionManager":
        settings = settings or get_settings()
        return cls(
            settings.database_url,
            connect_timeout=settings.database_connect_timeout_seconds,
            schema=settings.database_schema,
        )

    @property
    def is_ready(self) -> bool:
        return self._ready and self._engine is not None

    async def acquire(self) -> AsyncEngine:
        """Return a live engine, connecting first when needed.

        Raises :class:`DatabaseConnectionError` when the attempt fails. There is
        no retry loop here; callers simply acquire again before their next
        operation.
        """
        if self.is_ready:
            return self._engine  # type: ignore[return-value]

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._connect())
        pending = self._pending
        try:
            return await asyncio.shield(pending)
        finally:
            if pending.done() and self._pending is pending:
                self._pending = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session on the acquired engine, translating driver errors."""
        engine = await self.acquire()
        async with AsyncSession(engine, expire_on_commit=False) as session:
            try:
                yield session
            except DBAPIError as exc:
                if exc.connection_invalidated:
                    self._ready = False
                    raise DatabaseConnectionError("Database connection was lost.") from exc
                raise StoreError(str(exc.orig or exc)) from exc
            except SQLAlchemyError as exc:
                raise StoreError(str(exc)) from exc

    async def close(self) -> None:
        """Dispose the engine and forget all connection state."""
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
        await self._discard_engine()

    async def _connect(self) -> AsyncEngine:
        await self._discard_engine()
        engine: AsyncEngine | None = None
        try:
            engine = self._engine_factory(self._database_url, **self._engine_options)
            await asyncio.wait_for(self._ping(engine), timeout=self._connect_timeout)
        except Exception as exc:
            logger.warning("Database connection attempt failed: %r", exc)
            if engine is not None:
                await engine.dispose()
            raise DatabaseConnectionError("Could not connect to the database.") from exc

        event.listen(engine.sync_engine, "handle_error", self._on_handle_error)
        self._engine = engine
        self._ready = True
        logger.info("Database connection established.")
        return engine

    @staticmethod
    async def _ping(engine: AsyncEngine) -> None:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

    def _on_handle_error(self, context: ExceptionContext) -> None:
        if context.is_disconnect:
            logger.warning("Database reported a disconnect; reconnecting on next use.")
            self._ready = False

    async def _discard_engine(self) -> None:
        engine, self._engine = self._engine, None
        self._ready = False
        if engine is not None:
            await engine.dispose()


def configure_migration_logging(config_file_name: str | None) -> None:
    """Apply alembic.ini logging only when the process has not configured logging yet."""
    if config_file_name is None or logging.getLogger().handlers:
        return
    fileConfig(config_file_name, disable_existing_loggers=False)


def _get_alembic_config(settings: Settings) -> Config:
    config_path = Path(__file__).resolve().parent.parent / "alembic.ini"
    config = Config(str(config_path))
    migrations_url = settings.direct_database_url or settings.database_url
    config.set_main_option("sqlalchemy.url", migrations_url)
    return config


async def init_db() -> None:
    """Apply database migrations on startup."""
    settings = get_settings()
    if not settings.auto_run_migrations:
        logger.info("AUTO_RUN_MIGRATIONS disabled; skipping Alembic upgrade on startup.")
        return
    config = _get_alembic_config(settings)
    await anyio.to_thread.run_sync(command.upgrade, config, "head")
