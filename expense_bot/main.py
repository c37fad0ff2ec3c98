import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import api_router
from .config import get_settings
from .db import ConnectionManager, init_db
from .telegram.bot import init_bot, shutdown_bot
from .telegram.router import CommandContext


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = ConnectionManager.from_settings(settings)
    app.state.db = db
    app.state.command_context = CommandContext(db=db, timezone=settings.tzinfo)
    await init_db()
    app.state.bot = await init_bot(settings)
    try:
        yield
    finally:
        await shutdown_bot(app.state.bot)
        await db.close()


settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
_docs_enabled = settings.environment.lower() != "production"
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
)
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    db: ConnectionManager | None = getattr(app.state, "db", None)
    return {"status": "ok", "database": "ready" if db and db.is_ready else "idle"}
