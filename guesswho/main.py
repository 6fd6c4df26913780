"""
FastAPI main application entry point
Guess Who Now 主应用入口
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from guesswho.core.config import settings
from guesswho.core.database import init_db, close_db
from guesswho.core.redis_client import init_redis, close_redis
from guesswho.api.error_handlers import register_error_handlers
from guesswho.api.v1.api import api_router
from guesswho.middleware.request_logging import LoggingMiddleware
from guesswho.services.background_tasks import start_background_tasks, stop_background_tasks
from guesswho.services.word_pack import WordPackService
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format=settings.LOG_FORMAT,
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)

# 减少 SQLAlchemy 和 httpx 的日志噪音
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the storage handle, seed the catalog and start background work"""
    logger.info(f"Starting Guess Who Now ({settings.ENVIRONMENT})...")

    db_manager = await init_db()
    app.state.db_manager = db_manager

    async with db_manager.get_session() as session:
        await WordPackService(session).seed_default_packs()

    await init_redis()
    if settings.ENABLE_BACKGROUND_TASKS:
        await start_background_tasks(db_manager)

    logger.info("Application startup completed")
    try:
        yield
    finally:
        logger.info("Shutting down application...")
        await stop_background_tasks()
        await close_redis()
        await close_db(db_manager)
        app.state.db_manager = None
        logger.info("Application shutdown completed")


app = FastAPI(
    title="Guess Who Now",
    description="Guess Who Now - 谁是卧底 / Mr. X 多人推理词语游戏",
    version="1.0.0",
    lifespan=lifespan,
    # 禁用尾部斜杠重定向，避免 307 Redirect 导致 Authorization header 丢失
    redirect_slashes=False
)

app.add_middleware(LoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Liveness probe"""
    return {
        "message": "Guess Who Now API",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Liveness probe with storage status"""
    db_manager = getattr(app.state, "db_manager", None)
    database_ok = bool(db_manager) and await db_manager.health_check()
    return {
        "status": "healthy" if database_ok else "degraded",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "database": "healthy" if database_ok else "unhealthy",
    }
