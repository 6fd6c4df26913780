"""
Database configuration and connection management
数据库配置和连接管理

The storage handle is constructed explicitly at startup and handed to the
request layer through ``app.state``; importing this module never connects
or creates tables.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy import text
from starlette.requests import HTTPConnection
from guesswho.core.config import settings
from guesswho.core.exceptions import StorageUnavailable
import logging
from typing import AsyncIterator, Optional
from contextlib import asynccontextmanager
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class DatabaseManager:
    """Owns the async engine and session factory for one database"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    async def initialize(self):
        """Create the engine and session factory"""
        engine_kwargs = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
        if not self.database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_recycle=settings.DB_POOL_RECYCLE,
            )

        self.engine = create_async_engine(self.database_url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=True,
        )
        logger.info("Database manager initialized")

    async def create_schema(self):
        """Create every table registered on Base.metadata"""
        if not self.engine:
            raise RuntimeError("Database manager not initialized")

        # Import all models to ensure they are registered
        from guesswho.models import user, room, player, vote, word_pack, room_event  # noqa

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (DisconnectionError, OperationalError) as e:
            raise StorageUnavailable("Database unavailable while creating schema") from e
        logger.info("Database schema ready")

    async def health_check(self) -> bool:
        """Run a trivial query against the database"""
        if not self.engine:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (DisconnectionError, OperationalError) as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Session scope for work outside a request (startup, background tasks)"""
        if not self.session_factory:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except (DisconnectionError, OperationalError) as e:
            await session.rollback()
            logger.error(f"Database connection error during session: {e}")
            raise StorageUnavailable("Database unavailable") from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self):
        """Close database connections"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database connections closed")


async def init_db(database_url: Optional[str] = None) -> DatabaseManager:
    """Build a storage handle and create the schema"""
    manager = DatabaseManager(database_url)
    await manager.initialize()
    await manager.create_schema()
    return manager


async def get_db(connection: HTTPConnection) -> AsyncIterator[AsyncSession]:
    """Dependency to get a database session from the application's storage handle"""
    manager: Optional[DatabaseManager] = getattr(connection.app.state, "db_manager", None)
    if manager is None or manager.session_factory is None:
        raise StorageUnavailable("Database not initialized")

    session = manager.session_factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def close_db(manager: Optional[DatabaseManager]):
    """Close database connections"""
    if manager is not None:
        await manager.close()


def utcnow() -> datetime:
    """Naive UTC timestamp used for every stored datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
