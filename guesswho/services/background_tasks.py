"""
Background tasks service
后台任务服务：空闲房间过期
"""

import asyncio
import logging
from typing import Optional

from guesswho.core.config import settings
from guesswho.core.database import DatabaseManager
from guesswho.services.room import RoomService

logger = logging.getLogger(__name__)


class BackgroundTaskService:
    """后台任务服务类"""

    def __init__(self):
        self.is_running = False
        self.cleanup_task: Optional[asyncio.Task] = None
        self.db_manager: Optional[DatabaseManager] = None

    async def start_room_cleanup_task(self, db_manager: DatabaseManager,
                                      interval_seconds: Optional[int] = None,
                                      max_idle_seconds: Optional[int] = None):
        """启动房间过期任务"""
        if self.is_running:
            logger.warning("Room cleanup task already running")
            return

        interval_seconds = interval_seconds or settings.ROOM_CLEANUP_INTERVAL
        max_idle_seconds = max_idle_seconds or settings.ROOM_IDLE_TIMEOUT

        self.db_manager = db_manager
        self.is_running = True
        self.cleanup_task = asyncio.create_task(
            self._room_cleanup_loop(interval_seconds, max_idle_seconds)
        )
        logger.info(f"Room cleanup task started, interval {interval_seconds}s, idle timeout {max_idle_seconds}s")

    async def stop_room_cleanup_task(self):
        """停止房间过期任务"""
        if not self.is_running:
            return

        self.is_running = False
        if self.cleanup_task:
            self.cleanup_task.cancel()
            try:
                await self.cleanup_task
            except asyncio.CancelledError:
                pass
            self.cleanup_task = None

        logger.info("Room cleanup task stopped")

    async def _room_cleanup_loop(self, interval_seconds: int, max_idle_seconds: int):
        """房间过期循环任务"""
        while self.is_running:
            try:
                await self.cleanup_rooms_once(max_idle_seconds)
            except Exception:
                # keep the loop alive, the next pass retries
                logger.exception("Room cleanup pass failed")

            await asyncio.sleep(interval_seconds)

    async def cleanup_rooms_once(self, max_idle_seconds: Optional[int] = None) -> int:
        """执行一次房间过期"""
        if self.db_manager is None:
            raise RuntimeError("Background tasks not started with a database manager")

        async with self.db_manager.get_session() as session:
            expired = await RoomService(session).expire_idle_rooms(
                max_idle_seconds or settings.ROOM_IDLE_TIMEOUT
            )
        if expired:
            logger.info(f"Expired {expired} idle rooms")
        return expired


# 全局后台任务服务实例
background_service = BackgroundTaskService()


async def start_background_tasks(db_manager: DatabaseManager):
    """启动所有后台任务"""
    await background_service.start_room_cleanup_task(db_manager)


async def stop_background_tasks():
    """停止所有后台任务"""
    await background_service.stop_room_cleanup_task()
