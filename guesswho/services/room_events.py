"""
Room change feed
房间变更事件流：写库用于轮询，提交后推送给 WebSocket 订阅者
"""

import logging
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.redis_client import redis_manager
from guesswho.models.room import Room
from guesswho.models.room_event import RoomEvent
from guesswho.websocket.connection_manager import connection_manager

logger = logging.getLogger(__name__)


class RoomEventService:
    """Records room events inside the caller's transaction and publishes them after commit"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._pending: List[Dict[str, Any]] = []

    def record(self, room: Room, kind: str, payload: Optional[Dict[str, Any]] = None) -> RoomEvent:
        """Append an event and bump the room version; the caller commits"""
        room.version = (room.version or 0) + 1
        event = RoomEvent(
            room_id=room.id,
            seq=room.version,
            kind=kind,
            payload=payload or {},
        )
        self.db.add(event)
        self._pending.append({
            "type": kind,
            "data": {
                "room_code": room.room_code,
                "seq": room.version,
                **(payload or {}),
            },
        })
        return event

    def discard(self):
        """Forget events of a rolled back transaction"""
        self._pending.clear()

    async def publish(self) -> int:
        """Push committed events to subscribers; returns messages delivered locally"""
        pending, self._pending = self._pending, []
        delivered = 0
        for message in pending:
            room_code = message["data"]["room_code"]
            delivered += await connection_manager.broadcast_to_room(room_code, message)
            if redis_manager.enabled:
                try:
                    await redis_manager.publish_message(f"guesswho:room:{room_code}", message)
                except RedisError as e:
                    # state is committed and pollable, only the fan-out is lost
                    logger.warning(f"Failed to publish {message['type']} for room {room_code}: {e}")
        return delivered

    async def list_events(self, room: Room, after: int = 0, limit: int = 100) -> List[RoomEvent]:
        """Events with seq greater than ``after``, oldest first"""
        stmt = (
            select(RoomEvent)
            .where(RoomEvent.room_id == room.id, RoomEvent.seq > after)
            .order_by(RoomEvent.seq)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
