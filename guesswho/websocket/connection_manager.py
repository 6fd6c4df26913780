"""
WebSocket连接管理器
管理房间订阅连接并广播房间变更事件
"""

import json
import logging
from typing import Dict, Set, Optional, List
from fastapi import WebSocket
from starlette.websockets import WebSocketState

from guesswho.core.config import settings

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    WebSocket连接管理器
    每个用户一条连接，连接订阅一个房间的变更事件
    """

    def __init__(self, max_connections: Optional[int] = None):
        # 活跃连接: user_id -> WebSocket
        self.active_connections: Dict[str, WebSocket] = {}

        # 房间连接映射: room_code -> Set[user_id]
        self.room_connections: Dict[str, Set[str]] = {}

        # 用户房间映射: user_id -> room_code
        self.user_rooms: Dict[str, str] = {}

        self.max_connections = max_connections or settings.MAX_WEBSOCKET_CONNECTIONS

    async def connect(self, user_id: str, websocket: WebSocket, room_code: str) -> bool:
        """接受连接并订阅房间"""
        if len(self.active_connections) >= self.max_connections and user_id not in self.active_connections:
            logger.warning(f"Connection limit reached, rejecting user {user_id}")
            return False

        await websocket.accept()

        # 如果用户已有连接，先断开旧连接
        if user_id in self.active_connections:
            await self.disconnect(user_id, "New connection established")

        self.active_connections[user_id] = websocket
        self.room_connections.setdefault(room_code, set()).add(user_id)
        self.user_rooms[user_id] = room_code

        logger.info(f"User {user_id} subscribed to room {room_code}")
        return True

    async def disconnect(self, user_id: str, reason: str = "Connection closed") -> None:
        """断开连接并取消房间订阅"""
        room_code = self.user_rooms.pop(user_id, None)
        if room_code is not None:
            members = self.room_connections.get(room_code)
            if members is not None:
                members.discard(user_id)
                if not members:
                    del self.room_connections[room_code]

        websocket = self.active_connections.pop(user_id, None)
        if websocket is not None and websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close(code=1000, reason=reason)
            except RuntimeError as e:
                logger.debug(f"WebSocket for user {user_id} already closed: {e}")

        logger.info(f"User {user_id} disconnected: {reason}")

    async def send_to_user(self, user_id: str, message: dict) -> bool:
        """发送消息给指定用户"""
        websocket = self.active_connections.get(user_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(json.dumps(message, default=str))
            return True
        except Exception as e:
            logger.error(f"Error sending message to user {user_id}: {e}")
            await self.disconnect(user_id, "Send failed")
            return False

    async def broadcast_to_room(self, room_code: str, message: dict, exclude_user: Optional[str] = None) -> int:
        """广播消息到房间所有订阅用户，返回成功发送数"""
        sent_count = 0
        for user_id in list(self.room_connections.get(room_code, ())):
            if exclude_user and user_id == exclude_user:
                continue
            if await self.send_to_user(user_id, message):
                sent_count += 1

        logger.debug(f"Sent '{message.get('type', 'unknown')}' to {sent_count} users in room {room_code}")
        return sent_count

    def get_connection_count(self) -> int:
        return len(self.active_connections)

    def get_room_users(self, room_code: str) -> List[str]:
        return list(self.room_connections.get(room_code, ()))


# 全局连接管理器实例
connection_manager = ConnectionManager()
