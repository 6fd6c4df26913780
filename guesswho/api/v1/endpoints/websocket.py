"""
WebSocket endpoints
WebSocket 房间订阅端点：推送房间变更事件
"""

import json
import logging
from typing import Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from guesswho.core.exceptions import GuessWhoError
from guesswho.schemas.game import RoomEventResponse
from guesswho.services.auth import auth_service
from guesswho.services.room import RoomService
from guesswho.websocket.connection_manager import connection_manager

logger = logging.getLogger(__name__)
router = APIRouter()


async def authorize_subscriber(websocket: WebSocket, room_code: str) -> Optional[str]:
    """
    Resolve the token in the query string and check room membership
    Returns the user id, or None when the subscription must be refused.
    """
    token = websocket.query_params.get("token")
    db_manager = getattr(websocket.app.state, "db_manager", None)
    if not token or db_manager is None:
        return None

    try:
        async with db_manager.get_session() as session:
            user = await auth_service.get_current_user(session, token)
            room_service = RoomService(session)
            room = await room_service.get_room_by_code(room_code)
            if room.host_id != user.id and await room_service.find_player_for_user(room, user.id) is None:
                logger.warning(f"User {user.id} is not a member of room {room_code}")
                return None
            return user.id
    except GuessWhoError as e:
        logger.warning(f"WebSocket subscription to room {room_code} refused: {e.kind}")
        return None


def sync_cursor(message: dict) -> int:
    """Cursor of a ``sync`` message, 0 when missing or malformed"""
    data = message.get("data")
    if not isinstance(data, dict):
        return 0
    try:
        after = int(data.get("after", 0))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(after, 0)


async def send_events_since(websocket: WebSocket, room_code: str, after: int) -> None:
    """Replay missed events to a reconnecting client"""
    async with websocket.app.state.db_manager.get_session() as session:
        room_service = RoomService(session)
        room = await room_service.get_room_by_code(room_code)
        events = await room_service.events.list_events(room, after=after)
        payload = {
            "type": "sync",
            "data": {
                "room_code": room_code,
                "version": room.version,
                "events": [RoomEventResponse.model_validate(e).model_dump(mode="json") for e in events],
            },
        }
    await websocket.send_text(json.dumps(payload))


@router.websocket("/rooms/{room_code}")
async def websocket_room_endpoint(websocket: WebSocket, room_code: str):
    """
    房间WebSocket连接端点
    Clients may send ``ping`` and ``sync`` (with ``data.after``) messages.
    """
    user_id = await authorize_subscriber(websocket, room_code)
    if not user_id:
        await websocket.close(code=4001, reason="Authentication required")
        return

    connected = await connection_manager.connect(user_id, websocket, room_code)
    if not connected:
        await websocket.close(code=4002, reason="Connection limit reached")
        return

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({
                    "type": "error",
                    "data": {"message": "Invalid JSON format"}
                }))
                continue

            message_type = message.get("type") if isinstance(message, dict) else None
            if message_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
            elif message_type == "sync":
                await send_events_since(websocket, room_code, sync_cursor(message))
            else:
                await websocket.send_text(json.dumps({
                    "type": "error",
                    "data": {"message": f"Unknown message type: {message_type}"}
                }))
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for user {user_id} in room {room_code}")
    finally:
        await connection_manager.disconnect(user_id, "Connection closed")
