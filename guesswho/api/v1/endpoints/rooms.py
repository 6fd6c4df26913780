"""
Room management API endpoints
房间管理API端点
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.database import get_db
from guesswho.api.v1.endpoints.auth import get_current_user
from guesswho.services.room import RoomService
from guesswho.models.user import User
from guesswho.schemas.game import RoomEventList, RoomEventResponse, ScoreUpdate
from guesswho.schemas.room import (
    PlayerPublic, RoomCreate, RoomJoinRequest, RoomJoinResponse, RoomResponse, RoomStateResponse
)

router = APIRouter()


async def get_room_service(db: AsyncSession = Depends(get_db)) -> RoomService:
    """获取房间服务依赖"""
    return RoomService(db)


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    room_data: RoomCreate,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    创建新房间

    - **max_players**: 最大玩家数
    - **round_limit**: 最大轮数，缺省不限
    - **undercover_count** / **mrx_count** / **factions**: 阵营配置
    - **tie_break_policy**: 平票处理策略
    """
    room = await room_service.create_room(room_data, current_user)
    return room_service.room_to_response(room, 1 if room_data.host_joins else 0)


@router.get("/{room_code}", response_model=RoomResponse)
async def get_room(
    room_code: str,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """按房间号查询房间"""
    room = await room_service.get_room_by_code(room_code)
    players = await room_service.list_players(room)
    return room_service.room_to_response(room, len(players))


@router.post("/{room_code}/join", response_model=RoomJoinResponse)
async def join_room(
    room_code: str,
    join_data: Optional[RoomJoinRequest] = None,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """
    加入房间
    Fails when the room is full, already started, or already joined.
    """
    username = join_data.username if join_data else None
    room, player = await room_service.join_room(room_code, current_user, username)
    players = await room_service.list_players(room)
    return RoomJoinResponse(
        room=room_service.room_to_response(room, len(players)),
        player=room_service.player_to_public(player, room),
    )


@router.get("/{room_code}/players", response_model=List[PlayerPublic])
async def list_players(
    room_code: str,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """房间玩家列表（按座位）"""
    room = await room_service.get_room_by_code(room_code)
    players = await room_service.list_players(room)
    return [room_service.player_to_public(p, room) for p in players]


@router.get("/{room_code}/state", response_model=RoomStateResponse)
async def get_room_state(
    room_code: str,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """房间快照，供客户端轮询"""
    return await room_service.get_room_state(room_code)


@router.get("/{room_code}/events", response_model=RoomEventList)
async def list_room_events(
    room_code: str,
    after: int = Query(0, ge=0, description="只返回序号大于该值的事件"),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """房间变更事件"""
    room = await room_service.get_room_by_code(room_code)
    events = await room_service.events.list_events(room, after=after, limit=limit)
    return RoomEventList(
        room_code=room.room_code,
        version=room.version,
        events=[RoomEventResponse.model_validate(e) for e in events],
    )


@router.patch("/{room_code}/players/{player_id}/score", response_model=PlayerPublic)
async def set_player_score(
    room_code: str,
    player_id: str,
    score_data: ScoreUpdate,
    current_user: User = Depends(get_current_user),
    room_service: RoomService = Depends(get_room_service)
):
    """房主设置玩家积分"""
    player = await room_service.set_player_score(room_code, current_user, player_id, score_data.score)
    room = await room_service.get_room_by_code(room_code)
    return room_service.player_to_public(player, room)
