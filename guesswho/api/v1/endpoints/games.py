"""
Game API endpoints
游戏API端点：开局、线索、投票、结算、猜词
"""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.database import get_db
from guesswho.api.v1.endpoints.auth import get_current_user
from guesswho.services.game import GameEngine
from guesswho.models.user import User
from guesswho.schemas.game import (
    ActionAck, ClueCreate, GameStartRequest, GuessCreate, GuessResult,
    PlayerSecret, VoteAck, VoteCreate, VoteResult
)
from guesswho.schemas.room import RoomResponse

router = APIRouter()


async def get_game_engine(db: AsyncSession = Depends(get_db)) -> GameEngine:
    """获取游戏引擎依赖"""
    return GameEngine(db)


@router.post("/{room_code}/start", response_model=RoomResponse)
async def start_game(
    room_code: str,
    start_data: Optional[GameStartRequest] = None,
    current_user: User = Depends(get_current_user),
    engine: GameEngine = Depends(get_game_engine)
):
    """
    开始游戏（仅房主）
    Requires at least three players; words stay hidden until the game ends.
    """
    word_pack_id = start_data.word_pack_id if start_data else None
    room = await engine.start_game(room_code, current_user, word_pack_id)
    players = await engine.rooms.list_players(room)
    return engine.rooms.room_to_response(room, len(players))


@router.post("/{room_code}/clues", response_model=ActionAck)
async def submit_clue(
    room_code: str,
    clue_data: ClueCreate,
    current_user: User = Depends(get_current_user),
    engine: GameEngine = Depends(get_game_engine)
):
    """提交本轮线索"""
    return await engine.submit_clue(room_code, current_user, clue_data.text)


@router.post("/{room_code}/votes", response_model=VoteAck)
async def submit_vote(
    room_code: str,
    vote_data: VoteCreate,
    current_user: User = Depends(get_current_user),
    engine: GameEngine = Depends(get_game_engine)
):
    """
    投票
    The response carries the round resolution when this vote completes the round.
    """
    return await engine.submit_vote(room_code, current_user, vote_data.target_id, vote_data.round)


@router.post("/{room_code}/resolve", response_model=VoteResult)
async def resolve_round(
    room_code: str,
    current_user: User = Depends(get_current_user),
    engine: GameEngine = Depends(get_game_engine)
):
    """房主用已投的票强制结算本轮"""
    return await engine.resolve_round(room_code, current_user)


@router.post("/{room_code}/guess", response_model=GuessResult)
async def submit_guess(
    room_code: str,
    guess_data: GuessCreate,
    current_user: User = Depends(get_current_user),
    engine: GameEngine = Depends(get_game_engine)
):
    """Mr. X 猜平民词"""
    return await engine.submit_guess(room_code, current_user, guess_data.guess)


@router.get("/{room_code}/me", response_model=PlayerSecret)
async def get_my_role(
    room_code: str,
    current_user: User = Depends(get_current_user),
    engine: GameEngine = Depends(get_game_engine)
):
    """查看自己的身份和词语"""
    return await engine.get_player_secret(room_code, current_user)
