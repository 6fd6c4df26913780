"""
Room Pydantic schemas
房间数据验证和序列化模型
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime

from guesswho.schemas.game import (
    FactionConfig, GamePhase, PlayerRole, RoomOutcome, TieBreakPolicy, VoteResponse
)


class RoomCreate(BaseModel):
    """创建房间请求模型"""
    max_players: Optional[int] = Field(None, ge=3, le=50, description="最大玩家数，缺省使用配置值")
    round_limit: Optional[int] = Field(None, ge=1, description="最大轮数，缺省不限")
    undercover_count: Optional[int] = Field(None, ge=0, description="卧底人数，缺省按 max(1, n/4) 计算")
    mrx_count: int = Field(default=0, ge=0, description="Mr. X 人数")
    tie_break_policy: Optional[TieBreakPolicy] = Field(None, description="平票处理策略")
    word_pack_id: Optional[str] = Field(None, description="默认词包")
    host_joins: bool = Field(default=True, description="房主是否作为第一位玩家加入")
    host_username: Optional[str] = Field(None, min_length=1, max_length=50, description="房主昵称")
    factions: Optional[List[FactionConfig]] = Field(None, description="完整阵营配置，优先于人数字段")

    @model_validator(mode='after')
    def validate_faction_counts(self):
        """固定人数配置至少需要一名少数派"""
        if self.undercover_count is not None and self.undercover_count + self.mrx_count < 1:
            raise ValueError('at least one minority player is required')
        return self


class RoomJoinRequest(BaseModel):
    """加入房间请求模型"""
    username: Optional[str] = Field(None, min_length=1, max_length=50, description="房间内昵称，缺省使用账号名")


class PlayerPublic(BaseModel):
    """房间内公开的玩家信息（不含身份和词语）"""
    id: str
    user_id: str
    username: str
    seat: int
    is_host: bool = False
    is_alive: bool = True
    eliminated_round: Optional[int] = None
    has_given_clue: bool = False
    clue: Optional[str] = None
    score: int = 0
    revealed_role: Optional[PlayerRole] = None


class RoomResponse(BaseModel):
    """房间信息"""
    id: str
    room_code: str
    host_id: str
    status: str
    current_round: int
    max_players: int
    round_limit: Optional[int] = None
    word_pack_id: Optional[str] = None
    player_count: int = 0
    outcome: Optional[RoomOutcome] = None
    version: int = 0
    civilian_word: Optional[str] = None  # revealed once finished
    undercover_word: Optional[str] = None  # revealed once finished
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class RoomJoinResponse(BaseModel):
    """加入房间响应"""
    room: RoomResponse
    player: PlayerPublic


class RoomStateResponse(BaseModel):
    """房间快照：房间、玩家、本轮投票"""
    room: RoomResponse
    phase: GamePhase
    players: List[PlayerPublic] = Field(default_factory=list)
    votes: List[VoteResponse] = Field(default_factory=list)
    speaking_order: List[str] = Field(default_factory=list)
