"""
Game Pydantic schemas
游戏数据验证和序列化模型
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


class PlayerRole(str, Enum):
    """玩家角色枚举"""
    CIVILIAN = "civilian"
    UNDERCOVER = "undercover"
    MRX = "mrx"


class RoomOutcome(str, Enum):
    """对局结果枚举"""
    CIVILIANS = "civilians"
    UNDERCOVER = "undercover"
    MRX = "mrx"
    DRAW = "draw"  # round limit reached without a winner
    ABANDONED = "abandoned"  # expired by the idle-room policy


class GamePhase(str, Enum):
    """派生的游戏阶段（不存储，由房间和玩家状态计算）"""
    WAITING = "waiting"
    CLUES = "clues"
    VOTING = "voting"
    FINISHED = "finished"


class TieBreakPolicy(str, Enum):
    """平票处理策略"""
    NO_ELIMINATION = "no_elimination"
    LOWEST_PLAYER_ID = "lowest_player_id"
    FIRST_VOTED = "first_voted"


class GameStartRequest(BaseModel):
    """开始游戏请求"""
    word_pack_id: Optional[str] = Field(None, description="词包ID，缺省使用房间词包或默认词包")


class ClueCreate(BaseModel):
    """线索提交请求"""
    text: str = Field(..., max_length=500, description="线索内容")


class VoteCreate(BaseModel):
    """投票请求"""
    target_id: str = Field(..., description="投票目标玩家ID")
    round: Optional[int] = Field(None, ge=1, description="投票所属轮次，缺省为当前轮")


class GuessCreate(BaseModel):
    """Mr. X 猜词请求"""
    guess: str = Field(..., max_length=100, description="猜测的平民词")


class ScoreUpdate(BaseModel):
    """积分设置请求"""
    score: int = Field(..., description="玩家积分")


class ActionAck(BaseModel):
    """操作确认"""
    success: bool = True
    message: str = ""
    version: int = Field(..., description="房间变更序号")


class VoteResult(BaseModel):
    """一轮投票的结算结果"""
    round: int
    vote_counts: Dict[str, int] = Field(default_factory=dict)
    eliminated_player_id: Optional[str] = None
    eliminated_role: Optional[PlayerRole] = None
    tie: bool = False
    outcome: Optional[RoomOutcome] = None


class VoteAck(ActionAck):
    """投票确认，本轮结算时附带结果"""
    resolution: Optional[VoteResult] = None


class GuessResult(BaseModel):
    """猜词结果"""
    correct: bool
    outcome: Optional[RoomOutcome] = None
    version: int


class PlayerSecret(BaseModel):
    """仅对玩家本人可见的身份和词语"""
    player_id: str
    room_code: str
    role: PlayerRole
    word: Optional[str] = None
    has_guessed: bool = False


class VoteResponse(BaseModel):
    """投票记录"""
    id: str
    voter_id: str
    target_id: str
    round_number: int
    seq: int
    created_at: datetime

    class Config:
        from_attributes = True


class RoomEventResponse(BaseModel):
    """房间变更事件"""
    seq: int
    kind: str
    payload: Dict = Field(default_factory=dict)
    created_at: datetime

    class Config:
        from_attributes = True


class RoomEventList(BaseModel):
    """房间变更事件列表"""
    room_code: str
    version: int
    events: List[RoomEventResponse] = Field(default_factory=list)


class FactionConfig(BaseModel):
    """少数派阵营配置"""
    role: PlayerRole
    count: Optional[int] = Field(None, ge=0, description="固定人数")
    ratio: Optional[float] = Field(None, gt=0, lt=1, description="按存活人数比例计算")
    minimum: int = Field(default=0, ge=0, description="比例计算时的最少人数")
    has_word: bool = Field(default=True, description="是否发放词语")

    @field_validator('role')
    @classmethod
    def validate_role(cls, v):
        if v == PlayerRole.CIVILIAN:
            raise ValueError('civilian is the majority faction and cannot be configured')
        return v
