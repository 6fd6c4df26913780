# Pydantic schemas
from .user import UserBase, UserCreate, UserLogin, UserResponse, UserToken
from .room import (
    RoomCreate, RoomJoinRequest, PlayerPublic, RoomResponse,
    RoomJoinResponse, RoomStateResponse
)
from .game import (
    PlayerRole, RoomOutcome, GamePhase, TieBreakPolicy, GameStartRequest,
    ClueCreate, VoteCreate, GuessCreate, ScoreUpdate, ActionAck, VoteResult,
    VoteAck, GuessResult, PlayerSecret, VoteResponse, RoomEventResponse,
    RoomEventList, FactionConfig
)
from .word_pack import (
    WordPackType, WordPackDifficulty, WordPairSchema, WordPackCreate,
    WordPackSummary, WordPackResponse, WordPackListResponse
)
from .common import ResponseStatus, BaseResponse, ErrorResponse, MessageResponse

__all__ = [
    # User schemas
    "UserBase", "UserCreate", "UserLogin", "UserResponse", "UserToken",

    # Room schemas
    "RoomCreate", "RoomJoinRequest", "PlayerPublic", "RoomResponse",
    "RoomJoinResponse", "RoomStateResponse",

    # Game schemas
    "PlayerRole", "RoomOutcome", "GamePhase", "TieBreakPolicy", "GameStartRequest",
    "ClueCreate", "VoteCreate", "GuessCreate", "ScoreUpdate", "ActionAck", "VoteResult",
    "VoteAck", "GuessResult", "PlayerSecret", "VoteResponse", "RoomEventResponse",
    "RoomEventList", "FactionConfig",

    # Word pack schemas
    "WordPackType", "WordPackDifficulty", "WordPairSchema", "WordPackCreate",
    "WordPackSummary", "WordPackResponse", "WordPackListResponse",

    # Common schemas
    "ResponseStatus", "BaseResponse", "ErrorResponse", "MessageResponse",
]
