# Database models
from .user import User
from .room import Room, RoomStatus
from .player import Player, PlayerRole
from .vote import Vote
from .word_pack import WordPack
from .room_event import RoomEvent

__all__ = [
    "User",
    "Room", "RoomStatus",
    "Player", "PlayerRole",
    "Vote",
    "WordPack",
    "RoomEvent",
]
