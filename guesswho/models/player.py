"""
Player model
房间内玩家数据模型（房间成员记录，区别于账号）
"""

from sqlalchemy import Column, String, Integer, DateTime, Boolean, Enum, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from guesswho.core.database import Base, utcnow

from guesswho.schemas.game import PlayerRole


class Player(Base):
    """Room-scoped membership of an account"""

    __tablename__ = "players"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_player_room_user"),
    )

    id = Column(String(36), primary_key=True, index=True)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    username = Column(String(50), nullable=False)
    seat = Column(Integer, nullable=False)  # join order inside the room

    # Secret assignment, only exposed to the player themselves
    role = Column(Enum(PlayerRole, values_callable=lambda obj: [e.value for e in obj]),
                  default=PlayerRole.CIVILIAN, nullable=False)
    word = Column(String(100), nullable=True)

    # Round state
    is_alive = Column(Boolean, default=True, nullable=False)
    eliminated_round = Column(Integer, nullable=True)
    has_given_clue = Column(Boolean, default=False, nullable=False)
    clue = Column(Text, nullable=True)
    has_guessed = Column(Boolean, default=False, nullable=False)
    score = Column(Integer, default=0, nullable=False)

    joined_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Player(id={self.id}, username={self.username}, alive={self.is_alive})>"
