"""
Room model
房间数据模型
"""

from sqlalchemy import Column, String, Integer, DateTime, Enum, JSON, ForeignKey, Index
from sqlalchemy.sql import func
from enum import Enum as PyEnum
from guesswho.core.database import Base, utcnow

from guesswho.schemas.game import RoomOutcome


class RoomStatus(PyEnum):
    """Room status enumeration, transitions only move forward"""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class Room(Base):
    """A single game session addressed by a short numeric code"""

    __tablename__ = "rooms"
    __table_args__ = (
        Index("ix_rooms_code_created", "room_code", "created_at"),
    )

    id = Column(String(36), primary_key=True, index=True)
    room_code = Column(String(12), nullable=False, index=True)
    host_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    # Room configuration
    max_players = Column(Integer, default=8, nullable=False)
    round_limit = Column(Integer, nullable=True)
    config = Column(JSON, default=dict, nullable=False)  # factions, tie-break policy
    word_pack_id = Column(String(64), ForeignKey("word_packs.id"), nullable=True)

    # Game state
    status = Column(Enum(RoomStatus, values_callable=lambda obj: [e.value for e in obj]),
                    default=RoomStatus.WAITING, nullable=False)
    current_round = Column(Integer, default=1, nullable=False)
    civilian_word = Column(String(100), nullable=True)
    undercover_word = Column(String(100), nullable=True)
    speaking_order = Column(JSON, default=list, nullable=False)
    outcome = Column(Enum(RoomOutcome, values_callable=lambda obj: [e.value for e in obj]),
                     nullable=True)
    last_eliminated_player_id = Column(String(36), nullable=True)

    # Change feed sequence, bumped on every recorded event
    version = Column(Integer, default=0, nullable=False)

    # Timestamps
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Room(id={self.id}, code={self.room_code}, status={self.status})>"

    @property
    def is_waiting(self) -> bool:
        return self.status == RoomStatus.WAITING

    @property
    def is_playing(self) -> bool:
        return self.status == RoomStatus.PLAYING

    @property
    def is_finished(self) -> bool:
        return self.status == RoomStatus.FINISHED

    @property
    def round_limit_reached(self) -> bool:
        """True once the current round is the last one allowed"""
        return self.round_limit is not None and self.current_round >= self.round_limit
