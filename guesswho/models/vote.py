"""
Vote model
投票数据模型
"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from guesswho.core.database import Base, utcnow


class Vote(Base):
    """One player's vote in one round; immutable once recorded"""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("room_id", "voter_id", "round_number", name="uq_vote_room_voter_round"),
    )

    id = Column(String(36), primary_key=True, index=True)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    voter_id = Column(String(36), ForeignKey("players.id"), nullable=False)
    target_id = Column(String(36), ForeignKey("players.id"), nullable=False)

    round_number = Column(Integer, nullable=False)
    seq = Column(Integer, nullable=False)  # submission order within the round

    # Timestamps
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vote(id={self.id}, voter_id={self.voter_id}, target_id={self.target_id})>"
