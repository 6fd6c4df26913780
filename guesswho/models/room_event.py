"""
Room event model
房间变更事件（轮询/推送共用的变更流）
"""

from sqlalchemy import Column, String, Integer, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from guesswho.core.database import Base, utcnow


class RoomEvent(Base):
    """Append-only change record for one room"""

    __tablename__ = "room_events"
    __table_args__ = (
        UniqueConstraint("room_id", "seq", name="uq_room_event_seq"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    kind = Column(String(40), nullable=False)
    payload = Column(JSON, default=dict, nullable=False)

    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RoomEvent(room_id={self.room_id}, seq={self.seq}, kind={self.kind})>"
