"""
Word pack model
词包数据模型
"""

from sqlalchemy import Column, String, Integer, DateTime, Boolean, Enum, JSON, Text, ForeignKey
from sqlalchemy.sql import func
from guesswho.core.database import Base, utcnow

from guesswho.schemas.word_pack import WordPackType, WordPackDifficulty


class WordPack(Base):
    """Named collection of civilian/undercover word pairs"""

    __tablename__ = "word_packs"

    id = Column(String(64), primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(WordPackType, values_callable=lambda obj: [e.value for e in obj]),
                  default=WordPackType.CURATED, nullable=False)
    difficulty = Column(Enum(WordPackDifficulty, values_callable=lambda obj: [e.value for e in obj]),
                        default=WordPackDifficulty.MEDIUM, nullable=False)
    language = Column(String(10), default="en", nullable=False)

    # [{"civilian": "...", "undercover": "..."}, ...]
    content = Column(JSON, nullable=False)

    is_public = Column(Boolean, default=True, nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<WordPack(id={self.id}, title={self.title}, pairs={len(self.content or [])})>"

    @property
    def pair_count(self) -> int:
        return len(self.content or [])
