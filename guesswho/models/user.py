"""
User model
用户账号数据模型
"""

from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.sql import func
from guesswho.core.database import Base, utcnow


class User(Base):
    """Account that can host rooms and join them as a player"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
