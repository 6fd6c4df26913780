"""
Application configuration settings
应用配置设置
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from the environment and .env"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1

    # Database configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./guesswho.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE: int = 1800  # Recycle connections every 30 minutes
    DB_ECHO: bool = False

    # Redis configuration (None = single process, in-memory room locks)
    REDIS_URL: Optional[str] = None
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_SOCKET_TIMEOUT: int = 5
    REDIS_LOCK_TIMEOUT: int = 10  # seconds a room lock may be held
    REDIS_LOCK_BLOCKING_TIMEOUT: int = 5  # seconds to wait for a room lock

    # JWT configuration
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Game configuration
    ROOM_CODE_LENGTH: int = 6
    ROOM_CODE_TTL_HOURS: int = 24  # codes only need to be unique inside this window
    ROOM_CODE_MAX_ATTEMPTS: int = 50
    MIN_PLAYERS: int = 3
    MAX_PLAYERS_PER_ROOM: int = 20
    DEFAULT_MAX_PLAYERS: int = 8
    DEFAULT_ROUND_LIMIT: Optional[int] = None  # None = play until a faction wins
    TIE_BREAK_POLICY: str = "no_elimination"
    DEFAULT_WORD_PACK_ID: str = "general-pack"
    MAX_CLUE_LENGTH: int = 200

    # Idle room expiry
    ENABLE_BACKGROUND_TASKS: bool = True
    ROOM_IDLE_TIMEOUT: int = 1800  # 30 minutes
    ROOM_CLEANUP_INTERVAL: int = 300  # 5 minutes

    # WebSocket configuration
    MAX_WEBSOCKET_CONNECTIONS: int = 200

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
