from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./uwguessr.db"

    # Photo provider (falls back to the local photos table when unset)
    PHOTO_PROVIDER_URL: Optional[str] = None
    PHOTO_PROVIDER_TIMEOUT: float = 30.0

    # Game Configuration
    ROUNDS_PER_GAME: int = 5

    # Daily challenge
    REFERENCE_TIMEZONE: str = "America/New_York"
    DAILY_RETENTION_DAYS: int = 7
    MAX_NAME_LENGTH: int = 20

    # Score submission throttling
    RATE_LIMIT_REQUESTS: int = 2
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    RATE_LIMIT_CAPACITY: int = 10000

    # Tab-scoped session stores kept in memory
    MAX_SESSIONS: int = 10000

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
