"""Application configuration management."""
from pydantic_settings import BaseSettings
from functools import lru_cache


# Window of the non_expired_sessions view, also the default liveness window
DEFAULT_LIVENESS_WINDOW_SECONDS = 300


class Settings(BaseSettings):
    """Application settings."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./miniprobe.db"

    @property
    def async_database_url(self) -> str:
        """Get DATABASE_URL with an async driver for async SQLAlchemy.

        Converts postgresql:// to postgresql+asyncpg:// and sqlite:// to
        sqlite+aiosqlite:// automatically.
        """
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        if self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return self.DATABASE_URL

    # Application
    ENVIRONMENT: str = "development"  # development, staging, or production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # HTTP server
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Client credentials
    CLIENT_TOKEN_LENGTH: int = 16

    # Sampling
    SCRAPE_INTERVAL_SECONDS: int = 5  # Interval handed to probes when a session opens

    # Liveness
    LIVENESS_WINDOW_SECONDS: int = DEFAULT_LIVENESS_WINDOW_SECONDS  # Sessions seen within this window are active

    # Retention reaper
    REAPER_INTERVAL_SECONDS: int = 60
    REAPER_GRACE_SECONDS: int = 3600  # Extra idle time past the liveness window before deletion

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
