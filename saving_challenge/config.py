"""
Application configuration using Pydantic Settings
"""
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """
    # Database
    DATABASE_URL: str = "sqlite:///saving_challenge.db"

    # Application
    TIMEZONE: str = "Africa/Cairo"
    CURRENCY: str = "EGP"
    DEFAULT_USER_ID: int = 1
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Statistics: first day of the calendar week (0=Monday ... 6=Sunday)
    FIRST_WEEKDAY: int = Field(default=6, ge=0, le=6)

    # Notification policy
    NOTIFICATION_COOLDOWN_MINUTES: int = Field(default=30, ge=0)
    MOTIVATION_AFTER_SAVING_CHANCE: float = Field(default=0.2, ge=0.0, le=1.0)

    # Scheduler
    DAILY_REMINDER_HOUR: int = Field(default=20, ge=0, le=23)
    SAVING_TIP_HOUR: int = Field(default=10, ge=0, le=23)
    SAVING_TIP_EVERY_DAYS: int = Field(default=3, ge=1)
    MOTIVATION_MIN_HOURS: float = Field(default=6.0, gt=0)
    MOTIVATION_MAX_HOURS: float = Field(default=12.0, gt=0)

    # Telegram Bot (optional delivery channel)
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""
    HTTP_TIMEOUT_SEC: float = Field(default=5.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def get_sqlalchemy_url(self) -> str:
        """
        Convert DATABASE_URL to SQLAlchemy format (postgresql+psycopg://)
        """
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+psycopg://", 1)
        return url

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance (singleton)
    """
    return Settings()
