"""Session configuration loaded from environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Friction session settings loaded from environment."""

    # Backend
    gateway_url: str = "http://localhost:8000"
    request_timeout: float = 10.0

    # Analytics defaults
    trend_days: int = 30
    most_annoying_limit: int = 5

    # Alerts
    alert_history_size: int = 100

    log_level: str = "info"

    class Config:
        env_prefix = "FRICTION_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
