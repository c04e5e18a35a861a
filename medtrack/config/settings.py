# medtrack/config/settings.py
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MEDTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite:///medtrack.db"
    sql_echo: bool = False

    # 저장된 모든 naive datetime은 이 타임존의 벽시계 시각
    timezone: str = "Asia/Tokyo"

    weather_retention_days: int = 7
    weather_stale_hours: float = 24
    cleanup_enabled: bool = True
    cors_origins: Optional[list[str]] = None


def get_settings() -> Settings:
    return Settings()
