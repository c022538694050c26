from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TRANSITION_AVERAGE_MODES = {"legacy", "running"}
DEFAULT_DATABASE_URLS = {
    "database_url": "sqlite:///./data/moodsync.db",
    "offline_queue_url": "sqlite:///./data/offline_queue.db",
}


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/moodsync.db",
        alias="DATABASE_URL",
    )
    log_file: Path = Field(default=Path("logs/moodsync.log"))

    # Analytics
    timezone: str = Field(default="UTC", alias="TIMEZONE")
    transition_average: str = Field(default="legacy", alias="TRANSITION_AVERAGE")

    # Demo user and sample data
    demo_username: str = Field(default="demo_user", alias="DEMO_USERNAME")
    seed_demo_data: bool = Field(default=True, alias="SEED_DEMO_DATA")

    # Reminders
    notifications_enabled: bool = Field(default=True, alias="NOTIFICATIONS_ENABLED")
    reminder_hour: int = Field(default=20, alias="REMINDER_HOUR")
    reminder_minute: int = Field(default=0, alias="REMINDER_MINUTE")
    breathing_reminder_delay_seconds: float = Field(
        default=5.0,
        alias="BREATHING_REMINDER_DELAY_SECONDS",
    )

    # Offline queue and replay client
    offline_queue_url: str = Field(
        default="sqlite+aiosqlite:///./data/offline_queue.db",
        alias="OFFLINE_QUEUE_URL",
    )
    api_base_url: str = Field(default="http://127.0.0.1:8000", alias="API_BASE_URL")
    request_timeout_seconds: float = Field(default=10.0)
    retry_attempts: int = Field(default=3)
    retry_delay_seconds: float = Field(default=1.0)

    version: str = Field(default_factory=lambda: Settings._load_version())

    @staticmethod
    def _load_version() -> str:
        version_env = os.getenv("VERSION")
        if version_env:
            return version_env
        version_file = Path("VERSION")
        if version_file.exists():
            return version_file.read_text(encoding="utf-8").strip()
        return "0.0.0"

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Path | str) -> Path:
        path = Path(value)
        if not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("timezone", mode="before")
    @classmethod
    def _validate_timezone(cls, value: str | None) -> str:
        if not value:
            return "UTC"
        try:
            ZoneInfo(str(value))
        except (ZoneInfoNotFoundError, ValueError):
            return "UTC"
        return str(value)

    @field_validator("transition_average", mode="before")
    @classmethod
    def _validate_transition_average(cls, value: str | None) -> str:
        if not value:
            return "legacy"
        normalized = str(value).lower()
        if normalized not in TRANSITION_AVERAGE_MODES:
            return "legacy"
        return normalized

    @field_validator("reminder_hour", mode="before")
    @classmethod
    def _validate_reminder_hour(cls, value: int | str | None) -> int:
        if value is None:
            return 20
        return min(max(int(value), 0), 23)

    @field_validator("reminder_minute", mode="before")
    @classmethod
    def _validate_reminder_minute(cls, value: int | str | None) -> int:
        if value is None:
            return 0
        return min(max(int(value), 0), 59)

    @field_validator("breathing_reminder_delay_seconds", mode="before")
    @classmethod
    def _validate_breathing_delay(cls, value: float | str | None) -> float:
        if value is None:
            return 5.0
        return max(float(value), 0.0)

    @field_validator("database_url", "offline_queue_url", mode="before")
    @classmethod
    def _validate_database_url(cls, value: str | None, info: ValidationInfo) -> str:
        if not value:
            value = DEFAULT_DATABASE_URLS[info.field_name]

        normalized = str(value)
        if normalized.startswith("postgres://"):
            normalized = normalized.replace("postgres://", "postgresql://", 1)
        if normalized.startswith("postgresql://") and "+asyncpg" not in normalized:
            normalized = normalized.replace("postgresql://", "postgresql+asyncpg://", 1)
        if normalized.startswith("sqlite://") and "+aiosqlite" not in normalized:
            normalized = normalized.replace("sqlite://", "sqlite+aiosqlite://", 1)

        if normalized.startswith("sqlite+aiosqlite:///"):
            db_path = normalized.split("///", maxsplit=1)[-1]
            if db_path and db_path != ":memory:":
                db_file = Path(db_path)
                db_file.parent.mkdir(parents=True, exist_ok=True)

        return normalized


@lru_cache
def get_settings() -> Settings:
    """Cached settings accessor."""

    return Settings()
