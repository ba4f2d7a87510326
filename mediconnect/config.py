from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App environment
    env: str = Field(default="development", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # LLM provider settings (the API key itself is resolved in utils.llm)
    groq_model: str = Field(default="llama-3.1-8b-instant", alias="GROQ_MODEL")
    groq_temperature: float = Field(default=0.4, alias="GROQ_TEMPERATURE")
    groq_max_tokens: int = Field(default=600, alias="GROQ_MAX_TOKENS")
    groq_timeout_seconds: float = Field(default=30.0, alias="GROQ_TIMEOUT_SECONDS")

    # Consult traffic log (pretty JSON blocks, query previews only)
    consult_log_enabled: bool = Field(default=False, alias="CONSULT_LOG_ENABLED")
    consult_log_path: Optional[str] = Field(default=None, alias="CONSULT_LOG_PATH")

    # Reminder settings
    reminder_storage_path: str = Field(default="data/local_storage.json", alias="REMINDER_STORAGE_PATH")
    reminder_storage_key: str = Field(default="medReminders", alias="REMINDER_STORAGE_KEY")
    # Must stay well under a minute: matching is exact HH:MM equality
    reminder_check_interval_seconds: int = Field(default=15, gt=0, lt=60, alias="REMINDER_CHECK_INTERVAL_SECONDS")
    reminder_scheduler_enabled: bool = Field(default=True, alias="REMINDER_SCHEDULER_ENABLED")
    reminder_notifications_enabled: bool = Field(default=True, alias="REMINDER_NOTIFICATIONS_ENABLED")
    reminder_sound_enabled: bool = Field(default=True, alias="REMINDER_SOUND_ENABLED")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
