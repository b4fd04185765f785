"""
Configuration management for the Daily Polyglot bot
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_LANGUAGES = ("de", "en", "es")
SUPPORTED_LEVELS = ("A1", "A2", "B1", "B2", "C1")

LANGUAGE_NAMES = {
    "de": "German",
    "en": "English",
    "es": "Spanish",
}


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Telegram Bot Configuration
    telegram_bot_token: str = Field(...)
    allowed_users: str = Field(default="")

    # OpenAI Configuration
    openai_api_key: str = Field(...)
    openai_model: str = Field(default="gpt-4o-mini")
    openai_max_tokens: int = Field(default=1500)
    openai_temperature: float = Field(default=1.0)
    api_timeout: int = Field(default=60)

    # Pronunciation
    tts_enabled: bool = Field(default=True)
    tts_model: str = Field(default="gpt-4o-mini-tts")

    # Storage Configuration
    database_url: str = Field(default="sqlite:///data/polyglot.db")

    # Application Configuration
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)
    polling_interval: float = Field(default=1.0)

    # Learning defaults
    default_target_language: str = Field(default="de")
    default_level: str = Field(default="A1")

    # Reminder Configuration
    reminder_enabled: bool = Field(default=True)
    default_reminder_time: str = Field(default="09:00")
    timezone: str = Field(default="UTC")

    @property
    def allowed_users_list(self) -> list[int]:
        """Convert allowed_users string to list of integers"""
        if not self.allowed_users.strip():
            return []
        return [
            int(user_id.strip())
            for user_id in self.allowed_users.split(",")
            if user_id.strip()
        ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def get_database_path() -> str:
    """Get the database file path from URL"""
    settings = get_settings()
    if settings.database_url.startswith("sqlite:///"):
        return settings.database_url.replace("sqlite:///", "")
    return "data/polyglot.db"
