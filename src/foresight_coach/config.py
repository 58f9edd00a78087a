"""Settings loaded from environment variables and logging setup."""
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = str(Path.home() / ".foresight_coach" / "coach.db")


class Settings(BaseSettings):
    """Application settings. Every field can be set as FORESIGHT_<NAME>."""

    model_config = SettingsConfigDict(
        env_prefix="FORESIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    db_path: str = Field(default=DEFAULT_DB_PATH, description="SQLite database file")
    db_busy_timeout: float = Field(
        default=60.0,
        description="Seconds to wait for another writer; covers a full generation call",
    )

    mistral_api_key: str = Field(default="", description="Mistral API key; empty means fallback content only")
    mistral_api_url: str = Field(default="https://api.mistral.ai/v1")
    mistral_model: str = Field(default="mistral-small")
    generation_timeout: float = Field(default=30.0, description="Seconds before a generation call is abandoned")

    log_level: str = Field(default="WARNING")
    log_file: Optional[str] = Field(default=None)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="5 MB", retention=3)
