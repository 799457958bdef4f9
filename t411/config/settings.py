"""Configuration management using Pydantic settings."""
import logging
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_FILE_PATH = Path(__file__).parent.parent.parent / ".env"


class Settings(BaseSettings):
    """Client settings loaded from T411_* environment variables."""

    # API endpoint
    api_url: str = Field(default="https://api.t411.me", description="Base URL of the T411 API")

    # Default credentials, used when login() is called without arguments
    username: str = Field(default="", description="T411 account username")
    password: str = Field(default="", description="T411 account password")

    # HTTP
    request_timeout: float = Field(default=15.0, gt=0, description="Timeout in seconds for each HTTP request")
    user_agent: str = Field(default="t411-client/0.1", description="User-Agent header sent with every request")

    # Result ingestion worker pool
    max_workers: int = Field(default=8, ge=1, description="Maximum concurrent ingestion tasks per search")
    task_timeout: Optional[float] = Field(default=None, gt=0, description="Timeout in seconds for a single ingestion task")

    # The API does not report token lifetime, so expiry is opt-in
    session_ttl_seconds: Optional[int] = Field(default=None, gt=0, description="Lifetime of a login session")

    log_level: str = Field(default="INFO", description="Level used by setup_logging()")

    model_config = SettingsConfigDict(
        env_prefix="T411_",
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


if ENV_FILE_PATH.exists():
    logger.debug(f"Loading .env file from: {ENV_FILE_PATH}")

# Global settings instance
settings = Settings()
