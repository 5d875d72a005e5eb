"""Configuration helpers for the story pipeline."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    completion_model: str = Field(
        "gpt-4o-mini", description="Model used to analyze article text."
    )
    temperature: float = Field(
        0.1, description="Sampling temperature; kept low for reproducible JSON."
    )
    max_tokens: int = Field(
        3500,
        description="Max output tokens for the analysis response.",
    )
    completion_timeout: float = Field(
        60.0, description="Seconds to wait for the completion service."
    )
    fetch_timeout: float = Field(
        15.0, description="Hard deadline in seconds for downloading the article page."
    )
    max_article_chars: int = Field(
        150_000,
        description="Article text beyond this many characters is truncated in the prompt.",
    )
    min_content_chars: int = Field(
        150, description="Minimum extracted text length accepted for analysis."
    )
    user_agent: str = Field(
        "SmartStorySuiteBot/1.0 (+https://smartstorysuite.app/bot-info)",
        description="User-Agent header sent when fetching articles.",
    )
    log_level: str = Field("INFO", description="Root log level for CLI and server.")

    @property
    def api_key_configured(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())

    def require_api_key(self) -> str:
        """Return the completion-service key or raise ConfigError when it is missing."""
        if not self.api_key_configured:
            raise ConfigError(
                "OPENAI_API_KEY is required. Set it in the environment or .env file."
            )
        return self.openai_api_key


def get_settings() -> Settings:
    """Return a settings instance read from the current environment."""
    return Settings()


def configure_logging(level: str | int = "INFO") -> None:
    """Install a basic stderr handler for entry points (CLI and server)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
