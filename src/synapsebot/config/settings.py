"""Application settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from synapsebot.errors import BotTokenNotConfiguredError, ModelNotConfiguredError

DEFAULT_SEARCH_URL = "https://google.com/search"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_prefix="SYNAPSE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram
    bot_token: str | None = Field(default=None, description="Telegram bot token")
    allow_from: set[str] = Field(default_factory=set, description="Allowed user ids or usernames, empty for everyone")

    # Backend
    model: str | None = Field(default=None, description="Model in provider:model format")
    api_key: str | None = Field(default=None, description="API key for the LLM provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    max_tokens: int = Field(default=4096, description="Maximum tokens for responses")
    system_prompt: str | None = Field(default=None, description="Override for the built-in system prompt")

    # Conversation
    history_size: int = Field(default=15, ge=1, description="Turns retained per conversation")
    processing_timeout_seconds: int = Field(default=120, ge=1, description="Nominal duration of one turn")
    gate_sweep_interval_seconds: int = Field(default=300, ge=1, description="Period of the gate janitor")
    max_tool_depth: int = Field(default=10, ge=1, description="Maximum chained tool calls in one turn")

    # File tools
    files_dir: Path = Field(default=Path("synapse_files"), description="Sandbox directory for the file tools")
    file_max_age_seconds: int = Field(default=3600, ge=1, description="Age after which created files are removed")
    file_sweep_interval_seconds: int = Field(default=3600, ge=1, description="Period of the file janitor")

    # Web tools
    search_url: str = Field(default=DEFAULT_SEARCH_URL, description="Search engine results page")
    search_extract_limit: int = Field(default=5, ge=1, description="Top links fed into extraction")
    extract_deadline_seconds: float = Field(default=10.0, gt=0, description="Deadline for one extraction batch")
    fetch_timeout_seconds: float = Field(default=5.0, gt=0, description="Timeout for one page fetch")
    max_concurrent_fetches: int = Field(default=4, ge=1, description="Concurrent fetches in one batch")

    log_level: str = Field(default="INFO", description="Log level")

    def require_bot_token(self) -> str:
        if not self.bot_token:
            raise BotTokenNotConfiguredError("Bot token not configured. Set SYNAPSE_BOT_TOKEN.")
        return self.bot_token

    def require_model(self) -> str:
        if not self.model:
            raise ModelNotConfiguredError("Model not configured. Set SYNAPSE_MODEL (e.g., 'gemini:gemini-2.0-flash').")
        return self.model


def load_settings(**overrides: object) -> Settings:
    """Load settings, applying non-empty overrides on top of the environment."""

    settings = Settings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
