"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``MAILBRIDGE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MAILBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    log_level: str = "INFO"

    # Credential cache
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "mailbridge")
    token_file: str = "tokens.json"

    # Backend REST surfaces
    gmail_api_base: str = "https://www.googleapis.com/gmail/v1/users/me"
    graph_api_base: str = "https://graph.microsoft.com/v1.0"
    google_calendar_api_base: str = "https://www.googleapis.com/calendar/v3"
    people_api_base: str = "https://people.googleapis.com/v1"
    backend_api_base: str = "https://mail.superhuman.com/~backend"
    http_timeout: float = 30.0

    # Live client account switching
    account_switch_attempts: int = 50
    account_switch_interval_ms: int = 200
    account_switch_backoff: float = 1.0

    # Graph conversation resolution (client-side filter over recent messages)
    graph_conversation_scan: int = 50

    # Snooze
    snooze_lookup_limit: int = 200

    @computed_field
    @property
    def token_path(self) -> Path:
        """Location of the JSON credential cache."""
        return Path(self.config_dir).expanduser() / self.token_file


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
