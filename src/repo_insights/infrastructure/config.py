"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_api_url: str = "https://api.github.com"
    github_token: SecretStr | None = None
    ai_api_url: str = "https://api.openai.com/v1"
    ai_api_token: SecretStr | None = None
    ai_model: str = "gpt-4o-mini"
    ai_max_tokens: int = 500
    ai_temperature: float = 0.7
    readme_timeout_seconds: float = 5.0
    events_per_page: int = 30
    credential_file: str = ".repo_insights.json"
    default_locale: str = "en"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
