"""
Application configuration using Pydantic Settings.
"""
from functools import lru_cache
from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # LLM (OpenRouter, OpenAI-compatible)
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_models: str = Field(
        default="google/gemini-2.0-flash-001",
        description="Comma separated model candidates, tried in order"
    )
    llm_timeout_seconds: float = 30.0
    app_referer: str = "http://localhost:3000"
    app_title: str = "ClickUp Ticket Assistant"

    # ClickUp
    clickup_api_token: Optional[str] = None
    clickup_base_url: str = "https://api.clickup.com/api/v2"
    clickup_team_id: Optional[str] = None
    clickup_list_id: Optional[str] = None

    # Company context
    context_file: str = "context/company-context.md"

    # Application
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    @field_validator("openrouter_base_url", "clickup_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Ensure URLs don't end with a trailing slash."""
        return v.rstrip("/")

    @property
    def model_candidates(self) -> Tuple[str, ...]:
        """Ordered, read-only list of model identifiers."""
        return tuple(m.strip() for m in self.llm_models.split(",") if m.strip())

    @property
    def llm_configured(self) -> bool:
        return bool(self.openrouter_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Get settings singleton."""
    return Settings()
