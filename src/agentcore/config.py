"""Application configuration using Pydantic Settings."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SECRET_FILE_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "DEEPSEEK_API_KEY",
)


def _load_secret_file_env_vars() -> None:
    """Allow secrets to be sourced from *_FILE env vars (Docker secrets)."""
    for env_var in SECRET_FILE_ENV_VARS:
        file_var = f"{env_var}_FILE"
        file_path = os.getenv(file_var)
        if not file_path:
            continue
        try:
            value = Path(file_path).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise RuntimeError(f"Failed to read {file_var} at {file_path}") from exc
        if not value:
            raise ValueError(f"{file_var} is empty")
        os.environ[env_var] = value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ----- Application -----
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False

    # ----- Anthropic AI -----
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = 4096

    # ----- OpenAI -----
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None

    # ----- DeepSeek AI (OpenAI-compatible) -----
    deepseek_api_key: str = ""
    deepseek_model: str = "deepseek-chat"
    deepseek_base_url: str = "https://api.deepseek.com"

    # ----- AI Provider Selection -----
    ai_provider: Literal["anthropic", "openai", "deepseek"] = "anthropic"

    # ----- Agent -----
    agent_instructions: str | None = None
    # Unset means the tool loop runs until the model stops requesting tools
    agent_max_tool_rounds: int | None = Field(default=None, ge=1)
    agent_tool_concurrency: int = Field(default=1, ge=1, le=16)
    agent_structured_max_retries: int = Field(default=1, ge=0)

    # ----- Chat History -----
    chat_history_context_window: int = Field(default=100, ge=1)
    chat_history_path: Path | None = None

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def provider_api_key(self) -> str:
        """API key of the selected provider."""
        return {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "deepseek": self.deepseek_api_key,
        }[self.ai_provider]

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Ensure secure settings in production environment."""
        if self.is_production:
            if self.app_debug:
                raise ValueError("APP_DEBUG must be false in production!")
            if not self.provider_api_key():
                raise ValueError(
                    f"{self.ai_provider.upper()}_API_KEY must be set in production!"
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    _load_secret_file_env_vars()
    return Settings()
