"""Configuration management for sketchloop."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sketchloop.errors import ModelNotConfiguredError

DEFAULT_HISTORY_FILE = "history.jsonl"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SKETCHLOOP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model
    model: str | None = Field(None, description="Model in provider:model format (e.g. 'openai:gpt-4o')")
    api_key: str | None = Field(None, description="API key for the LLM provider")
    api_base: str | None = Field(None, description="Optional API base URL")
    max_tokens: int = Field(default=4096, description="Maximum tokens for one model response")
    model_timeout_seconds: int | None = Field(default=None, description="Seconds to wait for each model stream event")

    # Turn
    max_steps: int = Field(default=1, ge=1, description="Maximum model streams per turn")
    system_prompt: str | None = Field(None, description="Override for the built-in system prompt")

    # Workspace
    workspace_path: Path | None = Field(None, description="Workspace directory path")
    history_file: str = Field(default=DEFAULT_HISTORY_FILE, description="Transcript file inside the working dir")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    def require_model(self) -> str:
        if not self.model:
            raise ModelNotConfiguredError("SKETCHLOOP_MODEL is not set")
        return self.model


def get_settings(workspace_path: Path | None = None) -> Settings:
    """Get application settings.

    Args:
        workspace_path: Optional workspace path override

    Returns:
        Settings instance
    """
    if workspace_path is None:
        return Settings()
    return Settings(workspace_path=workspace_path)
