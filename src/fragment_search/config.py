"""Centralized configuration for fragment-search using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``FRAGMENT_SEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FRAGMENT_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Scoring
    title_boost: float = Field(default=2.0, gt=1.0, description="Multiplier applied to title occurrences")

    # Analysis
    min_token_length: int = Field(default=2, ge=1, description="Tokens shorter than this are dropped")

    # Build
    build_workers: int = Field(default=1, ge=1, description="Threads used to analyze fragments during a build")

    # Query
    default_limit: int = Field(default=10, ge=1, description="Page size used when callers do not pass a limit")
    snippet_max_chars: int = Field(default=200, ge=40, description="Maximum snippet length in search output")
    snippet_style: Literal["plain", "html"] = Field(default="plain", description="Highlight markers for snippets")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
