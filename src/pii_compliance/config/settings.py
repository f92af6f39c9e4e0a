"""Application settings using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_LABEL_LOOKBACK,
    DEFAULT_LABEL_SEPARATORS,
    DEFAULT_MAX_TEXT_LENGTH,
    DEFAULT_PROFILE,
)


class Settings(BaseSettings):
    """Library configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Input limits
    max_text_length: int = Field(default=DEFAULT_MAX_TEXT_LENGTH, gt=0)
    min_text_length: int = Field(default=1, ge=1)

    # Detection defaults
    confidence_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    enable_entity_recognition: bool = True
    include_context: bool = False
    context_window: int = Field(default=DEFAULT_CONTEXT_WINDOW, ge=0)

    # Label proximity scoring
    label_lookback: int = Field(default=DEFAULT_LABEL_LOOKBACK, ge=0)
    label_separators: str = DEFAULT_LABEL_SEPARATORS

    # Pattern definitions file (packaged patterns.yaml when unset)
    patterns_file: Optional[str] = None

    # Policy
    default_profile: str = DEFAULT_PROFILE

    # Logging
    log_level: str = "INFO"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
