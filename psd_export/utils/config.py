"""
Configuration management for the PSD export watcher.

Uses pydantic-settings to load configuration from environment variables
(prefixed with ``PSD_EXPORT_``) and .env files. Command-line flags override
these values at startup.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Documents
    source_extension: str = "psd"
    default_format: str = "png"

    # Debounce Configuration
    debounce_interval: float = Field(default=0.1, ge=0.0)  # seconds

    # Pre-read settling for the live watch path
    settle_delay: float = Field(default=0.01, ge=0.0)  # seconds
    stability_interval: float = Field(default=0.05, ge=0.0)  # seconds, 0 disables
    stability_timeout: float = Field(default=2.0, ge=0.0)  # seconds

    # Worker Configuration
    max_workers: int = Field(default=8, ge=1)

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PSD_EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_source_suffix(self) -> str:
        """Return the source extension as a path suffix (``.psd``)."""
        return "." + self.source_extension.lstrip(".")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
