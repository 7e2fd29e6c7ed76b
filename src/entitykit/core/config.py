"""Configuration management for EntityKit.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once and is
immutable during runtime.
"""

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Storage keys are "<app_name>_<kind>" and end up as file names
APP_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]{0,63}$")


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ENTITYKIT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "entitykit"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Snapshot Storage Settings
    storage_path: str = "./ek_data/snapshots"
    persistence_debounce_seconds: float = Field(
        default=0.25,
        description="Window in which consecutive mutations collapse into one snapshot write",
    )

    # Notification Settings
    notification_ttl_seconds: float = 3.0

    # CSV Settings
    csv_encoding: str = "utf-8"
    import_min_columns: int | None = Field(
        default=None,
        description="Minimum number of cells an import row needs (derived from the schema if unset)",
    )

    @field_validator("app_name")
    @classmethod
    def validate_app_name(cls, v: str) -> str:
        """Ensure the app name can prefix a storage key."""
        if not APP_NAME_PATTERN.match(v):
            raise ValueError(
                "app_name must start with a letter or digit and contain only "
                "letters, digits, '_', '.' or '-'"
            )
        return v

    @field_validator("persistence_debounce_seconds", "notification_ttl_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Reject negative durations."""
        if v < 0:
            raise ValueError("Durations must be zero or positive")
        return v

    @field_validator("import_min_columns")
    @classmethod
    def validate_min_columns(cls, v: int | None) -> int | None:
        """Reject a minimum column count below one."""
        if v is not None and v < 1:
            raise ValueError("import_min_columns must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    def storage_key(self, kind: str) -> str:
        """Build the snapshot key for a collection kind (``<app>_<kind>``)."""
        return f"{self.app_name}_{kind}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This function caches the settings instance to avoid reloading
    configuration on every call.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
