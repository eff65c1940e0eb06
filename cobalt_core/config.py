"""Core configuration using pydantic-settings.

Loads configuration from ``COBALT_``-prefixed environment variables with
.env file support.
"""

import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cobalt_core import __version__


class CoreSettings(BaseSettings):
    """Configuration for the settings registry and diagnostics manager."""

    model_config = SettingsConfigDict(
        env_prefix="COBALT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Capture stack traces for every logged error",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Persistent store
    storage_dir: Path = Field(
        default=Path("data/cobalt"),
        description="Directory used by the file-backed store",
    )
    settings_storage_key: str = Field(
        default="cobalt-settings-v1",
        description="Blob name holding the whole settings value map",
    )
    errors_storage_key: str = Field(
        default="cobalt-errors-v1",
        description="Blob name holding the persisted tail of the error log",
    )

    # Diagnostics bounds
    max_stored_errors: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of errors retained in memory",
    )
    persisted_error_limit: int = Field(
        default=100,
        ge=1,
        description="Number of most recent errors written to the store",
    )

    # Platform metadata stamped on exports
    app_version: str = Field(default=__version__)
    platform: str = Field(default=sys.platform)
    device_id: str | None = None


@lru_cache
def get_settings() -> CoreSettings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded once and reused.
    """
    return CoreSettings()
