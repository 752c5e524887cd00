"""Centralized settings for the Equilibrio screener.

Uses pydantic-settings to load from environment variables (prefixed
EQUILIBRIO_) with defaults suitable for local development.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Screener settings loaded from environment variables."""

    # --- Data source ---
    data_source_url: str = "http://localhost:8080/api"
    request_timeout: float = 10.0
    max_retries: int = 2
    retry_base_delay: float = 0.5
    retry_max_delay: float = 5.0
    instrument_page_size: int = 10000

    # --- Persistence ---
    storage_backend: Literal["memory", "file", "redis"] = "file"
    storage_dir: str = ".equilibrio"
    redis_url: str = "redis://localhost:6379/0"

    # --- Query defaults ---
    default_page_size: int = 50
    default_sort_field: str = "symbol"

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "console"

    model_config = {
        "env_prefix": "EQUILIBRIO_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
