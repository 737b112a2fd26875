"""
Configuration via environment variables (prefix JOBTRACKER_).
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """JobTracker settings loaded from environment variables or a .env file."""

    # Storage
    data_dir: str = "~/.jobtracker"
    cloud_dir: Optional[str] = None  # Synced folder shared between devices
    file_name: str = "JobTracker.json"

    # Sync watcher
    watch_debounce_ms: int = 500
    watch_poll_interval_ms: int = 250

    # Job search (JSearch on RapidAPI)
    rapidapi_key: str = ""
    search_timeout_s: int = 30

    # Logging
    log_level: str = "WARNING"

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: Optional[str]) -> str:
        v = str(v or "").strip() or "~/.jobtracker"
        return os.path.expanduser(v)

    @field_validator("cloud_dir", mode="before")
    @classmethod
    def expand_cloud_dir(cls, v: Optional[str]) -> Optional[str]:
        # Empty means "no synced folder"
        v = str(v or "").strip()
        return os.path.expanduser(v) if v else None

    @field_validator("watch_debounce_ms", "watch_poll_interval_ms", "search_timeout_s")
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    class Config:
        env_prefix = "JOBTRACKER_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
