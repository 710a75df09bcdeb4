"""Cropdoc configuration settings using pydantic-settings."""

from functools import cached_property
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the offline media queue.

    Settings are loaded from environment variables with the CROPDOC_ prefix.
    For example, CROPDOC_SYNC_ITEM_TIMEOUT=10 sets sync_item_timeout to 10.
    """

    model_config = SettingsConfigDict(
        env_prefix="CROPDOC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Remote analysis backend
    server_url: str = "https://crop-aid-backend.onrender.com"
    upload_max_retries: int = 3
    upload_timeout: float = 10.0  # seconds per HTTP attempt
    simulate_remote: bool = False
    simulate_delay: float = 0.5  # seconds per record when simulating

    # Queue storage
    data_dir: Path = Path("~/.local/share/cropdoc")
    queue_db_name: str = "queue.db"
    storage_key: str = "pending_media_items"

    # Sync pass
    sync_item_timeout: float = 30.0  # seconds per record

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    @field_validator("sync_item_timeout")
    @classmethod
    def validate_sync_item_timeout(cls, v: float) -> float:
        """Ensure the per-record timeout is positive."""
        if v <= 0:
            raise ValueError("sync_item_timeout must be greater than 0")
        return v

    @field_validator("upload_timeout")
    @classmethod
    def validate_upload_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("upload_timeout must be greater than 0")
        return v

    @field_validator("upload_max_retries")
    @classmethod
    def validate_upload_max_retries(cls, v: int) -> int:
        """Ensure at least one upload attempt is made."""
        if v < 1:
            raise ValueError("upload_max_retries must be at least 1")
        return v

    @field_validator("storage_key")
    @classmethod
    def validate_storage_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("storage_key must not be empty")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @cached_property
    def data_path(self) -> Path:
        """Return expanded data directory path."""
        return self.data_dir.expanduser()

    @cached_property
    def upload_request_timeout(self) -> float:
        """Return the per-attempt HTTP timeout.

        Capped so every retry attempt fits inside sync_item_timeout.
        """
        return min(self.upload_timeout, self.sync_item_timeout / self.upload_max_retries)

    @cached_property
    def queue_db_path(self) -> Path:
        """Return the path of the SQLite file backing the queue."""
        return self.data_path / self.queue_db_name
