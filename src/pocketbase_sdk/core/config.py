# src/pocketbase_sdk/core/config.py
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "PocketBaseSDK"
    APP_VERSION: str = "1.0.0"
    DEBUG_MODE: bool = os.getenv("DEBUG_MODE", "False").lower() == "true"

    # PocketBase Configuration (defaults for the CLI, the client takes explicit values)
    POCKETBASE_URL: str = ""
    POCKETBASE_TOKEN: str = ""
    POCKETBASE_REQUEST_TIMEOUT: float = 10.0  # Seconds, per request
    POCKETBASE_LIST_PAGE_SIZE: int = 10000000  # perPage used for full collection fetches

    # Bulk / Migration
    BULK_MAX_CONCURRENCY: int = 10
    MIGRATION_DEFAULT_BATCH_SIZE: int = 50

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILENAME: Optional[str] = os.getenv("LOG_FILENAME") or None  # None for console only
    LOG_MAX_BYTES: int = 10 * 1024 * 1024  # 10 MB
    LOG_BACKUP_COUNT: int = 5

    @field_validator("POCKETBASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("BULK_MAX_CONCURRENCY", "MIGRATION_DEFAULT_BATCH_SIZE")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("LOG_FILENAME", mode="before")
    @classmethod
    def empty_filename_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


settings = Settings()
