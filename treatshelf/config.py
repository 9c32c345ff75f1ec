"""
Configuration and settings for the treatshelf service.

Field names map to environment variables case-insensitively, so
``database_backend`` is read from ``DATABASE_BACKEND``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    port: int = Field(default=8080)
    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Deadline in seconds handed to every database call made by a request.
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    # Database selection: "memory", "firestore" or "sql"
    database_backend: Literal["memory", "firestore", "sql"] = Field(default="memory")

    # Firestore
    google_cloud_project: Optional[str] = Field(default=None)
    firestore_collection: str = Field(default="treats")

    # SQL (Postgres expected, SQLite works for local runs)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible storage for treat images
    storage_bucket: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_endpoint: Optional[str] = Field(default=None)
    storage_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_storage: bool = Field(default=False)

    @model_validator(mode="after")
    def validate_backend(self) -> "Settings":
        if self.database_backend == "firestore" and not self.google_cloud_project:
            raise ValueError("GOOGLE_CLOUD_PROJECT must be set for the firestore backend")
        if self.database_backend == "sql" and not self.database_url:
            raise ValueError("DATABASE_URL must be set for the sql backend")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
