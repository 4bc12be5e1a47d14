"""
Configuration and settings for the contractor marketplace backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")

    # Persistence: "sql" (SQLAlchemy URL, SQLite file by default) or "mongo"
    database_backend: Literal["sql", "mongo"] = Field(default="sql")
    database_url: str = Field(default="sqlite:///./manforhire.db")
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017/hudsonconstruction"
    )

    # First-run admin account
    bootstrap_admin: bool = Field(default=True)
    admin_username: str = Field(default="admin")
    admin_email: str = Field(default="admin@hudsonconstruction.com")
    admin_password: str = Field(default="ManForHire2024!")
    seed_default_services: bool = Field(default=True)

    # Tokens and password hashing
    jwt_secret: str = Field(default="dev-secret-key-change-me")
    jwt_expires_in: str = Field(default="24h")
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # HTTP surface
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://localhost:8080"
    )
    rate_limit_window_ms: int = Field(default=15 * 60 * 1000, ge=1)
    rate_limit_max_requests: int = Field(default=100, ge=1)

    # Uploaded images live under <upload_dir>/<folder>/
    upload_dir: str = Field(default="uploads")

    @property
    def allowed_origin_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
