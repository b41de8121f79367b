"""
Application configuration module.

Provides strongly-typed settings using Pydantic BaseSettings. Values are loaded
from environment variables and .env. Use get_settings() to obtain a cached
Settings instance.

Database:
- DATABASE_URL selects the backing store. SQLite and PostgreSQL URLs are
  supported; the full-text index used by search is created per dialect
  (see models/sql_models.py).
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# PUBLIC_INTERFACE
class Settings(BaseSettings):
    """Centralized application configuration powered by Pydantic BaseSettings."""

    # App
    APP_NAME: str = Field(default="Record Search", description="Application name")
    APP_ENV: str = Field(default="development", description="Execution environment")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level (DEBUG, INFO, WARNING, ERROR)")
    PORT: int = Field(default=3001, description="Port for the FastAPI server")
    CORS_ALLOWED_ORIGINS: str = Field(default="*", description="Comma-separated list of allowed CORS origins or '*'")

    # Database (SQLAlchemy)
    DATABASE_URL: str = Field(
        default="sqlite:///./record_search.db",
        description="SQLAlchemy connection string (sqlite:///... or postgresql://...)",
    )
    DB_ECHO: bool = Field(default=False, description="If true, SQLAlchemy will echo SQL statements to logs")
    AUTO_CREATE_SCHEMA: bool = Field(
        default=True,
        description="Create the records table and its full-text index on startup if missing",
    )

    # Records
    DETAIL_URL_PREFIX: str = Field(
        default="/database-record",
        description="Path prefix of the per-record detail page; results link to '<prefix>/<id>/'",
    )
    MAX_UPLOAD_BYTES: int = Field(default=5 * 1024 * 1024, description="Maximum accepted upload size in bytes")

    # Write access gate (optional)
    ADMIN_API_KEY: Optional[str] = Field(
        default=None,
        description="If set, write endpoints require a matching X-API-Key header",
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Convenience helpers (non-env)
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS_ALLOWED_ORIGINS into a list. '*' returns ['*'] to indicate permissive mode.
        """
        raw = (self.CORS_ALLOWED_ORIGINS or "").strip()
        if raw == "*" or raw == "":
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
