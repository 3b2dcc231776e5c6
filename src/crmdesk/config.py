"""Desk configuration via Pydantic BaseSettings.

Values come from environment variables or a ``.env`` file. The only
external dependency is the CRM REST API at ``CRM_API_BASE_URL``.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Settings for the desk and its connection to the CRM API."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # CRM REST API (resources live under this root: /companies, /deals, ...)
    CRM_API_BASE_URL: str = "http://localhost:5000/api"
    CRM_API_TIMEOUT: float = Field(default=10.0, gt=0)

    ENVIRONMENT: Environment = Environment.development
    LOG_LEVEL: str = "INFO"

    # Comma-separated list, or "*"
    CORS_ALLOWED_ORIGINS: str = "*"

    # Failure messages kept until the page drains them
    NOTIFICATION_BACKLOG: int = Field(default=50, ge=1)

    CURRENCY_SYMBOL: str = "₹"

    @field_validator("CRM_API_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    """Return cached desk settings."""
    return Settings()
