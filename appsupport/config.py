"""
Configuration settings for appsupport.

Values come from environment variables (and a ``.env`` file at the repo
root when present).  NEVER logs secret values.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

_REPO_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_PATH: Path = Field(
        default=_REPO_ROOT / "data" / "appsupport.sqlite3",
        validation_alias="DATABASE_PATH",
    )
    DB_BUSY_TIMEOUT: float = Field(default=5.0, validation_alias="DB_BUSY_TIMEOUT")

    # API
    API_BASE_URL: str = Field(default="", validation_alias="API_BASE_URL")
    REQUEST_TIMEOUT: float = Field(default=15.0, validation_alias="REQUEST_TIMEOUT")
    AUTH_EXPIRED_CODES: list[int] = Field(
        default=[10003, 301013], validation_alias="AUTH_EXPIRED_CODES"
    )
    REFRESH_TIMEOUT: float = Field(default=30.0, validation_alias="REFRESH_TIMEOUT")
    TOKEN_FILE: Optional[Path] = Field(default=None, validation_alias="TOKEN_FILE")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_JSON: bool = Field(default=False, validation_alias="LOG_JSON")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid repeated env parsing."""
    return Settings()


def get_db_path() -> Path:
    return get_settings().DATABASE_PATH
