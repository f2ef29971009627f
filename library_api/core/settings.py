from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


class LibrarySettings(BaseModel):
    """Runtime configuration for the lending service."""

    database_url: str = Field(default="sqlite:///./library.db", alias="DATABASE_URL")
    sql_echo: bool = Field(default=False, alias="LIBRARY_SQL_ECHO")
    log_level: str = Field(default="INFO", alias="LIBRARY_LOG_LEVEL")
    seed_on_startup: bool = Field(default=False, alias="LIBRARY_SEED_ON_STARTUP")
    lock_timeout_seconds: float = Field(default=10.0, alias="LIBRARY_LOCK_TIMEOUT_SECONDS", gt=0)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:4200"], alias="LIBRARY_CORS_ORIGINS")

    model_config = {"populate_by_name": True}

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str | None) -> str:
        if not value:
            return "INFO"
        return value.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> LibrarySettings:
    """Load service configuration from environment variables."""
    return LibrarySettings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./library.db"),
        sql_echo=_as_bool(os.getenv("LIBRARY_SQL_ECHO"), default=False),
        log_level=os.getenv("LIBRARY_LOG_LEVEL", "INFO"),
        seed_on_startup=_as_bool(os.getenv("LIBRARY_SEED_ON_STARTUP"), default=False),
        lock_timeout_seconds=float(os.getenv("LIBRARY_LOCK_TIMEOUT_SECONDS", "10")),
        cors_origins=os.getenv("LIBRARY_CORS_ORIGINS", "http://localhost:4200"),
    )
