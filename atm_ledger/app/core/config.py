from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "ATM Ledger API"
    database_url: str = "sqlite:///atm_ledger.db"
    store_backend: Literal["sql", "memory"] = "sql"
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Seconds to wait for a per-account lock before giving up.
    lock_timeout: float = Field(default=5.0, gt=0)
    # Driver-level busy/connect timeout handed to the database engine.
    store_timeout: float = Field(default=5.0, gt=0)
    max_retries: int = Field(default=3, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ATM_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
