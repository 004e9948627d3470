"""Settings loaded from environment variables (``COMBATTRACKER_*``) or ``.env``."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="COMBATTRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # SQLite файл рядом с проектом, переопределяется через env
    database_url: str = "sqlite:///./combattracker.sqlite3"

    history_max_depth: int = Field(default=50, ge=1)

    # открытые трекеры в памяти (LRU) и длина боевого лога на трекер
    max_open_sessions: int = Field(default=64, ge=1)
    max_log_entries: int = Field(default=500, ge=1)

    # лимит на один сериализованный снапшот (аналог квоты localStorage)
    max_snapshot_bytes: int = Field(default=5 * 1024 * 1024, ge=1)

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
