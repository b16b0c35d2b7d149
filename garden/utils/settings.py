"""Runtime settings sourced from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DEFAULT_DATABASE_PATH = "garden.db"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str]
    database_path: str
    busy_timeout_ms: int
    slow_query_ms: int
    default_page_limit: int
    max_page_limit: int
    log_level: str

    def resolved_database_url(self) -> str:
        """Return the SQLAlchemy URL, preferring an explicit URL over the file path."""
        if self.database_url:
            return self.database_url
        return f"sqlite+pysqlite:///{self.database_path}"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return cached settings read from the environment."""
    max_limit = _int_env("GARDEN_MAX_PAGE_LIMIT", 100)
    default_limit = _int_env("GARDEN_DEFAULT_PAGE_LIMIT", 20)
    if max_limit < 1:
        raise ValueError("GARDEN_MAX_PAGE_LIMIT must be at least 1")
    return Settings(
        database_url=os.getenv("GARDEN_DATABASE_URL") or None,
        database_path=os.getenv("GARDEN_DATABASE_PATH", DEFAULT_DATABASE_PATH),
        busy_timeout_ms=_int_env("GARDEN_BUSY_TIMEOUT_MS", 30000),
        slow_query_ms=_int_env("GARDEN_SLOW_QUERY_MS", 50),
        default_page_limit=min(max(default_limit, 1), max_limit),
        max_page_limit=max_limit,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
