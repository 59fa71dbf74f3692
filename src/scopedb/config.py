"""Runtime settings for scopedb.

Resolution priority for every setting:
1. Explicit argument
2. SCOPEDB_* environment variable
3. Built-in default
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///./scopedb.db"


def get_database_url(url: str | None = None) -> str:
    """Resolve database URL from argument, SCOPEDB_URL, or default."""
    if url:
        return url
    if env_url := os.getenv("SCOPEDB_URL"):
        return env_url
    return DEFAULT_DATABASE_URL


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Engine settings.

    `default_language_id` and `default_shop_id` stand in for the request
    context: they are used when an instance is not bound to a language or shop
    and nothing else tells the engine which one to use.
    """

    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    default_language_id: int = 1
    default_shop_id: int = 1

    @classmethod
    def from_env(cls, database_url: str | None = None) -> Settings:
        """Build settings from SCOPEDB_* environment variables."""
        return cls(
            database_url=get_database_url(database_url),
            echo=_env_bool("SCOPEDB_ECHO", False),
            default_language_id=_env_int("SCOPEDB_DEFAULT_LANG", 1),
            default_shop_id=_env_int("SCOPEDB_DEFAULT_SHOP", 1),
        )
