import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from fastapi import Request

load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_title: str = "Fractional Real Estate Ownership Service"
    database_url: str = "sqlite+aiosqlite:///./estate_shares.db"
    redis_url: Optional[str] = None
    cache_ttl_seconds: int = 3600
    default_property_shares: int = 100
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@lru_cache()
def get_settings() -> Settings:
    defaults = Settings()
    return Settings(
        app_title=os.getenv("APP_TITLE") or defaults.app_title,
        database_url=os.getenv("DATABASE_URL") or defaults.database_url,
        # An empty REDIS_URL disables the property cache
        redis_url=(os.getenv("REDIS_URL") or "").strip() or None,
        cache_ttl_seconds=_env_int("CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
        default_property_shares=_env_int("DEFAULT_PROPERTY_SHARES", defaults.default_property_shares),
        log_level=(os.getenv("LOG_LEVEL") or defaults.log_level).upper(),
        sql_log_level=(os.getenv("SQL_LOG_LEVEL") or defaults.sql_log_level).upper(),
    )


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
