"""Settings for the ByteLink core, read from the environment or a .env file.

Settings Groups
===============
::
    Settings
    ├─ service        APP_NAME, APP_ENV, LOG_LEVEL, BASE_URL
    ├─ store          DATABASE_URL, DATABASE_POOL_SIZE, DATABASE_MAX_OVERFLOW
    ├─ lookup cache   REDIS_URL, REDIS_REPLICA_URL, CACHE_*
    ├─ allocation     SHORT_CODE_LENGTH, CUSTOM_CODE_MAX_LENGTH, CODE_ALLOCATION_MAX_ATTEMPTS
    ├─ QR artifact    QR_BOX_SIZE, QR_BORDER, QR_FILL_COLOR, QR_BACK_COLOR
    └─ reporting      TOP_REFERERS_LIMIT, DAILY_ROLLUP_DAYS, DASHBOARD_*, DEFAULT_PAGE_SIZE

How to Use
===========
**Process-wide defaults**::
    from bytelink.config import get_settings
    base_url = get_settings().BASE_URL

**Per-component override**::
    settings = Settings(BASE_URL="https://byte.link", CODE_ALLOCATION_MAX_ATTEMPTS=3)
    allocator = CodeAllocator(store, renderer, settings=settings)

Key Behaviours
===============
- Names are case sensitive and match the environment variable names.
- get_settings() builds one instance per process (lru_cache).
- Components take a Settings instance explicitly; get_settings() is only the fallback.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "bytelink"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    BASE_URL: str = "http://localhost:5000"

    # PostgreSQL (sqlite+aiosqlite URLs work too)
    DATABASE_URL: str = "postgresql+asyncpg://bytelink:bytelink@db:5432/bytelink"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_REPLICA_URL: str = ""

    # Short code allocation
    SHORT_CODE_LENGTH: int = 6
    CUSTOM_CODE_MAX_LENGTH: int = 20
    CODE_ALLOCATION_MAX_ATTEMPTS: int = 10

    # Lookup cache
    CACHE_TTL_SECONDS: int = 3600
    CACHE_LOCK_TTL_SECONDS: int = 3
    CACHE_LOCK_RETRY_COUNT: int = 3
    CACHE_LOCK_RETRY_DELAY_SECONDS: float = 0.05

    # QR artifact
    QR_BOX_SIZE: int = 10
    QR_BORDER: int = 2
    QR_FILL_COLOR: str = "#000000"
    QR_BACK_COLOR: str = "#FFFFFF"

    # Analytics
    TOP_REFERERS_LIMIT: int = 5
    DAILY_ROLLUP_DAYS: int = 7
    DASHBOARD_LIST_LIMIT: int = 5
    DASHBOARD_WINDOW_DAYS: int = 7
    DEFAULT_PAGE_SIZE: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
