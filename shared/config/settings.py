"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Data access settings with defaults for development."""

    # Database
    database_url: str = "sqlite:///./commerce.db"
    async_database_url: str = "sqlite+aiosqlite:///./commerce.db"

    # Echo every SQL statement through the sqlalchemy.engine logger
    sql_echo: bool = False

    # Pool settings are ignored by SQLite
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Paging
    default_page_size: int = 20

    # Global soft-delete scoping for auditable models
    soft_delete_filter_enabled: bool = True

    # Environment
    environment: str = "development"
    debug: bool = True

    class Config:
        env_prefix = "COMMERCE_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


settings = get_settings()
