"""Application configuration loaded from environment variables.

All configuration is via environment variables (or a local .env file).
No hardcoded URLs, ports, or credentials.
"""

from functools import lru_cache

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="MDB Catalog Migration")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # Target database (MDB)
    database_url: PostgresDsn = Field(
        ...,
        description="PostgreSQL connection string of the target catalog",
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    db_slow_query_threshold_ms: int = Field(
        default=100, description="Threshold for slow query warnings (ms)"
    )
    db_connect_timeout: int = Field(
        default=60, description="Connection timeout in seconds"
    )
    db_command_timeout: int = Field(
        default=60, description="Command timeout in seconds"
    )

    # Source database (legacy kmedia), read-only
    source_database_url: PostgresDsn | None = Field(
        default=None,
        description="PostgreSQL connection string of the legacy catalog",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format: json or text")

    # Migration
    migration_languages: list[str] = Field(
        default=["HEB", "ENG", "RUS", "SPA", "GER", "FRE", "ITA", "UKR"],
        description="Legacy language codes whose descriptions are migrated",
    )
    collection_name_language: str = Field(
        default="ENG", description="Language of the generated collection name"
    )
    collection_name_template: str = Field(
        default="Morning lesson {film_date}",
        description="Collection name template, formatted with the lesson film_date",
    )
    source_page_size: int = Field(
        default=100, ge=1, description="Lessons fetched per source query"
    )
    lesson_timeout_seconds: float = Field(
        default=120.0, gt=0, description="Upper bound for migrating a single lesson"
    )
    # The translation counter row stays locked until a lesson commits, so
    # lessons allocating sequence ids queue on it, and the wait counts
    # against lesson_timeout_seconds.
    max_concurrent_lessons: int = Field(
        default=1,
        ge=1,
        description=(
            "Lessons migrated concurrently; sequence allocation is serialized "
            "on the translation counter lock"
        ),
    )

    # Admin API
    file_search_limit: int = Field(
        default=100, ge=1, description="Maximum files returned by the search endpoint"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
