"""Configuration management for the pgql API.

This module handles environment-based configuration using Pydantic Settings,
supporting both a ``.env`` file and environment variables.
"""

from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings

from ..database import DatabaseConfig
from ..migrations import DestructivePolicy


class APIConfig(BaseSettings):
    """FastAPI application configuration."""

    # Environment
    environment: Literal["development", "testing", "production"] = Field(
        default="development", description="Application environment"
    )

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8000, description="Port to bind to")
    reload: bool = Field(
        default=False, description="Enable auto-reload for development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Enable JSON formatted logs")
    log_requests: bool = Field(
        default=True, description="Enable request logging middleware"
    )

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins",
    )

    # Schema synchronization
    schema_file: str = Field(
        default="schemas/realm.yaml",
        description="Declarative schema file describing the desired tables",
    )
    migrate_on_startup: bool = Field(
        default=True, description="Synchronize the database schema at startup"
    )
    destructive_changes: DestructivePolicy = Field(
        default=DestructivePolicy.SKIP,
        description="What to do with destructive schema changes (skip, allow, fail)",
    )

    # GraphQL
    graphql_path: str = Field(default="/v1/graphql", description="GraphQL endpoint path")
    graphql_max_limit: int = Field(
        default=1000, description="Upper bound on rows returned by a list query"
    )

    # Database configuration fields (flattened)
    pg_host: str = Field(default="localhost", alias="PG_HOST")
    pg_port: int = Field(default=5432, alias="PG_PORT")
    pg_user: str = Field(default="postgres", alias="PG_USER")
    pg_password: str = Field(default="", alias="PG_PASSWORD")
    pg_database_name: str = Field(default="postgres", alias="PG_DATABASE_NAME")
    pg_sslmode: str = Field(default="disable", alias="PG_SSLMODE")
    pg_pool_size: int = Field(default=5, alias="PG_POOL_SIZE")
    pg_timeout_seconds: int = Field(default=30, alias="PG_TIMEOUT_SECONDS")

    class Config:
        """Pydantic configuration."""

        env_prefix = ""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"

    @computed_field  # type: ignore
    @property
    def database(self) -> DatabaseConfig:
        """Create database configuration from individual fields."""
        return DatabaseConfig(
            host=self.pg_host,
            port=self.pg_port,
            user=self.pg_user,
            password=self.pg_password,
            database=self.pg_database_name,
            sslmode=self.pg_sslmode,
            pool_size=self.pg_pool_size,
            timeout_seconds=self.pg_timeout_seconds,
        )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


# Global configuration instance
config = APIConfig()
