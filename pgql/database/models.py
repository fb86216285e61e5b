"""Pydantic models for database configuration and status.

These models provide strongly-typed, validated data structures for the
database layer, ensuring type safety and clear contracts.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy.engine import URL


class HealthStatus(str, Enum):
    """Database health status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class HealthCheckResult(BaseModel):
    """Result of a database health check."""

    status: HealthStatus
    response_time_ms: float = Field(ge=0, description="Response time in milliseconds")
    backend_version: str | None = Field(None, description="Server version string")
    additional_info: dict[str, Any] = Field(
        default_factory=dict, description="Backend-specific health details"
    )

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class DatabaseConfig(BaseModel):
    """Connection settings for the PostgreSQL database."""

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    user: str = Field(default="postgres", description="Database user")
    password: str = Field(default="", description="Database password")
    database: str = Field(default="postgres", description="Database name")
    sslmode: str = Field(
        default="disable", description="SSL mode passed to the driver"
    )
    driver: str = Field(
        default="postgresql+asyncpg", description="SQLAlchemy driver name"
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    timeout_seconds: int = Field(default=30, description="Connect timeout")
    echo: bool = Field(default=False, description="Log every SQL statement")

    @property
    def url(self) -> URL:
        """SQLAlchemy URL built from the individual settings."""
        return URL.create(
            drivername=self.driver,
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    @property
    def display_endpoint(self) -> str:
        """Endpoint without credentials, safe for logs."""
        return f"{self.host}:{self.port}/{self.database}"
