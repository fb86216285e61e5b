"""Database access layer."""

from .exceptions import (
    DatabaseConfigurationError,
    DatabaseConnectionError,
    DatabaseError,
    DatabaseOperationError,
    DatabaseQueryError,
)
from .factory import create_database, validate_database_config
from .interface import DatabaseInterface
from .models import DatabaseConfig, HealthCheckResult, HealthStatus
from .postgres import PostgresDatabase

__all__ = [
    # Core interface
    "DatabaseInterface",
    # Implementations
    "PostgresDatabase",
    # Factory functions
    "create_database",
    "validate_database_config",
    # Models
    "DatabaseConfig",
    "HealthCheckResult",
    "HealthStatus",
    # Exceptions
    "DatabaseError",
    "DatabaseConfigurationError",
    "DatabaseConnectionError",
    "DatabaseOperationError",
    "DatabaseQueryError",
]
