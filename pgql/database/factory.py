"""Database factory and configuration validation."""

from ..core.logging import get_logger
from .exceptions import DatabaseConfigurationError
from .interface import DatabaseInterface
from .models import DatabaseConfig
from .postgres import PostgresDatabase

logger = get_logger(__name__)

SUPPORTED_DRIVERS = ("postgresql+asyncpg",)
SUPPORTED_SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")


def create_database(config: DatabaseConfig) -> DatabaseInterface:
    """Create a database instance based on configuration.

    Args:
        config: Database configuration

    Returns:
        DatabaseInterface: Configured (not yet connected) database

    Raises:
        DatabaseConfigurationError: If the driver is unsupported
    """
    if config.driver not in SUPPORTED_DRIVERS:
        raise DatabaseConfigurationError(
            f"Unsupported database driver: {config.driver}. "
            f"Supported drivers: {', '.join(SUPPORTED_DRIVERS)}"
        )

    logger.info("Creating database", endpoint=config.display_endpoint)
    return PostgresDatabase(config)


def validate_database_config(config: DatabaseConfig) -> None:
    """Validate database configuration.

    Raises:
        DatabaseConfigurationError: If configuration is invalid
    """
    if not config.host:
        raise DatabaseConfigurationError("Database host is required (PG_HOST)")

    if not config.database:
        raise DatabaseConfigurationError(
            "Database name is required (PG_DATABASE_NAME)"
        )

    if not 0 < config.port < 65536:
        raise DatabaseConfigurationError(f"Invalid database port: {config.port}")

    if config.timeout_seconds <= 0:
        raise DatabaseConfigurationError("Timeout must be positive")

    if config.pool_size <= 0:
        raise DatabaseConfigurationError("Pool size must be positive")

    if config.sslmode not in SUPPORTED_SSL_MODES:
        raise DatabaseConfigurationError(
            f"Unsupported sslmode: {config.sslmode}. "
            f"Supported modes: {', '.join(SUPPORTED_SSL_MODES)}"
        )

    logger.debug("Database configuration validated", endpoint=config.display_endpoint)
