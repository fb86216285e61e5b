"""PostgreSQL implementation of the database interface.

Uses SQLAlchemy's asyncio engine on top of asyncpg. Synchronous-only APIs
(inspection, alembic operations) are run through ``AsyncConnection.run_sync``.
"""

from collections.abc import Callable
import time
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable

from ..core.logging import get_logger
from .exceptions import (
    DatabaseConnectionError,
    DatabaseOperationError,
    DatabaseQueryError,
)
from .interface import DatabaseInterface
from .models import DatabaseConfig, HealthCheckResult, HealthStatus

logger = get_logger(__name__)

_SLOW_HEALTH_CHECK_MS = 1000


class PostgresDatabase(DatabaseInterface):
    """Async PostgreSQL database backed by a pooled SQLAlchemy engine."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._engine: AsyncEngine | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        if self._engine is not None:
            return

        engine = create_async_engine(
            self.config.url,
            pool_size=self.config.pool_size,
            pool_pre_ping=True,
            echo=self.config.echo,
            connect_args={
                "ssl": self.config.sslmode,
                "timeout": self.config.timeout_seconds,
            },
        )

        try:
            async with engine.connect() as connection:
                await connection.execute(sa.text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            raise DatabaseConnectionError(
                f"Cannot connect to {self.config.display_endpoint}: {e}", cause=e
            ) from e

        self._engine = engine
        logger.info("Connected to database", endpoint=self.config.display_endpoint)

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        try:
            await self._engine.dispose()
            logger.info("Database connections closed")
        except Exception as e:
            logger.warning("Error while disposing database engine", error=str(e))
        finally:
            self._engine = None

    async def health_check(self) -> HealthCheckResult:
        if self._engine is None:
            return HealthCheckResult(
                status=HealthStatus.DISCONNECTED,
                response_time_ms=0.0,
                additional_info={"endpoint": self.config.display_endpoint},
            )

        start = time.perf_counter()
        try:
            async with self._engine.connect() as connection:
                version = (await connection.execute(sa.text("SHOW server_version"))).scalar()
        except (SQLAlchemyError, OSError) as e:
            return HealthCheckResult(
                status=HealthStatus.ERROR,
                response_time_ms=round((time.perf_counter() - start) * 1000, 2),
                additional_info={
                    "endpoint": self.config.display_endpoint,
                    "error": str(e),
                },
            )

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        pool = self._engine.pool
        return HealthCheckResult(
            status=(
                HealthStatus.DEGRADED
                if elapsed_ms > _SLOW_HEALTH_CHECK_MS
                else HealthStatus.HEALTHY
            ),
            response_time_ms=elapsed_ms,
            backend_version=str(version) if version is not None else None,
            additional_info={
                "endpoint": self.config.display_endpoint,
                "pool": pool.status(),
            },
        )

    async def fetch_all(self, statement: Executable) -> list[dict[str, Any]]:
        try:
            async with self.engine.begin() as connection:
                result = await connection.execute(statement)
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            raise DatabaseQueryError(f"Query failed: {e}", cause=e) from e

    async def execute_many(self, statements: list[Executable]) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        try:
            async with self.engine.begin() as connection:
                for statement in statements:
                    result = await connection.execute(statement)
                    if result.returns_rows:
                        rows.extend(dict(row) for row in result.mappings().all())
        except SQLAlchemyError as e:
            raise DatabaseQueryError(f"Statement failed: {e}", cause=e) from e
        return rows

    async def run_sync(self, fn: Callable[[Connection], Any]) -> Any:
        try:
            async with self.engine.begin() as connection:
                return await connection.run_sync(fn)
        except SQLAlchemyError as e:
            raise DatabaseOperationError(f"Operation failed: {e}", cause=e) from e
