"""Health check service layer.

This module contains the business logic for health checks and system status,
separated from the HTTP routing layer for better testability.
"""

import time
from typing import Any

from ... import __version__
from ...core.schema import Realm
from ...database import DatabaseInterface, HealthCheckResult

# Global application start time
_app_start_time: float = time.time()


class HealthService:
    """Service class for health check operations."""

    def __init__(self, database: DatabaseInterface, realm: Realm | None = None):
        """Initialize health service with the database and the served realm."""
        self.database = database
        self.realm = realm

    async def get_health(self) -> HealthCheckResult:
        """Get basic health status from the database.

        Returns:
            HealthCheckResult: Typed health status from the database
        """
        return await self.database.health_check()

    def get_schema_summary(self) -> dict[str, Any]:
        """Summarize the schemas and tables exposed over GraphQL."""
        if self.realm is None:
            return {"loaded": False, "schemas": {}, "total_tables": 0}

        return {
            "loaded": True,
            "schemas": {
                schema.name: [table.name for table in schema.tables]
                for schema in self.realm.schemas
            },
            "total_tables": len(self.realm.iter_tables()),
        }

    async def get_detailed_status(self) -> dict[str, Any]:
        """Get detailed status for debugging and monitoring.

        Returns:
            Status including API, database and schema information
        """
        start_time = time.time()

        health = await self.get_health()

        response_time = (time.time() - start_time) * 1000

        # Calculate actual uptime since application start
        current_time = time.time()
        uptime_seconds = current_time - _app_start_time

        return {
            "api": {
                "name": "pgql",
                "version": __version__,
                "status": "healthy",
                "response_time_ms": round(response_time, 2),
            },
            "database": {
                "type": type(self.database).__name__,
                "status": health.status,
                "response_time_ms": health.response_time_ms,
                "backend_version": health.backend_version,
                "additional_info": health.additional_info,
            },
            "schema": self.get_schema_summary(),
            "environment": {
                "timestamp": current_time,
                "uptime_seconds": round(uptime_seconds, 2),
                "started_at": time.strftime(
                    "%Y-%m-%dT%H:%M:%S", time.gmtime(_app_start_time)
                ),
            },
        }
