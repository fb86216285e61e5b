"""Health check router for the pgql API.

This module provides HTTP endpoints for health checking and system status
reporting.
"""

from typing import Any

from fastapi import APIRouter, HTTPException

from ...database import HealthCheckResult, HealthStatus
from .dependencies import HealthServiceDep

router = APIRouter()


@router.get("/health", response_model=HealthCheckResult)
async def health_check(health_service: HealthServiceDep) -> HealthCheckResult:
    """Health check endpoint for monitoring and Docker health checks.

    Returns database connectivity, server version and response time.
    """
    try:
        return await health_service.get_health()

    except Exception as e:
        # Return unhealthy status with error details
        return HealthCheckResult(
            status=HealthStatus.ERROR,
            response_time_ms=0.0,
            backend_version=None,
            additional_info={
                "error": str(e),
                "api_status": "running",
                "database_status": "error",
            },
        )


@router.get("/status")
async def detailed_status(health_service: HealthServiceDep) -> dict[str, Any]:
    """Detailed status endpoint for debugging and development.

    Provides information about the API server, the database connection
    and the schemas served over GraphQL.
    """
    try:
        return await health_service.get_detailed_status()
    except Exception as e:
        raise HTTPException(
            status_code=500, detail=f"Failed to retrieve detailed status: {e!r}"
        ) from e
