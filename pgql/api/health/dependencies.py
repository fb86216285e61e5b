"""Health-specific dependencies for the FastAPI health endpoints."""

from typing import Annotated

from fastapi import Depends

from ..dependencies import DatabaseDep, get_realm_unsafe
from .service import HealthService


def get_health_service(database: DatabaseDep) -> HealthService:
    """FastAPI dependency to get the health service.

    Args:
        database: Injected database dependency

    Returns:
        HealthService: Configured health service instance
    """
    return HealthService(database, get_realm_unsafe())


# Type alias for health service dependency injection
HealthServiceDep = Annotated[HealthService, Depends(get_health_service)]
