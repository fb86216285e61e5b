"""FastAPI dependency injection for the pgql API.

This module provides dependency injection functions for FastAPI endpoints:
database access, the loaded realm and the GraphQL engine.
"""

from typing import Annotated

from fastapi import Depends, HTTPException

from ..core.schema import Realm
from ..database import DatabaseInterface
from ..graphql import GraphQLEngine

# Global instances (set by the main application)
_database: DatabaseInterface | None = None
_realm: Realm | None = None
_engine: GraphQLEngine | None = None


def set_database(database: DatabaseInterface | None) -> None:
    """Set the global database instance.

    This is called during application startup to inject the database.
    """
    global _database  # noqa: PLW0603
    _database = database


def get_database() -> DatabaseInterface:
    """FastAPI dependency to get the current database.

    Raises:
        HTTPException: If the database is not initialized
    """
    if _database is None:
        raise HTTPException(
            status_code=500,
            detail="Database not initialized. Check server configuration.",
        )
    return _database


def get_database_unsafe() -> DatabaseInterface | None:
    """Get the database without raising HTTP exceptions.

    Used for internal operations like shutdown cleanup.
    """
    return _database


def set_realm(realm: Realm | None) -> None:
    """Set the realm the API serves."""
    global _realm  # noqa: PLW0603
    _realm = realm


def get_realm_unsafe() -> Realm | None:
    return _realm


def set_graphql_engine(engine: GraphQLEngine | None) -> None:
    """Set the global GraphQL engine."""
    global _engine  # noqa: PLW0603
    _engine = engine


def get_graphql_engine() -> GraphQLEngine:
    """FastAPI dependency to get the GraphQL engine.

    Raises:
        HTTPException: If the engine is not initialized
    """
    if _engine is None:
        raise HTTPException(
            status_code=500,
            detail="GraphQL engine not initialized. Check server configuration.",
        )
    return _engine


# Type aliases for dependency injection
DatabaseDep = Annotated[DatabaseInterface, Depends(get_database)]
GraphQLEngineDep = Annotated[GraphQLEngine, Depends(get_graphql_engine)]
