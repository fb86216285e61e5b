"""FastAPI application entry point for the pgql API.

This module creates and configures the FastAPI application: it synchronizes
the database schema with the declared schema file at startup and serves
GraphQL over the declared tables.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core import FileSchemaLoader, StructlogMiddleware, configure_logging, get_logger
from ..database import create_database, validate_database_config
from ..graphql import GraphQLEngine
from ..migrations import SchemaSynchronizer
from .config import config
from .dependencies import (
    get_database_unsafe,
    set_database,
    set_graphql_engine,
    set_realm,
)
from .graphql.router import create_graphql_router
from .health.router import router as health_router

# Configure structured logging
configure_logging(
    environment=config.environment,
    log_level=config.log_level,
    json_logs=config.json_logs or config.is_production,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown."""
    # Startup: connect, synchronize the schema, build the GraphQL engine
    try:
        logger.info(
            "Starting pgql API...",
            environment=config.environment,
            log_level=config.log_level,
        )

        validate_database_config(config.database)
        database = create_database(config.database)
        await database.connect()
        set_database(database)

        realm = await FileSchemaLoader(config.schema_file).load_realm()
        logger.info(
            "Schema file loaded",
            schema_file=config.schema_file,
            schemas=realm.schema_names,
            tables=[table.qualified_name for table in realm.iter_tables()],
        )

        if config.migrate_on_startup:
            result = await SchemaSynchronizer(database).sync(
                realm, policy=config.destructive_changes
            )
            logger.info(
                "Schema synchronization finished",
                changes=len(result.changes),
                skipped=len(result.skipped_changes),
                statements=len(result.plan.statements),
            )
        else:
            logger.info("Schema synchronization disabled")

        set_realm(realm)
        set_graphql_engine(
            GraphQLEngine(realm, database, max_limit=config.graphql_max_limit)
        )

        logger.info(
            "pgql API started successfully",
            graphql_path=config.graphql_path,
            environment=config.environment,
        )

    except Exception as e:
        logger.error("Failed to start pgql API", error=str(e))
        database = get_database_unsafe()
        if database:
            await database.disconnect()
            set_database(None)
        raise

    yield

    # Shutdown: clean up the database connection pool
    try:
        logger.info("Shutting down pgql API...")
        set_graphql_engine(None)
        set_realm(None)

        database = get_database_unsafe()
        if database:
            await database.disconnect()
            set_database(None)
            logger.info("Database disconnected cleanly")
    except Exception as e:
        logger.warning("Error during database cleanup", error=str(e))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="pgql",
        description="""
        GraphQL over a declaratively managed PostgreSQL schema.

        **Features:**
        - Declarative YAML schema, synchronized at startup
        - Destructive changes skipped unless explicitly allowed
        - Generated GraphQL queries and mutations for every table
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add structured logging middleware for request tracing
    if config.log_requests:
        app.add_middleware(StructlogMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health_router, tags=["health"])
    app.include_router(create_graphql_router(config.graphql_path), tags=["graphql"])

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "name": "pgql",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
            "graphql": config.graphql_path,
        }

    return app


# Create the app instance
app = create_app()
