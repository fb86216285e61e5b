"""Structured logging configuration for pgql.

This module configures structlog for consistent, machine-readable logging
across the schema sync, GraphQL and HTTP layers, with request-scoped context.
"""

import logging
import sys
import time
from typing import Any, TextIO
import uuid

import structlog
from structlog.typing import EventDict


def add_app_context(
    _logger: Any, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application-specific context to log events."""
    event_dict["service"] = "pgql"
    event_dict["component"] = event_dict.get("logger", "unknown")
    return event_dict


def add_correlation_id(
    _logger: Any, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add correlation ID for request tracing."""
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
    json_logs: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        environment: Application environment (development/production)
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR)
        json_logs: Whether to output JSON format logs
        stream: Where log lines are written (stdout when omitted)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Disable noisy loggers in production
    if environment == "production":
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("alembic").setLevel(logging.WARNING)

    if json_logs or environment == "production":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        add_correlation_id,
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables for request tracing."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


class StructlogMiddleware:
    """ASGI middleware for request logging and context management."""

    def __init__(self, app: Any, logger_name: str = "pgql.api.requests"):
        self.app = app
        self.logger = get_logger(logger_name)

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Process request with logging context."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = str(uuid.uuid4())[:8]
        bind_context(
            correlation_id=correlation_id,
            method=scope["method"],
            path=scope["path"],
        )

        self.logger.info(
            "Request started",
            method=scope["method"],
            path=scope["path"],
            correlation_id=correlation_id,
        )

        try:
            await self.app(scope, receive, send)
            self.logger.info("Request completed", correlation_id=correlation_id)
        except Exception as e:
            self.logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                correlation_id=correlation_id,
            )
            raise
        finally:
            clear_context()


class OperationLogger:
    """Times a database-facing operation and logs its outcome.

    Usable both as a sync and an async context manager.
    """

    def __init__(
        self, logger: structlog.stdlib.BoundLogger, operation: str, **context: Any
    ):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: float | None = None

    def __enter__(self) -> "OperationLogger":
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Operation started", operation=self.operation, **self.context
        )
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.start_time is None:
            return

        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        if exc_type is None:
            self.logger.info(
                "Operation completed",
                operation=self.operation,
                duration_ms=duration_ms,
                **self.context,
            )
        else:
            self.logger.error(
                "Operation failed",
                operation=self.operation,
                duration_ms=duration_ms,
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.context,
            )

    async def __aenter__(self) -> "OperationLogger":
        return self.__enter__()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)
