"""Abstract database interface.

Schema synchronization and GraphQL execution talk to the database only
through this interface, so both can be exercised with mock implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from sqlalchemy.engine import Connection
from sqlalchemy.sql import Executable

from .models import HealthCheckResult


class DatabaseInterface(ABC):
    """Async access to the PostgreSQL database."""

    # Connection Management

    @abstractmethod
    async def connect(self) -> None:
        """Create the engine and verify connectivity.

        Raises:
            DatabaseConnectionError: If the database cannot be reached
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Dispose of pooled connections.

        Should not raise exceptions - errors should be logged.
        """
        pass

    @abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """Check database health and return typed status."""
        pass

    # Statement Execution

    @abstractmethod
    async def fetch_all(self, statement: Executable) -> list[dict[str, Any]]:
        """Execute one statement in its own transaction and return its rows.

        Raises:
            DatabaseQueryError: If execution fails
        """
        pass

    @abstractmethod
    async def execute_many(self, statements: list[Executable]) -> list[dict[str, Any]]:
        """Execute statements in a single transaction.

        Returns:
            Rows returned by all statements, in order

        Raises:
            DatabaseQueryError: If any statement fails (nothing is committed)
        """
        pass

    @abstractmethod
    async def run_sync(self, fn: Callable[[Connection], Any]) -> Any:
        """Run ``fn`` with a synchronous connection inside one transaction.

        Used for APIs that only exist on the sync side, such as the
        SQLAlchemy inspector and alembic operations. The transaction commits
        if ``fn`` returns and rolls back if it raises.

        Raises:
            DatabaseOperationError: If the database rejects the operation
        """
        pass
