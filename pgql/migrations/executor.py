"""Migration execution.

Applies a change tree to the live database through alembic operations,
inside a single transaction.
"""

from dataclasses import dataclass, field

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy.engine import Connection

from ..core.logging import OperationLogger, get_logger
from ..database.exceptions import DatabaseError
from ..database.interface import DatabaseInterface
from .changes import Change
from .exceptions import MigrationApplyError
from .planner import DDLEmitter

logger = get_logger(__name__)


@dataclass
class MigrationResult:
    """Result of migration execution."""

    success: bool
    applied_changes: list[str] = field(default_factory=list)
    errors: list[str] | None = None


class MigrationExecutor:
    """Executes schema changes against the database."""

    def __init__(self, database: DatabaseInterface):
        """Initialize executor with a database.

        Args:
            database: Connected database to apply changes to
        """
        self.database = database

    async def apply_changes(self, changes: list[Change]) -> MigrationResult:
        """Apply changes in one transaction.

        Args:
            changes: Change tree to apply

        Returns:
            MigrationResult listing the applied operations

        Raises:
            MigrationPlanError: If a change cannot be translated to DDL
            MigrationApplyError: If the database rejects a statement; nothing
                is committed in that case
        """
        if not changes:
            return MigrationResult(success=True)

        applied: list[str] = []

        def apply(connection: Connection) -> None:
            context = MigrationContext.configure(connection=connection)
            DDLEmitter(Operations(context), applied.append).emit(changes)

        try:
            with OperationLogger(logger, "apply_changes", changes=len(changes)):
                await self.database.run_sync(apply)
        except DatabaseError as e:
            raise MigrationApplyError(
                f"Applying schema changes failed after {len(applied)} operations: {e}",
                cause=e,
            ) from e

        for description in applied:
            logger.info("Applied schema change", change=description)

        return MigrationResult(success=True, applied_changes=applied)
