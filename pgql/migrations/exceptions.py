"""Migration-specific exceptions."""

from typing import Any


class MigrationError(Exception):
    """Base exception for inspecting, planning and applying schema changes."""

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize migration error.

        Args:
            message: Human-readable error description
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.cause = cause


class InspectionError(MigrationError):
    """Reading the live schema from the database failed."""

    pass


class MigrationPlanError(MigrationError):
    """A change tree could not be translated into DDL.

    Raised when:
    - A table-scoped change appears outside of a table
    - A change kind has no DDL translation
    """

    pass


class MigrationApplyError(MigrationError):
    """Executing the planned DDL failed; the transaction was rolled back."""

    pass


class DestructiveChangeError(MigrationError):
    """Destructive changes were found while the policy forbids them."""

    def __init__(self, message: str, changes: list[Any]):
        super().__init__(message)
        self.changes = changes
