"""Database-specific exceptions."""


class DatabaseError(Exception):
    """Base exception for all database operations.

    This is the parent class for all database-related errors,
    allowing callers to catch all database issues with a single except clause.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize database error.

        Args:
            message: Human-readable error description
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.cause = cause


class DatabaseConnectionError(DatabaseError):
    """Error connecting to or communicating with the database.

    Raised when:
    - Cannot establish a connection
    - Authentication failures
    - Network timeouts
    """

    pass


class DatabaseOperationError(DatabaseError):
    """Error performing a database operation outside of query execution."""

    pass


class DatabaseQueryError(DatabaseError):
    """Error executing a query.

    Raised when:
    - The statement is rejected by the server
    - Parameters cannot be bound
    - Constraint violations on writes
    """

    pass


class DatabaseConfigurationError(DatabaseError):
    """Error in database configuration.

    Raised when:
    - Required connection settings are missing
    - Values are out of valid range
    - Unsupported driver specified
    """

    pass
