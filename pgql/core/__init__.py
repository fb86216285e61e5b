"""Core functionality: schema model, schema loading, type mapping, logging."""

from .logging import (
    OperationLogger,
    StructlogMiddleware,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from .schema import (
    Check,
    Column,
    ForeignKey,
    Index,
    PrimaryKey,
    Realm,
    Schema,
    SchemaLoadError,
    SchemaValidationError,
    Table,
)
from .schema_loader import FileSchemaLoader, load_realm_from_string, validate_realm
from .types import canonical_type, sa_type_for

__all__ = [
    # Schema model
    "Check",
    "Column",
    "ForeignKey",
    "Index",
    "PrimaryKey",
    "Realm",
    "Schema",
    "Table",
    "SchemaLoadError",
    "SchemaValidationError",
    # Loading
    "FileSchemaLoader",
    "load_realm_from_string",
    "validate_realm",
    # Types
    "canonical_type",
    "sa_type_for",
    # Logging
    "OperationLogger",
    "StructlogMiddleware",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
]
