"""pgql - declarative PostgreSQL schema sync with a GraphQL endpoint."""

__version__ = "0.1.0"

# Note: CLI and API components are imported on-demand to avoid loading the
# web stack for schema-only usage.

__all__ = [
    "__version__",
]
