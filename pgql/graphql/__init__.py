"""GraphQL schema generation and request execution over declared tables."""

from .compiler import QueryCompileError, QueryCompiler
from .engine import GraphQLEngine
from .schema_builder import SchemaBuilder, build_schema, graphql_scalar, type_name

__all__ = [
    "GraphQLEngine",
    "QueryCompileError",
    "QueryCompiler",
    "SchemaBuilder",
    "build_schema",
    "graphql_scalar",
    "type_name",
]
