"""GraphQL request execution against the declared tables."""

from typing import Any

from graphql import ExecutionResult, GraphQLSchema, graphql

from ..core.logging import get_logger
from ..core.schema import Realm
from ..database.interface import DatabaseInterface
from .compiler import QueryCompiler
from .schema_builder import build_schema

logger = get_logger(__name__)


class GraphQLEngine:
    """Executes GraphQL requests.

    The schema is built once from the realm; every request runs with the
    database in its context so resolvers can issue statements.
    """

    def __init__(self, realm: Realm, database: DatabaseInterface, max_limit: int = 1000):
        self.realm = realm
        self.database = database
        self.compiler = QueryCompiler(realm, max_limit=max_limit)
        self.schema: GraphQLSchema = build_schema(realm, self.compiler)

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> ExecutionResult:
        """Parse, validate and execute a request.

        Returns:
            ExecutionResult; ``data`` is None when the request failed before
            or at the root of execution
        """
        result = await graphql(
            self.schema,
            query,
            variable_values=variables,
            operation_name=operation_name,
            context_value={"database": self.database},
        )

        if result.errors:
            logger.warning(
                "GraphQL request returned errors",
                operation=operation_name,
                errors=[error.message for error in result.errors],
                has_data=result.data is not None,
            )
        else:
            logger.debug("GraphQL request executed", operation=operation_name)

        return result
