"""Live schema introspection.

Reads the current structure of the database through SQLAlchemy's inspector
into the same ``Realm`` model the schema file is loaded into.
"""

from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection
from sqlalchemy.engine.reflection import Inspector

from ..core.logging import OperationLogger, get_logger
from ..core.schema import (
    Check,
    Column,
    ForeignKey,
    Index,
    PrimaryKey,
    Realm,
    Schema,
    Table,
)
from ..core.types import reflected_type_name
from ..database.exceptions import DatabaseError
from ..database.interface import DatabaseInterface
from .exceptions import InspectionError

logger = get_logger(__name__)

SYSTEM_SCHEMAS = frozenset({"information_schema", "pg_catalog", "pg_toast"})


class RealmInspector:
    """Builds a Realm from a live database connection."""

    def inspect_realm(
        self, connection: Connection, schemas: list[str] | None = None
    ) -> Realm:
        """Inspect the given schemas, or every non-system schema.

        Args:
            connection: Synchronous SQLAlchemy connection
            schemas: Optional schema names to restrict inspection to; names
                that do not exist in the database are skipped

        Returns:
            Realm describing the live database
        """
        inspector = sa.inspect(connection)
        available = [
            name
            for name in inspector.get_schema_names()
            if name not in SYSTEM_SCHEMAS and not name.startswith("pg_")
        ]

        if schemas is None:
            names = available
        else:
            names = [name for name in schemas if name in available]

        return Realm(schemas=[self._inspect_schema(inspector, name) for name in names])

    def _inspect_schema(self, inspector: Inspector, schema: str) -> Schema:
        tables = [
            self._inspect_table(inspector, schema, name)
            for name in inspector.get_table_names(schema=schema)
        ]
        return Schema(name=schema, tables=tables)

    def _inspect_table(self, inspector: Inspector, schema: str, name: str) -> Table:
        columns = [
            Column(
                name=column["name"],
                type=reflected_type_name(column["type"]),
                nullable=bool(column["nullable"]),
                default=column.get("default"),
                comment=column.get("comment"),
            )
            for column in inspector.get_columns(name, schema=schema)
        ]

        primary_key = None
        pk = inspector.get_pk_constraint(name, schema=schema)
        if pk and pk.get("constrained_columns"):
            primary_key = PrimaryKey(
                columns=list(pk["constrained_columns"]), name=pk.get("name")
            )

        indexes = self._inspect_indexes(inspector, schema, name)

        foreign_keys = [
            self._to_foreign_key(fk, inspector.default_schema_name or schema)
            for fk in inspector.get_foreign_keys(name, schema=schema)
        ]

        checks = [
            Check(name=check["name"], expr=check["sqltext"])
            for check in inspector.get_check_constraints(name, schema=schema)
        ]

        attrs = {}
        comment = inspector.get_table_comment(name, schema=schema).get("text")
        if comment is not None:
            attrs["comment"] = comment

        return Table(
            name=name,
            schema=schema,
            columns=columns,
            primary_key=primary_key,
            indexes=indexes,
            foreign_keys=foreign_keys,
            checks=checks,
            attrs=attrs,
        )

    def _inspect_indexes(
        self, inspector: Inspector, schema: str, table: str
    ) -> list[Index]:
        indexes = []
        for index in inspector.get_indexes(table, schema=schema):
            # Backing indexes of unique constraints are reported below.
            if "duplicates_constraint" in index:
                continue
            column_names = index.get("column_names") or []
            # Expression indexes cannot be described declaratively.
            if not column_names or any(c is None for c in column_names):
                continue
            indexes.append(
                Index(
                    name=index["name"],
                    columns=list(column_names),
                    unique=bool(index.get("unique")),
                )
            )

        for constraint in inspector.get_unique_constraints(table, schema=schema):
            indexes.append(
                Index(
                    name=constraint["name"],
                    columns=list(constraint["column_names"]),
                    unique=True,
                )
            )
        return indexes

    def _to_foreign_key(self, fk: dict[str, Any], default_schema: str) -> ForeignKey:
        options = fk.get("options") or {}
        return ForeignKey(
            name=fk["name"],
            columns=list(fk["constrained_columns"]),
            ref_table=fk["referred_table"],
            ref_columns=list(fk["referred_columns"]),
            ref_schema=fk.get("referred_schema") or default_schema,
            on_delete=_upper_or_none(options.get("ondelete")),
            on_update=_upper_or_none(options.get("onupdate")),
        )


def _upper_or_none(value: str | None) -> str | None:
    return value.upper() if value else None


async def inspect_database(
    database: DatabaseInterface, schemas: list[str] | None = None
) -> Realm:
    """Inspect the live realm through an async database.

    Raises:
        InspectionError: If the database cannot be inspected
    """
    inspector = RealmInspector()
    try:
        with OperationLogger(logger, "inspect_realm", schemas=schemas):
            return await database.run_sync(
                lambda connection: inspector.inspect_realm(connection, schemas)
            )
    except DatabaseError as e:
        raise InspectionError(f"Failed to inspect database: {e}", cause=e) from e
