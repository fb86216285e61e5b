"""GraphQL schema generation from declared tables.

For every table ``t`` the schema exposes:

- object type ``t`` with one field per column, plus relationship fields
  following foreign keys in both directions
- query fields ``t(where, order_by, limit, offset)`` and ``t_by_pk(...)``
- mutation fields ``insert_t``, ``insert_t_one``, ``update_t`` and ``delete_t``

Tables outside the ``public`` schema are prefixed with their schema name
(``audit_events``).
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
import re
from typing import Any
from uuid import UUID

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLField,
    GraphQLFloat,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInputType,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLOutputType,
    GraphQLResolveInfo,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLString,
    value_from_ast_untyped,
)

from ..core.logging import get_logger
from ..core.schema import Realm, Table
from ..core.types import FLOAT_TYPES, JSON_TYPES, STRING_TYPES, split_type
from ..database.interface import DatabaseInterface
from .compiler import QueryCompiler

logger = get_logger(__name__)

PUBLIC_SCHEMA = "public"
_NON_WORD = re.compile(r"\W+")

JSONScalar = GraphQLScalarType(
    name="JSON",
    description="Arbitrary JSON value",
    serialize=lambda value: value,
    parse_value=lambda value: value,
    parse_literal=value_from_ast_untyped,
)

OrderByEnum = GraphQLEnumType(
    "order_by",
    {
        "asc": GraphQLEnumValue("asc", description="ascending, nulls last"),
        "asc_nulls_first": GraphQLEnumValue("asc_nulls_first"),
        "asc_nulls_last": GraphQLEnumValue("asc_nulls_last"),
        "desc": GraphQLEnumValue("desc", description="descending, nulls first"),
        "desc_nulls_first": GraphQLEnumValue("desc_nulls_first"),
        "desc_nulls_last": GraphQLEnumValue("desc_nulls_last"),
    },
    description="Column ordering options",
)


def type_name(table: Table) -> str:
    """GraphQL type name for a table."""
    if table.schema == PUBLIC_SCHEMA:
        return table.name
    return f"{table.schema}_{table.name}"


def graphql_scalar(canonical: str) -> GraphQLScalarType:
    """GraphQL scalar for a canonical column type.

    BIGINT is exposed as String since GraphQL Int is 32-bit.
    """
    name, _ = split_type(canonical)
    if name in ("INTEGER", "SMALLINT"):
        return GraphQLInt
    if name in FLOAT_TYPES:
        return GraphQLFloat
    if name == "BOOLEAN":
        return GraphQLBoolean
    if name in JSON_TYPES:
        return JSONScalar
    return GraphQLString


def serialize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, memoryview)):
        return "\\x" + bytes(value).hex()
    return value


def serialize_row(row: dict[str, Any]) -> dict[str, Any]:
    """Convert a database row into GraphQL-serializable values."""
    return {key: serialize_value(value) for key, value in row.items()}


def _database(info: GraphQLResolveInfo) -> DatabaseInterface:
    return info.context["database"]


@dataclass
class Relationship:
    """A foreign key exposed as a field on one side of the reference."""

    field_name: str
    target: Table
    source_columns: list[str]
    target_columns: list[str]
    many: bool


class SchemaBuilder:
    """Builds a ``GraphQLSchema`` for every table of a realm."""

    def __init__(self, realm: Realm, compiler: QueryCompiler):
        self.realm = realm
        self.compiler = compiler
        self.objects: dict[str, GraphQLObjectType] = {}
        self.bool_exps: dict[str, GraphQLInputObjectType] = {}
        self.order_bys: dict[str, GraphQLInputObjectType] = {}
        self.relationships: dict[str, list[Relationship]] = {}
        self._comparison_exps: dict[str, GraphQLInputObjectType] = {}

    def build(self) -> GraphQLSchema:
        tables = self.realm.iter_tables()
        self.relationships = self._collect_relationships(tables)

        for table in tables:
            self.bool_exps[table.qualified_name] = self._bool_exp(table)
            self.order_bys[table.qualified_name] = self._order_by(table)
            self.objects[table.qualified_name] = self._object_type(table)

        query_fields: dict[str, GraphQLField] = {}
        mutation_fields: dict[str, GraphQLField] = {}
        for table in tables:
            query_fields.update(self._query_fields(table))
            mutation_fields.update(self._mutation_fields(table))

        if not query_fields:
            query_fields["no_queries_available"] = GraphQLField(
                GraphQLNonNull(GraphQLString),
                resolve=lambda root, info: "There are no tables declared",
            )

        logger.debug(
            "Built GraphQL schema",
            types=len(self.objects),
            queries=len(query_fields),
            mutations=len(mutation_fields),
        )
        return GraphQLSchema(
            query=GraphQLObjectType("query_root", query_fields),
            mutation=(
                GraphQLObjectType("mutation_root", mutation_fields)
                if mutation_fields
                else None
            ),
        )

    def _collect_relationships(self, tables: list[Table]) -> dict[str, list[Relationship]]:
        relationships: dict[str, list[Relationship]] = {t.qualified_name: [] for t in tables}
        taken: dict[str, set[str]] = {
            t.qualified_name: {c.name for c in t.columns} for t in tables
        }

        for table in tables:
            for fk in table.foreign_keys:
                target = self.realm.table(fk.ref_schema or table.schema, fk.ref_table)
                if target is None:
                    continue

                name = fk.name
                if len(fk.columns) == 1 and fk.columns[0].endswith("_id"):
                    name = fk.columns[0][: -len("_id")]
                if name in taken[table.qualified_name]:
                    name = fk.name
                taken[table.qualified_name].add(name)
                relationships[table.qualified_name].append(
                    Relationship(name, target, fk.columns, fk.ref_columns, many=False)
                )

                reverse = type_name(table)
                if reverse in taken[target.qualified_name]:
                    reverse = f"{reverse}_by_{fk.name}"
                taken[target.qualified_name].add(reverse)
                relationships[target.qualified_name].append(
                    Relationship(reverse, table, fk.ref_columns, fk.columns, many=True)
                )

        return relationships

    def _comparison_exp(self, column_type: str) -> GraphQLInputObjectType:
        scalar = graphql_scalar(column_type)
        base, _ = split_type(column_type)
        is_text = base in STRING_TYPES
        if scalar is GraphQLString and not is_text:
            # non-text types rendered as String get their own input without _like
            name = _NON_WORD.sub("_", base.lower())
        else:
            name = scalar.name
        if name in self._comparison_exps:
            return self._comparison_exps[name]

        fields: dict[str, GraphQLInputField] = {
            "_is_null": GraphQLInputField(GraphQLBoolean),
            "_eq": GraphQLInputField(scalar),
            "_neq": GraphQLInputField(scalar),
        }
        if scalar is not JSONScalar:
            fields.update(
                {
                    "_gt": GraphQLInputField(scalar),
                    "_gte": GraphQLInputField(scalar),
                    "_lt": GraphQLInputField(scalar),
                    "_lte": GraphQLInputField(scalar),
                    "_in": GraphQLInputField(GraphQLList(GraphQLNonNull(scalar))),
                    "_nin": GraphQLInputField(GraphQLList(GraphQLNonNull(scalar))),
                }
            )
        if is_text:
            fields["_like"] = GraphQLInputField(GraphQLString)
            fields["_ilike"] = GraphQLInputField(GraphQLString)

        exp = GraphQLInputObjectType(f"{name}_comparison_exp", fields)
        self._comparison_exps[name] = exp
        return exp

    def _bool_exp(self, table: Table) -> GraphQLInputObjectType:
        name = f"{type_name(table)}_bool_exp"

        def fields() -> dict[str, GraphQLInputField]:
            exp = self.bool_exps[table.qualified_name]
            result = {
                "_and": GraphQLInputField(GraphQLList(GraphQLNonNull(exp))),
                "_or": GraphQLInputField(GraphQLList(GraphQLNonNull(exp))),
                "_not": GraphQLInputField(exp),
            }
            for column in table.columns:
                result[column.name] = GraphQLInputField(
                    self._comparison_exp(column.type)
                )
            return result

        return GraphQLInputObjectType(name, fields)

    def _order_by(self, table: Table) -> GraphQLInputObjectType:
        return GraphQLInputObjectType(
            f"{type_name(table)}_order_by",
            {column.name: GraphQLInputField(OrderByEnum) for column in table.columns},
        )

    def _values_input(self, table: Table, suffix: str) -> GraphQLInputObjectType:
        return GraphQLInputObjectType(
            f"{type_name(table)}_{suffix}",
            {
                column.name: GraphQLInputField(graphql_scalar(column.type))
                for column in table.columns
            },
        )

    def _list_args(self, table: Table) -> dict[str, GraphQLArgument]:
        return {
            "where": GraphQLArgument(self.bool_exps[table.qualified_name]),
            "order_by": GraphQLArgument(
                GraphQLList(GraphQLNonNull(self.order_bys[table.qualified_name]))
            ),
            "limit": GraphQLArgument(GraphQLInt),
            "offset": GraphQLArgument(GraphQLInt),
        }

    def _object_type(self, table: Table) -> GraphQLObjectType:
        def fields() -> dict[str, GraphQLField]:
            result: dict[str, GraphQLField] = {}
            for column in table.columns:
                scalar: GraphQLOutputType = graphql_scalar(column.type)
                result[column.name] = GraphQLField(
                    scalar if column.nullable else GraphQLNonNull(scalar),
                    description=column.comment,
                )
            for relationship in self.relationships[table.qualified_name]:
                result[relationship.field_name] = self._relationship_field(relationship)
            return result

        return GraphQLObjectType(
            type_name(table), fields, description=table.attrs.get("comment")
        )

    def _relationship_field(self, relationship: Relationship) -> GraphQLField:
        target = relationship.target.qualified_name
        compiler = self.compiler

        if relationship.many:

            async def resolve_many(root: dict, info: GraphQLResolveInfo, **args: Any):
                values = [root.get(c) for c in relationship.source_columns]
                statement = compiler.select_matching(
                    target, relationship.target_columns, values, **args
                )
                rows = await _database(info).fetch_all(statement)
                return [serialize_row(row) for row in rows]

            return GraphQLField(
                GraphQLNonNull(GraphQLList(GraphQLNonNull(self.objects[target]))),
                args=self._list_args(relationship.target),
                resolve=resolve_many,
            )

        async def resolve_one(root: dict, info: GraphQLResolveInfo):
            values = [root.get(c) for c in relationship.source_columns]
            if any(value is None for value in values):
                return None
            statement = compiler.select_matching(
                target, relationship.target_columns, values, limit=1
            )
            rows = await _database(info).fetch_all(statement)
            return serialize_row(rows[0]) if rows else None

        return GraphQLField(self.objects[target], resolve=resolve_one)

    def _query_fields(self, table: Table) -> dict[str, GraphQLField]:
        qualified = table.qualified_name
        name = type_name(table)
        compiler = self.compiler
        obj = self.objects[qualified]

        async def resolve_list(root: Any, info: GraphQLResolveInfo, **args: Any):
            rows = await _database(info).fetch_all(compiler.select(qualified, **args))
            return [serialize_row(row) for row in rows]

        fields = {
            name: GraphQLField(
                GraphQLNonNull(GraphQLList(GraphQLNonNull(obj))),
                args=self._list_args(table),
                resolve=resolve_list,
                description=f"fetch data from the table {qualified}",
            )
        }

        if table.primary_key:

            async def resolve_by_pk(root: Any, info: GraphQLResolveInfo, **key: Any):
                rows = await _database(info).fetch_all(compiler.select_by_pk(qualified, key))
                return serialize_row(rows[0]) if rows else None

            fields[f"{name}_by_pk"] = GraphQLField(
                obj,
                args={
                    column: GraphQLArgument(
                        GraphQLNonNull(graphql_scalar(table.column(column).type))  # type: ignore[union-attr]
                    )
                    for column in table.primary_key.columns
                },
                resolve=resolve_by_pk,
                description=f"fetch data from the table {qualified} using primary key columns",
            )

        return fields

    def _mutation_fields(self, table: Table) -> dict[str, GraphQLField]:
        qualified = table.qualified_name
        name = type_name(table)
        compiler = self.compiler
        obj = self.objects[qualified]
        insert_input = self._values_input(table, "insert_input")
        set_input = self._values_input(table, "set_input")
        bool_exp = GraphQLNonNull(self.bool_exps[qualified])

        response = GraphQLObjectType(
            f"{name}_mutation_response",
            {
                "affected_rows": GraphQLField(GraphQLNonNull(GraphQLInt)),
                "returning": GraphQLField(
                    GraphQLNonNull(GraphQLList(GraphQLNonNull(obj)))
                ),
            },
        )

        def mutation_response(rows: list[dict[str, Any]]) -> dict[str, Any]:
            return {
                "affected_rows": len(rows),
                "returning": [serialize_row(row) for row in rows],
            }

        async def resolve_insert(root: Any, info: GraphQLResolveInfo, objects: list[dict]):
            rows = await _database(info).execute_many(compiler.insert(qualified, objects))
            return mutation_response(rows)

        async def resolve_insert_one(root: Any, info: GraphQLResolveInfo, **args: Any):
            rows = await _database(info).execute_many(
                compiler.insert(qualified, [args["object"]])
            )
            return serialize_row(rows[0]) if rows else None

        async def resolve_update(root: Any, info: GraphQLResolveInfo, **args: Any):
            statement = compiler.update(qualified, args["where"], args["_set"])
            rows = await _database(info).execute_many([statement])
            return mutation_response(rows)

        async def resolve_delete(root: Any, info: GraphQLResolveInfo, where: dict):
            rows = await _database(info).execute_many([compiler.delete(qualified, where)])
            return mutation_response(rows)

        insert_type: GraphQLInputType = GraphQLNonNull(insert_input)
        return {
            f"insert_{name}": GraphQLField(
                response,
                args={"objects": GraphQLArgument(GraphQLNonNull(GraphQLList(insert_type)))},
                resolve=resolve_insert,
                description=f"insert data into the table {qualified}",
            ),
            f"insert_{name}_one": GraphQLField(
                obj,
                args={"object": GraphQLArgument(insert_type)},
                resolve=resolve_insert_one,
                description=f"insert a single row into the table {qualified}",
            ),
            f"update_{name}": GraphQLField(
                response,
                args={
                    "where": GraphQLArgument(bool_exp),
                    "_set": GraphQLArgument(GraphQLNonNull(set_input)),
                },
                resolve=resolve_update,
                description=f"update data of the table {qualified}",
            ),
            f"delete_{name}": GraphQLField(
                response,
                args={"where": GraphQLArgument(bool_exp)},
                resolve=resolve_delete,
                description=f"delete data from the table {qualified}",
            ),
        }


def build_schema(realm: Realm, compiler: QueryCompiler) -> GraphQLSchema:
    """Build the GraphQL schema for ``realm``."""
    return SchemaBuilder(realm, compiler).build()
