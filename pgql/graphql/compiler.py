"""Compilation of GraphQL field arguments into SQLAlchemy Core statements.

Every declared table gets a ``sqlalchemy.Table`` built from its declared
columns. Resolvers pass the already coerced GraphQL arguments (plain dicts
and lists) and get back a statement ready for the database layer.
"""

import operator
from collections.abc import Callable
from typing import Any

import sqlalchemy as sa
from sqlalchemy.sql import ColumnElement, Delete, Insert, Select, Update

from ..core.schema import Realm, Table
from ..core.types import coerce_value, sa_type_for


class QueryCompileError(ValueError):
    """Raised when field arguments cannot be turned into a statement."""

    pass


_COMPARATORS: dict[str, Callable[[Any, Any], ColumnElement]] = {
    "_eq": operator.eq,
    "_neq": operator.ne,
    "_gt": operator.gt,
    "_gte": operator.ge,
    "_lt": operator.lt,
    "_lte": operator.le,
}

_ORDER_DIRECTIONS: dict[str, tuple[Callable, Callable | None]] = {
    "asc": (sa.asc, None),
    "desc": (sa.desc, None),
    "asc_nulls_first": (sa.asc, sa.nulls_first),
    "asc_nulls_last": (sa.asc, sa.nulls_last),
    "desc_nulls_first": (sa.desc, sa.nulls_first),
    "desc_nulls_last": (sa.desc, sa.nulls_last),
}


class QueryCompiler:
    """Builds SELECT/INSERT/UPDATE/DELETE statements for declared tables.

    Tables are addressed by their qualified name (``schema.table``).
    """

    def __init__(self, realm: Realm, max_limit: int = 1000):
        self.realm = realm
        self.max_limit = max_limit
        self.metadata = sa.MetaData()
        self.tables: dict[str, sa.Table] = {}
        self.declared: dict[str, Table] = {}

        for table in realm.iter_tables():
            self.declared[table.qualified_name] = table
            self.tables[table.qualified_name] = sa.Table(
                table.name,
                self.metadata,
                *(
                    sa.Column(
                        column.name,
                        sa_type_for(column.type),
                        primary_key=bool(
                            table.primary_key
                            and column.name in table.primary_key.columns
                        ),
                    )
                    for column in table.columns
                ),
                schema=table.schema,
            )

    def table(self, qualified_name: str) -> sa.Table:
        try:
            return self.tables[qualified_name]
        except KeyError as e:
            raise QueryCompileError(f"Unknown table '{qualified_name}'") from e

    def where_clause(self, qualified_name: str, where: dict[str, Any] | None) -> ColumnElement:
        """Compile a boolean expression object into a WHERE clause.

        Column keys hold comparison objects (``{"_eq": 1}``); ``_and`` and
        ``_or`` hold lists of expressions and ``_not`` a single expression.
        An empty or missing expression matches every row.
        """
        if not where:
            return sa.true()

        table = self.table(qualified_name)
        declared = self.declared[qualified_name]
        clauses: list[ColumnElement] = []

        for key, value in where.items():
            if key == "_and":
                clauses.extend(self.where_clause(qualified_name, item) for item in value or [])
            elif key == "_or":
                parts = [self.where_clause(qualified_name, item) for item in value or []]
                if parts:
                    clauses.append(sa.or_(*parts))
            elif key == "_not":
                if value:
                    clauses.append(sa.not_(self.where_clause(qualified_name, value)))
            else:
                column = declared.column(key)
                if column is None:
                    raise QueryCompileError(f"Unknown column '{key}' on {qualified_name}")
                clauses.extend(self._comparisons(table.c[key], column.type, value or {}))

        if not clauses:
            return sa.true()
        if len(clauses) == 1:
            return clauses[0]
        return sa.and_(*clauses)

    def _comparisons(
        self, column: sa.Column, type_name: str, comparison: dict[str, Any]
    ) -> list[ColumnElement]:
        clauses = []
        for op, value in comparison.items():
            if op in _COMPARATORS:
                clauses.append(_COMPARATORS[op](column, coerce_value(type_name, value)))
            elif op == "_in":
                # null is an empty list: _in matches nothing, _nin everything
                clauses.append(column.in_([coerce_value(type_name, v) for v in value or []]))
            elif op == "_nin":
                clauses.append(
                    column.not_in([coerce_value(type_name, v) for v in value or []])
                )
            elif op == "_is_null":
                clauses.append(column.is_(None) if value else column.is_not(None))
            elif op == "_like":
                clauses.append(column.like(value))
            elif op == "_ilike":
                clauses.append(column.ilike(value))
            else:
                raise QueryCompileError(f"Unknown comparison operator '{op}'")
        return clauses

    def order_clauses(
        self, qualified_name: str, order_by: list[dict[str, str]] | None
    ) -> list[ColumnElement]:
        """ORDER BY terms; defaults to the primary key for stable paging."""
        table = self.table(qualified_name)
        declared = self.declared[qualified_name]

        if not order_by:
            if declared.primary_key:
                return [table.c[name].asc() for name in declared.primary_key.columns]
            return []

        terms = []
        for item in order_by:
            for name, direction in item.items():
                if declared.column(name) is None:
                    raise QueryCompileError(f"Unknown column '{name}' on {qualified_name}")
                if direction not in _ORDER_DIRECTIONS:
                    raise QueryCompileError(f"Unknown order direction '{direction}'")
                order, nulls = _ORDER_DIRECTIONS[direction]
                term = order(table.c[name])
                terms.append(nulls(term) if nulls else term)
        return terms

    def select(
        self,
        qualified_name: str,
        where: dict[str, Any] | None = None,
        order_by: list[dict[str, str]] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Select:
        """Compile a list query into a single SELECT.

        ``limit`` is capped at ``max_limit`` and applied even when omitted.
        """
        if limit is not None and limit < 0:
            raise QueryCompileError("limit must not be negative")
        if offset is not None and offset < 0:
            raise QueryCompileError("offset must not be negative")

        table = self.table(qualified_name)
        statement = (
            sa.select(table)
            .where(self.where_clause(qualified_name, where))
            .order_by(*self.order_clauses(qualified_name, order_by))
            .limit(self.max_limit if limit is None else min(limit, self.max_limit))
        )
        if offset:
            statement = statement.offset(offset)
        return statement

    def select_by_pk(self, qualified_name: str, key: dict[str, Any]) -> Select:
        """SELECT a single row by its primary key values."""
        declared = self.declared.get(qualified_name)
        if declared is None or declared.primary_key is None:
            raise QueryCompileError(f"{qualified_name} has no primary key")

        where = {name: {"_eq": key[name]} for name in declared.primary_key.columns}
        table = self.table(qualified_name)
        return sa.select(table).where(self.where_clause(qualified_name, where)).limit(1)

    def select_matching(
        self,
        qualified_name: str,
        columns: list[str],
        values: list[Any],
        where: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> Select:
        """SELECT rows whose ``columns`` equal ``values`` (relationship lookups).

        ``where`` and the remaining list arguments narrow the match further.
        """
        match: dict[str, Any] = {
            name: {"_eq": value} for name, value in zip(columns, values, strict=True)
        }
        if where:
            match = {"_and": [match, where]}
        return self.select(qualified_name, where=match, **kwargs)

    def _values(self, qualified_name: str, values: dict[str, Any]) -> dict[str, Any]:
        declared = self.declared[qualified_name]
        coerced = {}
        for name, value in values.items():
            column = declared.column(name)
            if column is None:
                raise QueryCompileError(f"Unknown column '{name}' on {qualified_name}")
            coerced[name] = coerce_value(column.type, value)
        return coerced

    def insert(self, qualified_name: str, objects: list[dict[str, Any]]) -> list[Insert]:
        """One INSERT ... RETURNING per object.

        Objects may set different columns, so they are not batched into a
        single multi-row VALUES list.
        """
        table = self.table(qualified_name)
        return [
            sa.insert(table).values(**self._values(qualified_name, obj)).returning(*table.c)
            for obj in objects
        ]

    def update(
        self, qualified_name: str, where: dict[str, Any], values: dict[str, Any]
    ) -> Update:
        """UPDATE ... SET ... WHERE ... RETURNING."""
        if not values:
            raise QueryCompileError("_set must name at least one column")
        table = self.table(qualified_name)
        return (
            sa.update(table)
            .where(self.where_clause(qualified_name, where))
            .values(**self._values(qualified_name, values))
            .returning(*table.c)
        )

    def delete(self, qualified_name: str, where: dict[str, Any]) -> Delete:
        """DELETE ... WHERE ... RETURNING."""
        table = self.table(qualified_name)
        return (
            sa.delete(table)
            .where(self.where_clause(qualified_name, where))
            .returning(*table.c)
        )
