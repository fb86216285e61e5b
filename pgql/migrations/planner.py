"""Translation of change trees into DDL.

``DDLEmitter`` walks a change tree and issues the matching alembic
operations. The same emitter drives both the offline planner (SQL text,
nothing executed) and the online executor.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
import io

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from ..core.logging import OperationLogger, get_logger
from ..core.schema import Column, ForeignKey, Table
from ..core.types import STRING_TYPES, sa_type_for, split_type
from .changes import (
    AddAttr,
    AddCheck,
    AddColumn,
    AddForeignKey,
    AddIndex,
    AddPrimaryKey,
    AddSchema,
    AddTable,
    Change,
    DropAttr,
    DropCheck,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropPrimaryKey,
    DropSchema,
    DropTable,
    ModifyAttr,
    ModifyCheck,
    ModifyColumn,
    ModifyForeignKey,
    ModifyIndex,
    ModifyPrimaryKey,
    ModifySchema,
    ModifyTable,
)
from .exceptions import MigrationPlanError

logger = get_logger(__name__)

SUPPORTED_ATTRS = frozenset({"comment"})

_PREPARER = postgresql.dialect().identifier_preparer


def build_column(column: Column) -> sa.Column:
    """SQLAlchemy column for a declared column."""
    return sa.Column(
        column.name,
        sa_type_for(column.type),
        nullable=column.nullable,
        server_default=sa.text(column.default) if column.default else None,
        comment=column.comment,
    )


def _using_clause(column: Column) -> str | None:
    """``USING`` expression for a column type change, if one is needed.

    Every type converts to a string type through PostgreSQL's assignment
    cast, which rejects values longer than the target length. An explicit
    cast would truncate them, so none is written for string targets.
    """
    name, _ = split_type(column.type)
    if name in STRING_TYPES:
        return None
    return f"{_PREPARER.quote(column.name)}::{column.type}"


class DDLEmitter:
    """Issues alembic operations for a change tree.

    Foreign key drops run first and foreign key additions run last, so
    constraints never point at tables or columns that do not exist yet (or
    any more) while the rest of the tree is applied.
    """

    def __init__(
        self,
        operations: Operations,
        on_statement: Callable[[str], None] | None = None,
    ):
        """Initialize emitter.

        Args:
            operations: alembic operations bound to an online or offline context
            on_statement: Called with a description after every operation
        """
        self.operations = operations
        self.on_statement = on_statement

    def emit(self, changes: list[Change]) -> None:
        """Issue operations for every change in the tree."""
        for table, fk in self._collect_foreign_key_drops(changes, None):
            self._drop_foreign_key(table, fk)

        deferred: list[tuple[Table, ForeignKey]] = []
        self._emit_all(changes, None, deferred)

        for table, fk in deferred:
            self._create_foreign_key(table, fk)

    def _record(self, description: str) -> None:
        if self.on_statement is not None:
            self.on_statement(description)

    def _collect_foreign_key_drops(
        self, changes: list[Change], table: Table | None
    ) -> list[tuple[Table, ForeignKey]]:
        drops: list[tuple[Table, ForeignKey]] = []
        for change in changes:
            if isinstance(change, ModifySchema):
                drops.extend(self._collect_foreign_key_drops(change.changes, None))
            elif isinstance(change, ModifyTable):
                drops.extend(
                    self._collect_foreign_key_drops(change.changes, change.table)
                )
            elif isinstance(change, DropForeignKey):
                drops.append((self._require_table(table, change), change.foreign_key))
            elif isinstance(change, ModifyForeignKey):
                drops.append((self._require_table(table, change), change.old))
        return drops

    def _emit_all(
        self,
        changes: list[Change],
        table: Table | None,
        deferred: list[tuple[Table, ForeignKey]],
    ) -> None:
        for change in changes:
            self._emit(change, table, deferred)

    def _emit(  # noqa: PLR0912, PLR0915
        self,
        change: Change,
        table: Table | None,
        deferred: list[tuple[Table, ForeignKey]],
    ) -> None:
        ops = self.operations

        if isinstance(change, AddSchema):
            ops.execute(sa.schema.CreateSchema(change.schema.name, if_not_exists=True))
            self._record(change.describe())

        elif isinstance(change, DropSchema):
            ops.execute(sa.schema.DropSchema(change.schema.name, cascade=True))
            self._record(change.describe())

        elif isinstance(change, ModifySchema):
            self._emit_all(change.changes, None, deferred)

        elif isinstance(change, AddTable):
            self._create_table(change.table)
            deferred.extend((change.table, fk) for fk in change.table.foreign_keys)

        elif isinstance(change, DropTable):
            ops.drop_table(change.table.name, schema=change.table.schema)
            self._record(change.describe())

        elif isinstance(change, ModifyTable):
            self._emit_all(change.changes, change.table, deferred)

        elif isinstance(change, DropForeignKey):
            # Already dropped up front.
            pass

        elif isinstance(change, ModifyForeignKey):
            deferred.append((self._require_table(table, change), change.new))

        elif isinstance(change, AddForeignKey):
            deferred.append((self._require_table(table, change), change.foreign_key))

        else:
            self._emit_table_change(change, self._require_table(table, change))

    def _emit_table_change(self, change: Change, table: Table) -> None:  # noqa: PLR0912
        ops = self.operations
        name, schema = table.name, table.schema

        if isinstance(change, AddColumn):
            ops.add_column(name, build_column(change.column), schema=schema)

        elif isinstance(change, DropColumn):
            ops.drop_column(name, change.column.name, schema=schema)

        elif isinstance(change, ModifyColumn):
            self._alter_column(table, change)

        elif isinstance(change, AddPrimaryKey):
            ops.create_primary_key(
                change.primary_key.name or f"{name}_pkey",
                name,
                change.primary_key.columns,
                schema=schema,
            )

        elif isinstance(change, DropPrimaryKey):
            ops.drop_constraint(
                change.primary_key.name or f"{name}_pkey",
                name,
                type_="primary",
                schema=schema,
            )

        elif isinstance(change, ModifyPrimaryKey):
            ops.drop_constraint(
                change.old.name or f"{name}_pkey", name, type_="primary", schema=schema
            )
            ops.create_primary_key(
                change.new.name or f"{name}_pkey", name, change.new.columns, schema=schema
            )

        elif isinstance(change, AddIndex):
            ops.create_index(
                change.index.name,
                name,
                change.index.columns,
                unique=change.index.unique,
                schema=schema,
            )

        elif isinstance(change, DropIndex):
            ops.drop_index(change.index.name, table_name=name, schema=schema)

        elif isinstance(change, ModifyIndex):
            ops.drop_index(change.old.name, table_name=name, schema=schema)
            ops.create_index(
                change.new.name,
                name,
                change.new.columns,
                unique=change.new.unique,
                schema=schema,
            )

        elif isinstance(change, AddCheck):
            ops.create_check_constraint(
                change.check.name, name, sa.text(change.check.expr), schema=schema
            )

        elif isinstance(change, DropCheck):
            ops.drop_constraint(change.check.name, name, type_="check", schema=schema)

        elif isinstance(change, ModifyCheck):
            ops.drop_constraint(change.old.name, name, type_="check", schema=schema)
            ops.create_check_constraint(
                change.new.name, name, sa.text(change.new.expr), schema=schema
            )

        elif isinstance(change, (AddAttr, ModifyAttr, DropAttr)):
            self._comment_change(table, change)

        else:
            raise MigrationPlanError(
                f"No DDL translation for change kind '{change.kind.value}'"
            )

        self._record(f"{table.qualified_name}: {change.describe()}")

    def _create_table(self, table: Table) -> None:
        elements: list[sa.SchemaItem] = [build_column(c) for c in table.columns]
        if table.primary_key:
            elements.append(
                sa.PrimaryKeyConstraint(
                    *table.primary_key.columns,
                    name=table.primary_key.name or f"{table.name}_pkey",
                )
            )
        elements.extend(
            sa.CheckConstraint(sa.text(check.expr), name=check.name)
            for check in table.checks
        )

        self.operations.create_table(
            table.name,
            *elements,
            schema=table.schema,
            comment=table.attrs.get("comment"),
        )
        self._record(f"Add table {table.qualified_name}")

        for index in table.indexes:
            self.operations.create_index(
                index.name,
                table.name,
                index.columns,
                unique=index.unique,
                schema=table.schema,
            )
            self._record(f"{table.qualified_name}: Add index {index.name}")

    def _alter_column(self, table: Table, change: ModifyColumn) -> None:
        old, new = change.old, change.new
        kwargs: dict = {
            "schema": table.schema,
            "existing_type": sa_type_for(old.type),
            "existing_nullable": old.nullable,
        }

        if "type" in change.attributes:
            kwargs["type_"] = sa_type_for(new.type)
            using = _using_clause(new)
            if using is not None:
                kwargs["postgresql_using"] = using
        if "nullable" in change.attributes:
            kwargs["nullable"] = new.nullable
        if "default" in change.attributes:
            kwargs["server_default"] = sa.text(new.default) if new.default else None
        if "comment" in change.attributes:
            kwargs["comment"] = new.comment
            kwargs["existing_comment"] = old.comment

        self.operations.alter_column(table.name, new.name, **kwargs)

    def _comment_change(self, table: Table, change: Change) -> None:
        attr_name = change.name  # type: ignore[attr-defined]
        if attr_name not in SUPPORTED_ATTRS:
            raise MigrationPlanError(
                f"Unsupported attribute '{attr_name}' on {table.qualified_name}"
            )

        if isinstance(change, AddAttr):
            self.operations.create_table_comment(
                table.name, change.value, schema=table.schema
            )
        elif isinstance(change, ModifyAttr):
            self.operations.create_table_comment(
                table.name, change.new, existing_comment=change.old, schema=table.schema
            )
        elif isinstance(change, DropAttr):
            self.operations.drop_table_comment(
                table.name, existing_comment=change.value, schema=table.schema
            )

    def _create_foreign_key(self, table: Table, fk: ForeignKey) -> None:
        self.operations.create_foreign_key(
            fk.name,
            table.name,
            fk.ref_table,
            fk.columns,
            fk.ref_columns,
            source_schema=table.schema,
            referent_schema=fk.ref_schema or table.schema,
            ondelete=fk.on_delete,
            onupdate=fk.on_update,
        )
        self._record(f"{table.qualified_name}: Add foreign key {fk.name}")

    def _drop_foreign_key(self, table: Table, fk: ForeignKey) -> None:
        self.operations.drop_constraint(
            fk.name, table.name, type_="foreignkey", schema=table.schema
        )
        self._record(f"{table.qualified_name}: Drop foreign key {fk.name}")

    def _require_table(self, table: Table | None, change: Change) -> Table:
        if table is None:
            raise MigrationPlanError(
                f"Change '{change.kind.value}' must be nested in a table change"
            )
        return table


@dataclass
class PlannedStatement:
    """One DDL statement of a plan with a description of what it does."""

    description: str
    sql: str


@dataclass
class MigrationPlan:
    """Ordered DDL statements for a change tree."""

    name: str
    statements: list[PlannedStatement] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.statements

    def to_sql(self) -> str:
        """Render the plan as a SQL script."""
        return "\n\n".join(
            f"-- {statement.description}\n{statement.sql}"
            for statement in self.statements
        )


class MigrationPlanner:
    """Builds SQL plans without touching the database."""

    def __init__(self, dialect_name: str = "postgresql"):
        self.dialect_name = dialect_name

    def plan_changes(self, changes: list[Change], name: str = "changes") -> MigrationPlan:
        """Render the DDL for ``changes`` as SQL text.

        Args:
            changes: Change tree to plan
            name: Name of the plan (used in logs and output)

        Returns:
            MigrationPlan with one statement per operation

        Raises:
            MigrationPlanError: If a change cannot be translated
        """
        buffer = io.StringIO()
        context = MigrationContext.configure(
            dialect_name=self.dialect_name,
            opts={"as_sql": True, "output_buffer": buffer},
        )
        plan = MigrationPlan(name=name)

        def record(description: str) -> None:
            sql = buffer.getvalue().strip()
            buffer.seek(0)
            buffer.truncate()
            if sql:
                plan.statements.append(PlannedStatement(description=description, sql=sql))

        with OperationLogger(logger, "plan_changes", plan=name):
            DDLEmitter(Operations(context), record).emit(changes)

        logger.debug("Planned changes", plan=name, statements=len(plan.statements))
        return plan
