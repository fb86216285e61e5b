"""Schema change detection.

This module compares the live realm with the desired realm and produces an
ordered change tree: schema-level additions and drops at the top, and
``ModifySchema``/``ModifyTable`` nodes grouping the changes scoped to an
existing schema or table.
"""

from typing import Any

from ..core.schema import ForeignKey, Index, Realm, Schema, Table
from ..core.types import normalize_check, normalize_default
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

_DEFAULT_REFERENTIAL_ACTION = "NO ACTION"


class SchemaChangeDetector:
    """Detects changes between the current and the desired realm."""

    def detect_changes(self, current: Realm, desired: Realm) -> list[Change]:
        """Compute the changes that turn ``current`` into ``desired``.

        Args:
            current: Realm introspected from the database
            desired: Realm loaded from the schema file

        Returns:
            Ordered list of changes (possibly nested)
        """
        changes: list[Change] = []

        for schema in desired.schemas:
            existing = current.schema(schema.name)
            if existing is None:
                changes.append(AddSchema(schema=schema))
                changes.extend(AddTable(table=table) for table in schema.tables)
                continue

            schema_changes = self._diff_schema(existing, schema)
            if schema_changes:
                changes.append(ModifySchema(schema=schema.name, changes=schema_changes))

        for schema in current.schemas:
            if desired.schema(schema.name) is None:
                changes.append(
                    DropSchema(
                        schema=schema,
                        changes=[DropTable(table=table) for table in schema.tables],
                    )
                )

        return changes

    def _diff_schema(self, current: Schema, desired: Schema) -> list[Change]:
        """Table-level changes inside a schema present on both sides."""
        changes: list[Change] = []

        for table in desired.tables:
            existing = current.table(table.name)
            if existing is None:
                changes.append(AddTable(table=table))
                continue

            table_changes = self.diff_table(existing, table)
            if table_changes:
                changes.append(ModifyTable(table=table, changes=table_changes))

        for table in current.tables:
            if desired.table(table.name) is None:
                changes.append(DropTable(table=table))

        return changes

    def diff_table(self, current: Table, desired: Table) -> list[Change]:
        """Changes scoped to a single table.

        Order: attributes, columns, primary key, indexes, foreign keys, checks.
        """
        changes: list[Change] = []
        self._detect_attr_changes(current, desired, changes)
        self._detect_column_changes(current, desired, changes)
        self._detect_primary_key_changes(current, desired, changes)
        self._detect_index_changes(current, desired, changes)
        self._detect_foreign_key_changes(current, desired, changes)
        self._detect_check_changes(current, desired, changes)
        return changes

    def _detect_attr_changes(
        self, current: Table, desired: Table, changes: list[Change]
    ) -> None:
        for name, value in desired.attrs.items():
            if name not in current.attrs:
                changes.append(AddAttr(name=name, value=value))
            elif current.attrs[name] != value:
                changes.append(ModifyAttr(name=name, old=current.attrs[name], new=value))

        for name, value in current.attrs.items():
            if name not in desired.attrs:
                changes.append(DropAttr(name=name, value=value))

    def _detect_column_changes(
        self, current: Table, desired: Table, changes: list[Change]
    ) -> None:
        for column in desired.columns:
            existing = current.column(column.name)
            if existing is None:
                changes.append(AddColumn(column=column))
                continue

            attributes = []
            if existing.type != column.type:
                attributes.append("type")
            if existing.nullable != column.nullable:
                attributes.append("nullable")
            if normalize_default(existing.default) != normalize_default(column.default):
                attributes.append("default")
            if (existing.comment or None) != (column.comment or None):
                attributes.append("comment")

            if attributes:
                changes.append(
                    ModifyColumn(old=existing, new=column, attributes=tuple(attributes))
                )

        for column in current.columns:
            if desired.column(column.name) is None:
                changes.append(DropColumn(column=column))

    def _detect_primary_key_changes(
        self, current: Table, desired: Table, changes: list[Change]
    ) -> None:
        old, new = current.primary_key, desired.primary_key

        if old is None and new is not None:
            changes.append(AddPrimaryKey(primary_key=new))
        elif old is not None and new is None:
            changes.append(DropPrimaryKey(primary_key=old))
        elif old is not None and new is not None:
            renamed = new.name is not None and new.name != old.name
            if old.columns != new.columns or renamed:
                changes.append(ModifyPrimaryKey(old=old, new=new))

    def _detect_index_changes(
        self, current: Table, desired: Table, changes: list[Change]
    ) -> None:
        existing = {index.name: index for index in current.indexes}
        wanted = {index.name: index for index in desired.indexes}

        for name, index in wanted.items():
            if name not in existing:
                changes.append(AddIndex(index=index))
            elif not self._indexes_equal(existing[name], index):
                changes.append(ModifyIndex(old=existing[name], new=index))

        for name, index in existing.items():
            if name not in wanted:
                changes.append(DropIndex(index=index))

    def _detect_foreign_key_changes(
        self, current: Table, desired: Table, changes: list[Change]
    ) -> None:
        existing = {fk.name: fk for fk in current.foreign_keys}
        wanted = {fk.name: fk for fk in desired.foreign_keys}

        for name, fk in wanted.items():
            if name not in existing:
                changes.append(AddForeignKey(foreign_key=fk))
            elif self._fk_signature(existing[name], current) != self._fk_signature(
                fk, desired
            ):
                changes.append(ModifyForeignKey(old=existing[name], new=fk))

        for name, fk in existing.items():
            if name not in wanted:
                changes.append(DropForeignKey(foreign_key=fk))

    def _detect_check_changes(
        self, current: Table, desired: Table, changes: list[Change]
    ) -> None:
        existing = {check.name: check for check in current.checks}
        wanted = {check.name: check for check in desired.checks}

        for name, check in wanted.items():
            if name not in existing:
                changes.append(AddCheck(check=check))
            elif normalize_check(existing[name].expr) != normalize_check(check.expr):
                changes.append(ModifyCheck(old=existing[name], new=check))

        for name, check in existing.items():
            if name not in wanted:
                changes.append(DropCheck(check=check))

    def _indexes_equal(self, old: Index, new: Index) -> bool:
        return old.columns == new.columns and old.unique == new.unique

    def _fk_signature(self, fk: ForeignKey, table: Table) -> tuple[Any, ...]:
        return (
            tuple(fk.columns),
            fk.ref_schema or table.schema,
            fk.ref_table,
            tuple(fk.ref_columns),
            fk.on_delete or _DEFAULT_REFERENTIAL_ACTION,
            fk.on_update or _DEFAULT_REFERENTIAL_ACTION,
        )
