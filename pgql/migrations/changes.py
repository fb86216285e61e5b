"""Schema change tree produced by the detector.

Each change is an immutable node tagged with a ``ChangeKind``. Composite
changes (``ModifySchema``, ``ModifyTable``) hold the ordered child changes
scoped to the object they modify; everything else is a leaf, except that
``DropSchema`` and ``DropTable`` may list the drops they cascade to.
"""

from dataclasses import asdict, dataclass, field, fields, is_dataclass
from typing import Any, ClassVar

from ..core.schema import Check, Column, ForeignKey, Index, PrimaryKey, Schema, Table
from .types import ChangeKind


@dataclass(frozen=True)
class Change:
    """Base class for all schema changes."""

    kind: ClassVar[ChangeKind]

    def describe(self) -> str:
        """Human-readable one-line summary."""
        return self.kind.value.replace("_", " ")


# Schema changes


@dataclass(frozen=True)
class AddSchema(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_SCHEMA

    schema: Schema

    def describe(self) -> str:
        return f"Add schema {self.schema.name}"


@dataclass(frozen=True)
class DropSchema(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_SCHEMA

    schema: Schema
    changes: list[Change] = field(default_factory=list)

    def describe(self) -> str:
        return f"Drop schema {self.schema.name}"


@dataclass(frozen=True)
class ModifySchema(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_SCHEMA

    schema: str
    changes: list[Change] = field(default_factory=list)

    def describe(self) -> str:
        return f"Modify schema {self.schema} ({len(self.changes)} changes)"


# Table changes


@dataclass(frozen=True)
class AddTable(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_TABLE

    table: Table

    def describe(self) -> str:
        return f"Add table {self.table.qualified_name}"


@dataclass(frozen=True)
class DropTable(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_TABLE

    table: Table
    changes: list[Change] = field(default_factory=list)

    def describe(self) -> str:
        return f"Drop table {self.table.qualified_name}"


@dataclass(frozen=True)
class ModifyTable(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_TABLE

    table: Table
    changes: list[Change] = field(default_factory=list)

    def describe(self) -> str:
        return f"Modify table {self.table.qualified_name} ({len(self.changes)} changes)"


# Column changes


@dataclass(frozen=True)
class AddColumn(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_COLUMN

    column: Column

    def describe(self) -> str:
        return f"Add column {self.column.name} ({self.column.type})"


@dataclass(frozen=True)
class DropColumn(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_COLUMN

    column: Column

    def describe(self) -> str:
        return f"Drop column {self.column.name}"


@dataclass(frozen=True)
class ModifyColumn(Change):
    """A column whose type, nullability, default or comment changed.

    ``attributes`` names the parts that differ.
    """

    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_COLUMN

    old: Column
    new: Column
    attributes: tuple[str, ...] = ()

    def describe(self) -> str:
        return f"Modify column {self.new.name} ({', '.join(self.attributes)})"


# Primary key changes


@dataclass(frozen=True)
class AddPrimaryKey(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_PRIMARY_KEY

    primary_key: PrimaryKey

    def describe(self) -> str:
        return f"Add primary key ({', '.join(self.primary_key.columns)})"


@dataclass(frozen=True)
class DropPrimaryKey(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_PRIMARY_KEY

    primary_key: PrimaryKey

    def describe(self) -> str:
        return f"Drop primary key ({', '.join(self.primary_key.columns)})"


@dataclass(frozen=True)
class ModifyPrimaryKey(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_PRIMARY_KEY

    old: PrimaryKey
    new: PrimaryKey

    def describe(self) -> str:
        return (
            f"Modify primary key ({', '.join(self.old.columns)}) -> "
            f"({', '.join(self.new.columns)})"
        )


# Index changes


@dataclass(frozen=True)
class AddIndex(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_INDEX

    index: Index

    def describe(self) -> str:
        unique = "unique " if self.index.unique else ""
        return f"Add {unique}index {self.index.name}"


@dataclass(frozen=True)
class DropIndex(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_INDEX

    index: Index

    def describe(self) -> str:
        return f"Drop index {self.index.name}"


@dataclass(frozen=True)
class ModifyIndex(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_INDEX

    old: Index
    new: Index

    def describe(self) -> str:
        return f"Modify index {self.new.name}"


# Foreign key changes


@dataclass(frozen=True)
class AddForeignKey(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_FOREIGN_KEY

    foreign_key: ForeignKey

    def describe(self) -> str:
        fk = self.foreign_key
        return f"Add foreign key {fk.name} -> {fk.ref_table}({', '.join(fk.ref_columns)})"


@dataclass(frozen=True)
class DropForeignKey(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_FOREIGN_KEY

    foreign_key: ForeignKey

    def describe(self) -> str:
        return f"Drop foreign key {self.foreign_key.name}"


@dataclass(frozen=True)
class ModifyForeignKey(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_FOREIGN_KEY

    old: ForeignKey
    new: ForeignKey

    def describe(self) -> str:
        return f"Modify foreign key {self.new.name}"


# Check constraint changes


@dataclass(frozen=True)
class AddCheck(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_CHECK

    check: Check

    def describe(self) -> str:
        return f"Add check {self.check.name}"


@dataclass(frozen=True)
class DropCheck(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_CHECK

    check: Check

    def describe(self) -> str:
        return f"Drop check {self.check.name}"


@dataclass(frozen=True)
class ModifyCheck(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_CHECK

    old: Check
    new: Check

    def describe(self) -> str:
        return f"Modify check {self.new.name}"


# Attribute changes (table comment)


@dataclass(frozen=True)
class AddAttr(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.ADD_ATTR

    name: str
    value: str

    def describe(self) -> str:
        return f"Add {self.name}"


@dataclass(frozen=True)
class DropAttr(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.DROP_ATTR

    name: str
    value: str

    def describe(self) -> str:
        return f"Drop {self.name}"


@dataclass(frozen=True)
class ModifyAttr(Change):
    kind: ClassVar[ChangeKind] = ChangeKind.MODIFY_ATTR

    name: str
    old: str
    new: str

    def describe(self) -> str:
        return f"Modify {self.name}"


def iter_changes(changes: list[Change]) -> list[tuple[int, Change]]:
    """Flatten a change tree depth-first into ``(depth, change)`` pairs."""
    flat: list[tuple[int, Change]] = []

    def walk(nodes: list[Change], depth: int) -> None:
        for change in nodes:
            flat.append((depth, change))
            walk(list(getattr(change, "changes", [])), depth + 1)

    walk(changes, 0)
    return flat


def change_to_dict(change: Change) -> dict[str, Any]:
    """Serialize a change (and its children) to plain data for JSON output."""
    data: dict[str, Any] = {"kind": change.kind.value, "summary": change.describe()}
    for f in fields(change):
        value = getattr(change, f.name)
        if f.name == "changes":
            data["changes"] = [change_to_dict(child) for child in value]
        elif f.name in ("schema", "table") and is_dataclass(value):
            data[f.name] = value.name  # type: ignore[union-attr]
        elif is_dataclass(value):
            data[f.name] = asdict(value)  # type: ignore[arg-type]
        elif isinstance(value, tuple):
            data[f.name] = list(value)
        else:
            data[f.name] = value
    return data
