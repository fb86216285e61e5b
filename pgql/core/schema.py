"""Core schema data structures for declarative and introspected schemas.

The same structures describe both the desired state loaded from a schema
file and the live state read back from the database, so the two can be
diffed field by field.
"""

from dataclasses import dataclass, field


@dataclass
class Column:
    """A table column.

    ``type`` holds the canonical type name (see ``pgql.core.types``) and
    ``default`` a raw SQL expression.
    """

    name: str
    type: str
    nullable: bool = False
    default: str | None = None
    comment: str | None = None


@dataclass
class PrimaryKey:
    """Primary key constraint of a table."""

    columns: list[str]
    name: str | None = None


@dataclass
class Index:
    """A (possibly unique) index over one or more columns."""

    name: str
    columns: list[str]
    unique: bool = False


@dataclass
class ForeignKey:
    """A foreign key constraint referencing another table."""

    name: str
    columns: list[str]
    ref_table: str
    ref_columns: list[str]
    ref_schema: str | None = None
    on_delete: str | None = None
    on_update: str | None = None


@dataclass
class Check:
    """A check constraint."""

    name: str
    expr: str


@dataclass
class Table:
    """A table with its columns, keys, indexes and attributes.

    ``attrs`` holds table-level attributes such as ``comment``.
    """

    name: str
    schema: str
    columns: list[Column] = field(default_factory=list)
    primary_key: PrimaryKey | None = None
    indexes: list[Index] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    checks: list[Check] = field(default_factory=list)
    attrs: dict[str, str] = field(default_factory=dict)

    def column(self, name: str) -> Column | None:
        """Look up a column by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass
class Schema:
    """A named database schema (namespace) and its tables."""

    name: str
    tables: list[Table] = field(default_factory=list)

    def table(self, name: str) -> Table | None:
        """Look up a table by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None


@dataclass
class Realm:
    """All schemas of one database."""

    schemas: list[Schema] = field(default_factory=list)

    def schema(self, name: str) -> Schema | None:
        """Look up a schema by name."""
        for schema in self.schemas:
            if schema.name == name:
                return schema
        return None

    def table(self, schema: str, name: str) -> Table | None:
        """Look up a table by schema and table name."""
        found = self.schema(schema)
        return found.table(name) if found else None

    @property
    def schema_names(self) -> list[str]:
        return [schema.name for schema in self.schemas]

    def iter_tables(self) -> list[Table]:
        """All tables across schemas, in declaration order."""
        return [table for schema in self.schemas for table in schema.tables]


class SchemaValidationError(Exception):
    """Raised when a declared schema is internally inconsistent."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class SchemaLoadError(Exception):
    """Raised when a schema file cannot be read or parsed."""

    pass
