"""Schema loader for declarative YAML schema files.

This module reads a schema file describing the desired state of the database
(schemas, tables, columns, keys, indexes and checks), resolves references,
and validates the result before it is diffed against the live database.
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from .schema import (
    Check,
    Column,
    ForeignKey,
    Index,
    PrimaryKey,
    Realm,
    Schema,
    SchemaLoadError,
    SchemaValidationError,
    Table,
)
from .types import canonical_type


class FileSchemaLoader:
    """Loads the desired realm from a YAML schema file."""

    def __init__(self, schema_file: str):
        """Initialize with schema file path.

        Args:
            schema_file: Path to the YAML schema file
        """
        self.schema_file = Path(schema_file)
        self.realm: Realm | None = None
        self.last_loaded: datetime | None = None

    async def load_realm(self, schema_file: str | None = None) -> Realm:
        """Load and validate the schema file.

        Args:
            schema_file: Optional override for the schema file path

        Returns:
            The desired realm

        Raises:
            SchemaLoadError: If the file is missing or is not valid YAML
            SchemaValidationError: If the declared schema is inconsistent
        """
        path = Path(schema_file) if schema_file else self.schema_file

        if not path.is_file():
            raise SchemaLoadError(f"Schema file does not exist: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaLoadError(f"Cannot read schema file {path}: {e}") from e

        self.realm = load_realm_from_string(content)
        self.last_loaded = datetime.now(UTC)
        return self.realm


def load_realm_from_string(content: str) -> Realm:
    """Parse and validate a YAML schema document.

    Raises:
        SchemaLoadError: If the content is not valid YAML
        SchemaValidationError: If the declared schema is inconsistent
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid schema YAML: {e}") from e

    realm = parse_realm(data)

    errors = validate_realm(realm)
    if errors:
        raise SchemaValidationError(f"Schema validation failed: {errors}", errors)

    return realm


def parse_realm(data: Any) -> Realm:
    """Build a Realm from a parsed schema document.

    Raises:
        SchemaValidationError: If the document structure is malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get("schemas"), dict):
        raise SchemaValidationError(
            "Schema document must contain a 'schemas' mapping",
            ["missing 'schemas' mapping"],
        )

    schemas = []
    for schema_name, schema_data in data["schemas"].items():
        schema_name = str(schema_name)
        schema_data = _mapping(schema_data, schema_name)
        tables_data = _mapping(schema_data.get("tables"), f"{schema_name}.tables")
        tables = [
            _parse_table(
                schema_name,
                str(table_name),
                _mapping(table_data, f"{schema_name}.{table_name}"),
            )
            for table_name, table_data in tables_data.items()
        ]
        schemas.append(Schema(name=schema_name, tables=tables))

    return Realm(schemas=schemas)


def _mapping(value: Any, where: str) -> dict[str, Any]:
    """Return ``value`` as a mapping; a missing value is an empty mapping."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SchemaValidationError(
            f"'{where}' must be a mapping, got {type(value).__name__}",
            [f"{where}: must be a mapping"],
        )
    return value


def _names(value: Any, where: str) -> list[str]:
    """Return ``value`` as a list of column names."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaValidationError(
            f"'{where}' must be a list, got {type(value).__name__}",
            [f"{where}: must be a list"],
        )
    return [str(name) for name in value]


def _parse_table(schema_name: str, table_name: str, data: dict[str, Any]) -> Table:
    where = f"{schema_name}.{table_name}"
    columns = []
    indexes = []

    for column_name, column_data in _mapping(data.get("columns"), f"{where}.columns").items():
        if isinstance(column_data, str):
            column_data = {"type": column_data}
        column_data = _mapping(column_data, f"{where}.{column_name}")
        raw_type = str(column_data.get("type", "")).strip()
        if not raw_type:
            raise SchemaValidationError(
                f"Column '{table_name}.{column_name}' has no type",
                [f"{where}.{column_name}: missing type"],
            )

        default = column_data.get("default")
        columns.append(
            Column(
                name=str(column_name),
                type=canonical_type(raw_type),
                nullable=bool(column_data.get("nullable", False)),
                default=str(default) if default is not None else None,
                comment=column_data.get("comment"),
            )
        )

        if column_data.get("unique"):
            indexes.append(
                Index(
                    name=f"{table_name}_{column_name}_key",
                    columns=[str(column_name)],
                    unique=True,
                )
            )

    for index_name, index_data in _mapping(data.get("indexes"), f"{where}.indexes").items():
        index_where = f"{where}.indexes.{index_name}"
        if isinstance(index_data, list):
            index_data = {"columns": index_data}
        index_data = _mapping(index_data, index_where)
        indexes.append(
            Index(
                name=str(index_name),
                columns=_names(index_data.get("columns"), f"{index_where}.columns"),
                unique=bool(index_data.get("unique", False)),
            )
        )

    primary_key = None
    pk_data = data.get("primary_key")
    if pk_data:
        if isinstance(pk_data, list):
            pk_data = {"columns": pk_data}
        pk_data = _mapping(pk_data, f"{where}.primary_key")
        primary_key = PrimaryKey(
            columns=_names(pk_data.get("columns"), f"{where}.primary_key.columns"),
            name=pk_data.get("name"),
        )

    foreign_keys = [
        _parse_foreign_key(
            schema_name,
            str(fk_name),
            _mapping(fk_data, f"{where}.foreign_keys.{fk_name}"),
        )
        for fk_name, fk_data in _mapping(
            data.get("foreign_keys"), f"{where}.foreign_keys"
        ).items()
    ]

    checks = [
        Check(name=str(check_name), expr=str(expr))
        for check_name, expr in _mapping(data.get("checks"), f"{where}.checks").items()
    ]

    attrs = {}
    if data.get("comment") is not None:
        attrs["comment"] = str(data["comment"])

    return Table(
        name=table_name,
        schema=schema_name,
        columns=columns,
        primary_key=primary_key,
        indexes=indexes,
        foreign_keys=foreign_keys,
        checks=checks,
        attrs=attrs,
    )


def _parse_foreign_key(
    schema_name: str, fk_name: str, data: dict[str, Any]
) -> ForeignKey:
    references = data.get("references")
    columns = _names(data.get("columns"), f"{fk_name}.columns")

    if isinstance(references, str):
        # table.column or schema.table.column; one referenced column per entry
        parts = references.split(".")
        if len(parts) == 2:
            ref_schema, ref_table, ref_column = schema_name, parts[0], parts[1]
        elif len(parts) == 3:
            ref_schema, ref_table, ref_column = parts
        else:
            raise SchemaValidationError(
                f"Foreign key '{fk_name}' has malformed reference '{references}'",
                [f"{fk_name}: malformed reference '{references}'"],
            )
        ref_columns = [ref_column]
    elif isinstance(references, dict):
        ref_schema = str(references.get("schema", schema_name))
        ref_table = str(references.get("table", ""))
        ref_columns = _names(references.get("columns"), f"{fk_name}.references.columns")
    else:
        raise SchemaValidationError(
            f"Foreign key '{fk_name}' is missing 'references'",
            [f"{fk_name}: missing references"],
        )

    return ForeignKey(
        name=fk_name,
        columns=columns,
        ref_table=ref_table,
        ref_columns=ref_columns,
        ref_schema=ref_schema,
        on_delete=_upper_or_none(data.get("on_delete")),
        on_update=_upper_or_none(data.get("on_update")),
    )


def _upper_or_none(value: Any) -> str | None:
    return str(value).upper() if value else None


def validate_realm(realm: Realm) -> list[str]:  # noqa: PLR0912
    """Check a realm for dangling references and duplicate names.

    Returns:
        List of validation error messages (empty when valid)
    """
    errors: list[str] = []

    for schema in realm.schemas:
        table_names: set[str] = set()
        for table in schema.tables:
            where = table.qualified_name
            if table.name in table_names:
                errors.append(f"Duplicate table '{where}'")
            table_names.add(table.name)

            column_names = [column.name for column in table.columns]
            if not column_names:
                errors.append(f"Table '{where}' has no columns")
            for name in {n for n in column_names if column_names.count(n) > 1}:
                errors.append(f"Duplicate column '{name}' in '{where}'")

            known = set(column_names)
            if table.primary_key:
                for name in table.primary_key.columns:
                    if name not in known:
                        errors.append(
                            f"Primary key of '{where}' references unknown column '{name}'"
                        )

            constraint_names: set[str] = set()
            for index in table.indexes:
                if index.name in constraint_names:
                    errors.append(f"Duplicate index '{index.name}' in '{where}'")
                constraint_names.add(index.name)
                for name in index.columns:
                    if name not in known:
                        errors.append(
                            f"Index '{index.name}' of '{where}' references unknown column '{name}'"
                        )

            for fk in table.foreign_keys:
                errors.extend(_validate_foreign_key(realm, table, fk))

            for check in table.checks:
                if not check.expr.strip():
                    errors.append(f"Check '{check.name}' of '{where}' is empty")

    return errors


def _validate_foreign_key(realm: Realm, table: Table, fk: ForeignKey) -> list[str]:
    errors = []
    where = table.qualified_name

    for name in fk.columns:
        if table.column(name) is None:
            errors.append(
                f"Foreign key '{fk.name}' of '{where}' references unknown column '{name}'"
            )

    target = realm.table(fk.ref_schema or table.schema, fk.ref_table)
    if target is None:
        errors.append(
            f"Foreign key '{fk.name}' of '{where}' targets unknown table "
            f"'{fk.ref_schema or table.schema}.{fk.ref_table}'"
        )
        return errors

    for name in fk.ref_columns:
        if target.column(name) is None:
            errors.append(
                f"Foreign key '{fk.name}' of '{where}' targets unknown column "
                f"'{target.qualified_name}.{name}'"
            )

    if len(fk.columns) != len(fk.ref_columns):
        errors.append(
            f"Foreign key '{fk.name}' of '{where}' has {len(fk.columns)} columns "
            f"but references {len(fk.ref_columns)}"
        )

    return errors
