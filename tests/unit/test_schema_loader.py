"""Tests for loading and validating the declarative YAML schema file."""

from pathlib import Path

import pytest

from pgql.core import (
    FileSchemaLoader,
    SchemaLoadError,
    SchemaValidationError,
    load_realm_from_string,
    validate_realm,
)
from pgql.core.schema import Column, ForeignKey, Index, PrimaryKey, Realm, Schema, Table


class TestLoadRealmFromString:
    """Test parsing of schema documents."""

    def test_tables_and_columns(self, realm):
        """Test tables and columns are parsed in declaration order."""
        users = realm.table("public", "users")

        assert [t.name for t in realm.iter_tables()] == ["users", "groups", "group_has_user"]
        assert [c.name for c in users.columns] == ["id", "created_at", "name", "age"]

    def test_column_types_are_canonical(self, realm):
        """Test type aliases are normalized."""
        users = realm.table("public", "users")

        assert users.column("id").type == "UUID"
        assert users.column("created_at").type == "TIMESTAMP WITHOUT TIME ZONE"
        assert users.column("age").type == "INTEGER"

    def test_columns_not_null_by_default(self, realm):
        """Test columns are NOT NULL unless declared nullable."""
        users = realm.table("public", "users")

        assert users.column("name").nullable is False
        assert users.column("age").nullable is True

    def test_unique_column_creates_unique_index(self, realm):
        """Test unique: true adds a <table>_<column>_key unique index."""
        users = realm.table("public", "users")

        assert users.indexes == [Index("users_id_key", ["id"], unique=True)]

    def test_primary_key_checks_and_comment(self, realm):
        """Test primary key, check constraints and the table comment."""
        users = realm.table("public", "users")

        assert users.primary_key == PrimaryKey(columns=["id"])
        assert users.checks[0].name == "age_positive"
        assert users.checks[0].expr == "age > 0"
        assert users.attrs == {"comment": "application users"}

    def test_foreign_keys(self, realm):
        """Test table.column references resolve to the same schema."""
        join = realm.table("public", "group_has_user")

        assert join.foreign_keys == [
            ForeignKey(
                name="users_kf",
                columns=["user_id"],
                ref_table="users",
                ref_columns=["id"],
                ref_schema="public",
                on_delete="CASCADE",
            ),
            ForeignKey(
                name="groups_kf",
                columns=["group_id"],
                ref_table="groups",
                ref_columns=["id"],
                ref_schema="public",
            ),
        ]

    def test_cross_schema_reference(self):
        """Test schema.table.column and mapping references."""
        realm = load_realm_from_string(
            """
schemas:
  public:
    tables:
      users:
        columns: {id: uuid}
  audit:
    tables:
      events:
        columns: {id: uuid, user_id: uuid, actor_id: uuid}
        foreign_keys:
          events_user_fk: {columns: [user_id], references: public.users.id}
          events_actor_fk:
            columns: [actor_id]
            references: {schema: public, table: users, columns: [id]}
"""
        )

        events = realm.table("audit", "events")
        assert [fk.ref_schema for fk in events.foreign_keys] == ["public", "public"]
        assert [fk.ref_table for fk in events.foreign_keys] == ["users", "users"]

    def test_invalid_yaml(self):
        """Test malformed YAML raises SchemaLoadError."""
        with pytest.raises(SchemaLoadError):
            load_realm_from_string("schemas: [unclosed")

    def test_missing_schemas_mapping(self):
        """Test a document without 'schemas' is rejected."""
        with pytest.raises(SchemaValidationError):
            load_realm_from_string("tables: {}")

    def test_column_without_type(self):
        """Test a column with no type is rejected."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load_realm_from_string(
                "schemas: {public: {tables: {users: {columns: {id: {nullable: true}}}}}}"
            )

        assert "missing type" in exc_info.value.errors[0]

    @pytest.mark.parametrize(
        ("document", "error"),
        [
            ("schemas: {public: [users]}", "public: must be a mapping"),
            ("schemas: {public: {tables: {users: [id]}}}", "public.users: must be a mapping"),
            (
                "schemas: {public: {tables: {users: {columns: [id, name]}}}}",
                "public.users.columns: must be a mapping",
            ),
            (
                "schemas: {public: {tables: {users: {columns: {id: [uuid]}}}}}",
                "public.users.id: must be a mapping",
            ),
            (
                "schemas: {public: {tables: {users: {columns: {id: uuid}, indexes: {ix: id}}}}}",
                "public.users.indexes.ix: must be a mapping",
            ),
            (
                "schemas: {public: {tables: {users: {columns: {id: uuid},"
                " indexes: {ix: {columns: id}}}}}}",
                "public.users.indexes.ix.columns: must be a list",
            ),
            (
                "schemas: {public: {tables: {users: {columns: {id: uuid}, primary_key: id}}}}",
                "public.users.primary_key: must be a mapping",
            ),
            (
                "schemas: {public: {tables: {users: {columns: {id: uuid},"
                " foreign_keys: [users_fk]}}}}",
                "public.users.foreign_keys: must be a mapping",
            ),
            (
                "schemas: {public: {tables: {users: {columns: {id: uuid},"
                " checks: ['id IS NOT NULL']}}}}",
                "public.users.checks: must be a mapping",
            ),
        ],
    )
    def test_malformed_structure(self, document: str, error: str):
        """Test wrongly shaped sections are reported instead of crashing."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load_realm_from_string(document)

        assert exc_info.value.errors == [error]

    def test_dangling_foreign_key(self):
        """Test a foreign key to an undeclared table is rejected."""
        with pytest.raises(SchemaValidationError) as exc_info:
            load_realm_from_string(
                """
schemas:
  public:
    tables:
      posts:
        columns: {id: uuid, author_id: uuid}
        foreign_keys:
          posts_author_fk: {columns: [author_id], references: authors.id}
"""
            )

        assert any("unknown table 'public.authors'" in e for e in exc_info.value.errors)


class TestValidateRealm:
    """Test realm consistency checks."""

    def test_valid_realm(self, realm):
        """Test the shared fixture realm is valid."""
        assert validate_realm(realm) == []

    def test_unknown_primary_key_column(self):
        """Test primary keys must name declared columns."""
        table = Table(
            name="users",
            schema="public",
            columns=[Column("id", "UUID")],
            primary_key=PrimaryKey(["uuid"]),
        )

        errors = validate_realm(Realm([Schema("public", [table])]))

        assert errors == ["Primary key of 'public.users' references unknown column 'uuid'"]

    def test_duplicate_columns_and_indexes(self):
        """Test duplicate names within a table are reported."""
        table = Table(
            name="users",
            schema="public",
            columns=[Column("id", "UUID"), Column("id", "UUID")],
            indexes=[Index("i", ["id"]), Index("i", ["id"])],
        )

        errors = validate_realm(Realm([Schema("public", [table])]))

        assert "Duplicate column 'id' in 'public.users'" in errors
        assert "Duplicate index 'i' in 'public.users'" in errors

    def test_table_without_columns(self):
        """Test tables must declare at least one column."""
        errors = validate_realm(Realm([Schema("public", [Table("empty", "public")])]))

        assert errors == ["Table 'public.empty' has no columns"]


class TestFileSchemaLoader:
    """Test loading schema files from disk."""

    @pytest.mark.asyncio
    async def test_load_realm(self, tmp_path: Path, realm_yaml: str):
        """Test loading a schema file."""
        schema_file = tmp_path / "realm.yaml"
        schema_file.write_text(realm_yaml, encoding="utf-8")

        loader = FileSchemaLoader(str(schema_file))
        realm = await loader.load_realm()

        assert realm.schema_names == ["public"]
        assert loader.realm is realm
        assert loader.last_loaded is not None

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path):
        """Test a missing schema file raises SchemaLoadError."""
        loader = FileSchemaLoader(str(tmp_path / "missing.yaml"))

        with pytest.raises(SchemaLoadError):
            await loader.load_realm()

    @pytest.mark.asyncio
    async def test_bundled_schema_file(self):
        """Test the shipped schemas/realm.yaml loads and validates."""
        path = Path(__file__).parents[2] / "schemas" / "realm.yaml"

        realm = await FileSchemaLoader(str(path)).load_realm()

        assert [t.name for t in realm.iter_tables()] == ["users", "groups", "group_has_user"]
        join = realm.table("public", "group_has_user")
        assert [fk.name for fk in join.foreign_keys] == ["users_kf", "groups_kf"]
